"""Video Batch Transcoder - local batch video conversion on an ffmpeg engine."""

__version__ = "0.1.0"
