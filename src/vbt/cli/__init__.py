"""Command-line interface for Video Batch Transcoder."""
