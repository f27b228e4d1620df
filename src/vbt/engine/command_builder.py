"""Builds ffmpeg/ffprobe command lines as plain list[str].

Keeping command construction separate lets the exact command be logged
before it runs and lets flag generation be tested without a process.
"""

from pathlib import Path

from vbt.config.quality_config import EncodingParameters

VIDEO_CODEC = "libx264"
AUDIO_CODEC = "aac"
AUDIO_BITRATE = "128k"
PIXEL_FORMAT = "yuv420p"

OUTPUT_PREFIX = "converted_"
OUTPUT_MEDIA_TYPE = "video/mp4"


def build_transcode_command(
    ffmpeg: str,
    input_file: Path,
    output_file: Path,
    params: EncodingParameters,
    frame_rate: float | None = None,
) -> list[str]:
    """Build the ffmpeg command for one run.

    Machine-readable progress goes to stdout (``-progress pipe:1``); log
    lines, including the input's "Duration:" banner, go to stderr. When
    *frame_rate* is given the output is resampled to it, so the ``frame=``
    counter advances at that rate whatever the source rate is.

    Example:
        ['ffmpeg', '-hide_banner', '-nostdin', '-y', '-i', '/tmp/run-x/input',
         '-nostats', '-progress', 'pipe:1',
         '-c:v', 'libx264', '-preset', 'medium',
         '-b:v', '8000000', '-maxrate', '9200000', '-bufsize', '16000000',
         '-c:a', 'aac', '-b:a', '128k', '-pix_fmt', 'yuv420p', '-r', '30',
         '-movflags', '+faststart', '/tmp/run-x/output.mp4']
    """
    rate_args = ["-r", f"{frame_rate:g}"] if frame_rate else []
    return [
        ffmpeg,
        "-hide_banner",
        "-nostdin",
        "-y",
        "-i", str(input_file),
        "-nostats",
        "-progress", "pipe:1",
        "-c:v", VIDEO_CODEC,
        "-preset", params.speed_tier,
        "-b:v", str(params.bitrate),
        "-maxrate", str(params.max_bitrate),
        "-bufsize", str(params.buffer_size),
        "-c:a", AUDIO_CODEC,
        "-b:a", AUDIO_BITRATE,
        "-pix_fmt", PIXEL_FORMAT,
        *rate_args,
        "-movflags", "+faststart",
        str(output_file),
    ]  # fmt: skip


def build_probe_command(ffprobe: str, input_file: Path) -> list[str]:
    """Build the ffprobe command that reports container and stream metadata as JSON."""
    return [
        ffprobe,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_file),
    ]  # fmt: skip


def build_output_name(input_name: str, extension: str = ".mp4") -> str:
    """Name of the downloadable output for an input file.

    Example:
        build_output_name("clip.webm") -> "converted_clip.mp4"
    """
    return f"{OUTPUT_PREFIX}{Path(input_name).stem}{extension}"


def command_as_string(cmd: list[str]) -> str:
    """Human-readable version of the command for logging."""
    return " ".join(cmd)
