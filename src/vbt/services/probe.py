"""Duration probing with ffprobe.

Probing is best effort: a clip whose duration cannot be read still
converts, it just reports progress from fewer signal kinds.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from pathlib import Path

from vbt.engine.command_builder import build_probe_command

logger = logging.getLogger(__name__)


def parse_probe_duration(data: dict) -> float | None:
    """Extract the duration in seconds from ffprobe JSON output.

    The container duration is preferred; the longest stream duration is
    used when the container does not report one (typical for WebM).
    """
    container = _positive_float(data.get("format", {}).get("duration"))
    if container is not None:
        return container

    streams = [_positive_float(s.get("duration")) for s in data.get("streams", [])]
    streams = [d for d in streams if d is not None]
    return max(streams) if streams else None


def _positive_float(raw) -> float | None:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


async def probe_duration(path: Path, ffprobe_path: str = "ffprobe") -> float | None:
    """Return the duration of *path* in seconds, or None if unknown."""
    cmd = build_probe_command(ffprobe_path, Path(path))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
    except OSError as e:
        logger.debug(f"ffprobe could not be started for {path}: {e}")
        return None

    if proc.returncode != 0:
        logger.debug(
            f"ffprobe failed on {Path(path).name}: {stderr.decode('utf-8', 'replace').strip()}"
        )
        return None

    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as e:
        logger.debug(f"Unreadable ffprobe output for {path}: {e}")
        return None

    duration = parse_probe_duration(data)
    logger.debug(f"Probed {Path(path).name}: duration={duration}")
    return duration
