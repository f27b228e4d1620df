"""Progress normalization for a single engine run.

The engine reports progress through several independent channels: a
completion ratio, an output timestamp of unknown scale, a frame counter and
free-text log lines. This module folds them into one integer percentage
that never decreases within a run.

Rules:
- Ratio: values in [0, 1] are fractions, values in (1, 100] are percentages,
  anything else is discarded.
- Time: a raw number of unknown scale is read as seconds, milliseconds or
  microseconds, whichever is the first to stay within 1.2x the known
  duration. Without a duration the signal is discarded.
- Frame: total frames are estimated as duration x target frame rate.
- Only strictly increasing percentages are emitted; completion always
  emits 100.
"""

from __future__ import annotations

import logging
import math
import re

from vbt.models.signals import FrameSignal, ProgressSignal, RatioSignal, TimeSignal, TimeUnit

logger = logging.getLogger(__name__)

# A time position may overshoot the probed duration by this factor
PLAUSIBLE_OVERSHOOT = 1.2

# Interpretation order for raw time values of unknown scale (largest first)
UNKNOWN_SCALE_ORDER: tuple[TimeUnit, ...] = (
    TimeUnit.SECONDS,
    TimeUnit.MILLISECONDS,
    TimeUnit.MICROSECONDS,
)

PROGRESS_COMPLETE = 100

_TIMESTAMP = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)$")
_DURATION_LINE = re.compile(r"Duration:\s*(\d+:\d{1,2}:\d{1,2}(?:\.\d+)?)")
_TIME_LINE = re.compile(r"\btime=\s*(\d+:\d{1,2}:\d{1,2}(?:\.\d+)?)")


def parse_timestamp(text: str) -> float | None:
    """Convert an "HH:MM:SS[.frac]" timestamp to seconds.

    Returns None for anything that is not a well-formed, non-negative
    timestamp (ffmpeg prints "N/A" and negative times around stream start).
    """
    match = _TIMESTAMP.match(text.strip())
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def resolve_time_seconds(
    value: float | str,
    duration: float | None,
    unit: TimeUnit | None = None,
) -> float | None:
    """Interpret a time signal as a position in seconds.

    Args:
        value: Raw number or textual timestamp
        duration: Best known duration in seconds (None if unknown)
        unit: Scale of a raw number, None if ambiguous

    Returns:
        Position in seconds, or None if the value cannot be normalized
    """
    if duration is None or duration <= 0:
        return None

    limit = duration * PLAUSIBLE_OVERSHOOT

    if isinstance(value, str):
        seconds = parse_timestamp(value)
        if seconds is None or seconds > limit:
            return None
        return seconds

    if not math.isfinite(value) or value < 0:
        return None

    if unit is not None:
        seconds = unit.to_seconds(value)
        return seconds if seconds <= limit else None

    for candidate in UNKNOWN_SCALE_ORDER:
        seconds = candidate.to_seconds(value)
        if seconds <= limit:
            return seconds
    return None


def ratio_to_fraction(value: float) -> float | None:
    """Read a ratio signal as a fraction, or None if it is out of range."""
    if not math.isfinite(value) or value < 0:
        return None
    if value <= 1:
        return value
    if value <= 100:
        return value / 100
    return None


def fraction_to_percent(fraction: float) -> int:
    """Convert a fraction to an integer percentage clamped to [0, 100]."""
    return max(0, min(PROGRESS_COMPLETE, int(fraction * 100)))


class ProgressNormalizer:
    """Folds the progress signals of one run into a monotonic percentage.

    A new normalizer is created for every run, so the "last emitted" value
    always starts at 0.
    """

    def __init__(self, duration: float | None = None, frame_rate: float = 30.0):
        """Initialize ProgressNormalizer.

        Args:
            duration: Duration supplied by the caller, if already known
            frame_rate: Target output frame rate used for frame signals
        """
        self._duration: float | None = None
        self._frame_rate = frame_rate
        self._last_emitted = 0
        self._time_seen = False
        if duration is not None:
            self.update_duration(duration)

    @property
    def duration(self) -> float | None:
        """Best known duration in seconds."""
        return self._duration

    @property
    def last_emitted(self) -> int:
        return self._last_emitted

    def update_duration(self, seconds: float | None) -> None:
        """Record a duration estimate.

        The first valid estimate wins; later estimates are ignored.
        """
        if self._duration is not None:
            return
        if seconds is None or not math.isfinite(seconds) or seconds <= 0:
            return
        self._duration = float(seconds)
        logger.debug(f"Duration known: {self._duration:.3f}s")

    def feed(self, signal: ProgressSignal) -> int | None:
        """Consume one progress signal.

        Returns:
            The new percentage if it advanced, otherwise None
        """
        fraction = self._fraction_for(signal)
        if fraction is None:
            return None
        return self._emit(fraction)

    def feed_log_line(self, line: str) -> int | None:
        """Consume one engine log line.

        A "Duration:" banner fills an unknown duration; a "time=" stats
        field is treated as a textual time signal.
        """
        duration_match = _DURATION_LINE.search(line)
        if duration_match:
            self.update_duration(parse_timestamp(duration_match.group(1)))
            return None

        time_match = _TIME_LINE.search(line)
        if time_match:
            return self.feed(TimeSignal(time_match.group(1)))
        return None

    def complete(self) -> int:
        """Report full progress at the end of a successful run."""
        self._last_emitted = PROGRESS_COMPLETE
        return PROGRESS_COMPLETE

    def _fraction_for(self, signal: ProgressSignal) -> float | None:
        if isinstance(signal, RatioSignal):
            # Time-derived progress takes precedence once available
            if self._time_seen and self._duration is not None:
                return None
            return ratio_to_fraction(signal.value)

        if isinstance(signal, TimeSignal):
            seconds = resolve_time_seconds(signal.value, self._duration, signal.unit)
            if seconds is None:
                logger.debug(f"Discarding time signal {signal.value!r}")
                return None
            self._time_seen = True
            return seconds / self._duration

        if isinstance(signal, FrameSignal):
            # Frame counts are an estimate; the output position is exact
            if self._time_seen:
                return None
            if self._duration is None or self._frame_rate <= 0 or signal.frame < 0:
                return None
            total_frames = self._duration * self._frame_rate
            return signal.frame / total_frames

        logger.debug(f"Ignoring unknown progress signal: {signal!r}")
        return None

    def _emit(self, fraction: float) -> int | None:
        if not math.isfinite(fraction):
            return None
        percent = fraction_to_percent(fraction)
        if percent <= self._last_emitted:
            return None
        self._last_emitted = percent
        return percent
