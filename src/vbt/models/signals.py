"""Progress signals emitted by the engine during one run.

The engine exposes several independent progress indicators with ambiguous
units. They are carried as one tagged union and interpreted in a single
place, the progress normalizer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

__all__ = ["TimeUnit", "RatioSignal", "TimeSignal", "FrameSignal", "ProgressSignal"]


class TimeUnit(Enum):
    """Scale of a raw time value, expressed as seconds per unit."""

    SECONDS = 1.0
    MILLISECONDS = 1e-3
    MICROSECONDS = 1e-6

    def to_seconds(self, value: float) -> float:
        return value * self.value


@dataclass(frozen=True)
class RatioSignal:
    """Completion ratio, either a fraction in [0, 1] or a percentage in (1, 100]."""

    value: float


@dataclass(frozen=True)
class TimeSignal:
    """Position in the output timeline.

    Attributes:
        value: A raw number, or an "HH:MM:SS[.frac]" timestamp
        unit: Scale of a raw number; None when the engine does not say
    """

    value: float | str
    unit: TimeUnit | None = None


@dataclass(frozen=True)
class FrameSignal:
    """Index of the last encoded frame."""

    frame: int


ProgressSignal = Union[RatioSignal, TimeSignal, FrameSignal]
