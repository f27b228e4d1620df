"""Quality configuration for video conversion.

This module defines the quality presets used when a run starts. It is
the single source of truth for the mapping from a preset tag to concrete
encoder parameters.
"""

import logging
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

# Quality preset names
PresetName = Literal["high", "mid", "low"]

# Rate-control bounds relative to the target bitrate
MAX_BITRATE_FACTOR: float = 1.15
BUFFER_SIZE_FACTOR: float = 2.0

# Preset used when an unknown tag is requested
FALLBACK_PRESET: str = "high"


@dataclass(frozen=True)
class QualityPreset:
    """Quality preset configuration.

    Attributes:
        name: Preset identifier
        video_bitrate: Target video bitrate in bits per second
        speed_tier: x264 speed/quality trade-off (``-preset`` value)
        description: Human-readable description
    """

    name: str
    video_bitrate: int
    speed_tier: str
    description: str = ""


@dataclass(frozen=True)
class EncodingParameters:
    """Concrete encoder parameters resolved from a preset.

    Attributes:
        preset: Name of the preset these parameters came from
        bitrate: Target video bitrate in bits per second
        max_bitrate: Rate-control ceiling (1.15x target)
        buffer_size: Rate-control buffer (2x target)
        speed_tier: x264 speed/quality trade-off
    """

    preset: str
    bitrate: int
    max_bitrate: int
    buffer_size: int
    speed_tier: str


# Quality presets definition
QUALITY_PRESETS: dict[str, QualityPreset] = {
    "high": QualityPreset(
        name="high",
        video_bitrate=8_000_000,
        speed_tier="medium",
        description="High quality (8 Mbps, medium)",
    ),
    "mid": QualityPreset(
        name="mid",
        video_bitrate=4_000_000,
        speed_tier="veryfast",
        description="Balanced (4 Mbps, veryfast)",
    ),
    "low": QualityPreset(
        name="low",
        video_bitrate=1_500_000,
        speed_tier="ultrafast",
        description="Small files (1.5 Mbps, ultrafast)",
    ),
}


def get_preset(name: str) -> QualityPreset:
    """Get quality preset by name.

    Args:
        name: Preset name (high, mid, low)

    Returns:
        QualityPreset configuration

    Raises:
        ValueError: If preset name is unknown
    """
    if name not in QUALITY_PRESETS:
        raise ValueError(f"Unknown preset: {name}. Valid presets: {list(QUALITY_PRESETS.keys())}")
    return QUALITY_PRESETS[name]


def list_presets() -> list[QualityPreset]:
    """Return all presets from highest to lowest quality."""
    return sorted(QUALITY_PRESETS.values(), key=lambda p: p.video_bitrate, reverse=True)


def get_encoding_parameters(preset: QualityPreset) -> EncodingParameters:
    """Derive rate-control parameters for a preset.

    Args:
        preset: QualityPreset configuration

    Returns:
        EncodingParameters with bitrate, ceiling, buffer size and speed tier
    """
    return EncodingParameters(
        preset=preset.name,
        bitrate=preset.video_bitrate,
        max_bitrate=round(preset.video_bitrate * MAX_BITRATE_FACTOR),
        buffer_size=round(preset.video_bitrate * BUFFER_SIZE_FACTOR),
        speed_tier=preset.speed_tier,
    )


def resolve_preset(tag: str | None) -> EncodingParameters:
    """Resolve a preset tag to encoder parameters.

    Unknown tags fail closed to the highest-quality preset rather than to
    an arbitrary default.

    Args:
        tag: Preset tag as selected by the user

    Returns:
        EncodingParameters for the tag, or for "high" if the tag is unknown
    """
    preset = QUALITY_PRESETS.get(tag) if tag else None
    if preset is None:
        logger.warning(f"Unknown quality preset {tag!r}, using {FALLBACK_PRESET!r}")
        preset = QUALITY_PRESETS[FALLBACK_PRESET]
    return get_encoding_parameters(preset)
