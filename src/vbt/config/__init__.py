"""Configuration module for Video Batch Transcoder."""

from vbt.config.manager import Config, ConfigManager, ConversionConfig, EngineConfig
from vbt.config.quality_config import (
    QUALITY_PRESETS,
    EncodingParameters,
    QualityPreset,
    get_preset,
    list_presets,
    resolve_preset,
)

__all__ = [
    "Config",
    "ConfigManager",
    "ConversionConfig",
    "EngineConfig",
    "QUALITY_PRESETS",
    "EncodingParameters",
    "QualityPreset",
    "get_preset",
    "list_presets",
    "resolve_preset",
]
