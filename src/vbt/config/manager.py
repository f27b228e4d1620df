"""Configuration manager for Video Batch Transcoder."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from vbt.config.quality_config import QUALITY_PRESETS

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FOLDER = str(Path.home() / "Movies" / "VideoBatchTranscoder" / "converted")
DEFAULT_SCRATCH_DIR = str(Path.home() / ".cache" / "vbt" / "scratch")


@dataclass
class EngineConfig:
    """Engine configuration settings.

    Attributes:
        ffmpeg_path: ffmpeg executable (name on PATH or absolute path)
        ffprobe_path: ffprobe executable used for duration probing
        init_timeout_seconds: Safety timeout for engine initialization
        target_frame_rate: Output frame rate used to estimate total frames
        scratch_dir: Private directory for temporary run buffers
    """

    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    init_timeout_seconds: float = 20.0
    target_frame_rate: float = 30.0
    scratch_dir: str = DEFAULT_SCRATCH_DIR

    def __post_init__(self):
        """Validate configuration values."""
        if self.init_timeout_seconds <= 0:
            raise ValueError(
                f"Invalid init_timeout_seconds: {self.init_timeout_seconds}. Must be positive"
            )
        if self.target_frame_rate <= 0:
            raise ValueError(
                f"Invalid target_frame_rate: {self.target_frame_rate}. Must be positive"
            )

    @property
    def scratch_dir_path(self) -> Path:
        """Get scratch directory as Path object."""
        return Path(self.scratch_dir).expanduser()


@dataclass
class ConversionConfig:
    """Conversion configuration settings.

    Attributes:
        quality_preset: Quality preset (high, mid, low)
        output_folder: Folder where converted files are written
        output_extension: Extension of converted files
    """

    quality_preset: str = "high"
    output_folder: str = DEFAULT_OUTPUT_FOLDER
    output_extension: str = ".mp4"

    def __post_init__(self):
        """Validate configuration values."""
        if self.quality_preset not in QUALITY_PRESETS:
            raise ValueError(
                f"Invalid quality_preset: {self.quality_preset}. "
                f"Must be one of: {', '.join(QUALITY_PRESETS)}"
            )
        if not self.output_extension.startswith("."):
            raise ValueError(
                f"Invalid output_extension: {self.output_extension}. Must start with '.'"
            )

    @property
    def output_folder_path(self) -> Path:
        """Get output folder as Path object."""
        return Path(self.output_folder).expanduser()


@dataclass
class Config:
    """Main configuration container.

    Attributes:
        engine: Engine configuration settings
        conversion: Conversion configuration settings
        schema_version: Configuration schema version
    """

    engine: EngineConfig = field(default_factory=EngineConfig)
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    schema_version: str = "1.0"


class ConfigManager:
    """Manages configuration loading, saving, and access.

    Configuration is stored in ~/.config/vbt/config.json
    """

    DEFAULT_CONFIG_PATH = Path.home() / ".config" / "vbt" / "config.json"

    def __init__(self, config_path: Path | None = None):
        """Initialize ConfigManager.

        Args:
            config_path: Custom path for config file (default: ~/.config/vbt/config.json)
        """
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self.config = self._load_config()

    def _load_config(self) -> Config:
        """Load configuration from file or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, encoding="utf-8") as f:
                    data = json.load(f)
                return self._dict_to_config(data)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                # If config is corrupted, return default
                logger.warning(f"Could not load config from {self.config_path}: {e}")
                return Config()
        return Config()

    def _dict_to_config(self, data: dict) -> Config:
        """Convert dictionary to Config object."""
        engine_data = data.get("engine", {})
        conversion_data = data.get("conversion", {})

        engine_config = EngineConfig(
            ffmpeg_path=engine_data.get("ffmpeg_path", "ffmpeg"),
            ffprobe_path=engine_data.get("ffprobe_path", "ffprobe"),
            init_timeout_seconds=float(engine_data.get("init_timeout_seconds", 20.0)),
            target_frame_rate=float(engine_data.get("target_frame_rate", 30.0)),
            scratch_dir=engine_data.get("scratch_dir", DEFAULT_SCRATCH_DIR),
        )

        conversion_config = ConversionConfig(
            quality_preset=conversion_data.get("quality_preset", "high"),
            output_folder=conversion_data.get("output_folder", DEFAULT_OUTPUT_FOLDER),
            output_extension=conversion_data.get("output_extension", ".mp4"),
        )

        return Config(
            engine=engine_config,
            conversion=conversion_config,
            schema_version=data.get("schema_version", "1.0"),
        )

    def _config_to_dict(self, config: Config) -> dict:
        """Convert Config object to dictionary."""
        return {
            "schema_version": config.schema_version,
            "engine": {
                "ffmpeg_path": config.engine.ffmpeg_path,
                "ffprobe_path": config.engine.ffprobe_path,
                "init_timeout_seconds": config.engine.init_timeout_seconds,
                "target_frame_rate": config.engine.target_frame_rate,
                "scratch_dir": config.engine.scratch_dir,
            },
            "conversion": {
                "quality_preset": config.conversion.quality_preset,
                "output_folder": config.conversion.output_folder,
                "output_extension": config.conversion.output_extension,
            },
        }

    def save(self) -> None:
        """Save current configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self._config_to_dict(self.config)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def get(self, key: str) -> Any:
        """Get configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., "engine.ffmpeg_path", "conversion.quality_preset")

        Returns:
            Configuration value

        Raises:
            KeyError: If key is not found
        """
        parts = key.split(".")

        if len(parts) == 1:
            if hasattr(self.config, key):
                return getattr(self.config, key)
            raise KeyError(f"Unknown configuration key: {key}")

        if len(parts) == 2:
            section, name = parts
            if hasattr(self.config, section):
                section_obj = getattr(self.config, section)
                if hasattr(section_obj, name):
                    return getattr(section_obj, name)
            raise KeyError(f"Unknown configuration key: {key}")

        raise KeyError(f"Invalid configuration key format: {key}")

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., "conversion.quality_preset")
            value: Value to set

        Raises:
            KeyError: If key is not found
            ValueError: If value is invalid
        """
        parts = key.split(".")

        if len(parts) != 2:
            raise KeyError(f"Invalid configuration key format: {key}")

        section, name = parts

        if not hasattr(self.config, section):
            raise KeyError(f"Unknown configuration section: {section}")

        section_obj = getattr(self.config, section)

        if not hasattr(section_obj, name):
            raise KeyError(f"Unknown configuration key: {key}")

        if section == "conversion":
            if name == "quality_preset" and value not in QUALITY_PRESETS:
                raise ValueError(
                    f"Invalid quality_preset: {value}. Must be one of: {', '.join(QUALITY_PRESETS)}"
                )
            if name == "output_extension" and not str(value).startswith("."):
                raise ValueError(f"Invalid output_extension: {value}. Must start with '.'")
        if section == "engine" and name in ("init_timeout_seconds", "target_frame_rate"):
            value = float(value)
            if value <= 0:
                raise ValueError(f"Invalid {name}: {value}. Must be positive")

        setattr(section_obj, name, value)

    def get_all(self) -> dict:
        """Get all configuration as dictionary."""
        return self._config_to_dict(self.config)

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self.config = Config()

    def ensure_output_folder(self) -> Path:
        """Ensure output folder exists and return its path."""
        output_path = self.config.conversion.output_folder_path
        output_path.mkdir(parents=True, exist_ok=True)
        return output_path
