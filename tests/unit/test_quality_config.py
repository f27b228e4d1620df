"""Unit tests for the quality preset resolver."""

import logging

import pytest

from vbt.config.quality_config import (
    BUFFER_SIZE_FACTOR,
    FALLBACK_PRESET,
    MAX_BITRATE_FACTOR,
    QUALITY_PRESETS,
    get_encoding_parameters,
    get_preset,
    list_presets,
    resolve_preset,
)


class TestQualityPresets:
    """Tests for quality preset definitions."""

    def test_all_presets_defined(self):
        """All required presets should be defined."""
        assert set(QUALITY_PRESETS.keys()) == {"high", "mid", "low"}

    def test_high_preset_values(self):
        preset = QUALITY_PRESETS["high"]
        assert preset.video_bitrate == 8_000_000
        assert preset.speed_tier == "medium"

    def test_mid_preset_values(self):
        preset = QUALITY_PRESETS["mid"]
        assert preset.video_bitrate == 4_000_000
        assert preset.speed_tier == "veryfast"

    def test_low_preset_values(self):
        preset = QUALITY_PRESETS["low"]
        assert preset.video_bitrate == 1_500_000
        assert preset.speed_tier == "ultrafast"

    def test_presets_are_immutable(self):
        with pytest.raises(AttributeError):
            QUALITY_PRESETS["high"].video_bitrate = 1


class TestGetPreset:
    """Tests for strict preset lookup."""

    def test_known_preset(self):
        assert get_preset("mid").name == "mid"

    def test_unknown_preset_raises(self):
        with pytest.raises(ValueError, match="Unknown preset: ultra"):
            get_preset("ultra")

    def test_list_presets_order(self):
        """Presets are listed from highest to lowest bitrate."""
        assert [p.name for p in list_presets()] == ["high", "mid", "low"]


class TestEncodingParameters:
    """Tests for derived rate-control parameters."""

    def test_factors(self):
        assert MAX_BITRATE_FACTOR == 1.15
        assert BUFFER_SIZE_FACTOR == 2.0

    def test_high_parameters(self):
        params = get_encoding_parameters(QUALITY_PRESETS["high"])
        assert params.preset == "high"
        assert params.bitrate == 8_000_000
        assert params.max_bitrate == 9_200_000
        assert params.buffer_size == 16_000_000
        assert params.speed_tier == "medium"

    def test_low_parameters(self):
        params = get_encoding_parameters(QUALITY_PRESETS["low"])
        assert params.max_bitrate == 1_725_000
        assert params.buffer_size == 3_000_000


class TestResolvePreset:
    """Tests for resolve_preset fail-closed behaviour."""

    @pytest.mark.parametrize("tag", ["high", "mid", "low"])
    def test_known_tags(self, tag):
        assert resolve_preset(tag).preset == tag

    @pytest.mark.parametrize("tag", ["ultra", "", None, "HIGH", "balanced"])
    def test_unknown_tags_fall_back_to_high(self, tag):
        assert resolve_preset(tag).preset == FALLBACK_PRESET == "high"

    def test_unknown_tag_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="vbt.config.quality_config"):
            resolve_preset("ultra")
        assert "Unknown quality preset 'ultra'" in caplog.text

    def test_resolution_is_pure(self):
        assert resolve_preset("mid") == resolve_preset("mid")
