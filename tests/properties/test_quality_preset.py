"""Property-based tests for quality preset resolution.

For any preset tag, resolution yields parameters whose ceiling is 1.15x
and whose buffer is 2x the target bitrate; unknown tags resolve to "high".
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from vbt.config.quality_config import QUALITY_PRESETS, resolve_preset


class TestPresetResolutionProperty:
    """Rate-control bounds and fail-closed resolution."""

    @given(tag=st.sampled_from(list(QUALITY_PRESETS)))
    @settings(max_examples=50)
    def test_rate_control_bounds(self, tag: str):
        """Property: max bitrate and buffer derive from the target bitrate."""
        params = resolve_preset(tag)
        assert params.max_bitrate == round(params.bitrate * 1.15)
        assert params.buffer_size == params.bitrate * 2
        assert params.bitrate < params.max_bitrate < params.buffer_size

    @given(tag=st.text(max_size=20).filter(lambda t: t not in QUALITY_PRESETS))
    @settings(max_examples=100)
    def test_unknown_tags_fail_closed(self, tag: str):
        """Property: any unknown tag resolves to the high preset."""
        assert resolve_preset(tag) == resolve_preset("high")
