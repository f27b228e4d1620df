"""Unit tests for the progress normalizer."""

import math

import pytest

from vbt.engine.backend import parse_progress_line
from vbt.models.signals import FrameSignal, RatioSignal, TimeSignal, TimeUnit
from vbt.progress.normalizer import (
    PROGRESS_COMPLETE,
    ProgressNormalizer,
    parse_timestamp,
    ratio_to_fraction,
    resolve_time_seconds,
)


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_full_timestamp(self):
        assert parse_timestamp("00:01:30.50") == pytest.approx(90.5)

    def test_hours(self):
        assert parse_timestamp("01:00:00") == 3600

    def test_surrounding_whitespace(self):
        assert parse_timestamp("  00:00:10.00\n") == pytest.approx(10.0)

    @pytest.mark.parametrize("text", ["N/A", "", "-00:00:00.02", "1:2", "abc", "00:00:xx"])
    def test_invalid_returns_none(self, text):
        assert parse_timestamp(text) is None


class TestResolveTimeSeconds:
    """Tests for time interpretation."""

    def test_unknown_scale_picks_milliseconds(self):
        """60000 against a 120 s clip reads as 60 s."""
        assert resolve_time_seconds(60000, 120.0) == pytest.approx(60.0)

    def test_unknown_scale_prefers_seconds(self):
        assert resolve_time_seconds(60, 120.0) == 60

    def test_unknown_scale_picks_microseconds(self):
        assert resolve_time_seconds(60_000_000, 120.0) == pytest.approx(60.0)

    def test_unknown_scale_nothing_plausible(self):
        assert resolve_time_seconds(1e12, 120.0) is None

    def test_overshoot_allowance(self):
        """Positions up to 1.2x the duration are accepted."""
        assert resolve_time_seconds(140, 120.0) == 140
        assert resolve_time_seconds(145, 120.0, TimeUnit.SECONDS) is None

    def test_known_unit(self):
        assert resolve_time_seconds(30_000_000, 120.0, TimeUnit.MICROSECONDS) == pytest.approx(30)

    def test_text_timestamp(self):
        assert resolve_time_seconds("00:01:00.00", 120.0) == pytest.approx(60.0)

    def test_no_duration(self):
        assert resolve_time_seconds(60, None) is None
        assert resolve_time_seconds("00:00:10.00", None) is None

    @pytest.mark.parametrize("value", [-1, math.nan, math.inf])
    def test_invalid_numbers(self, value):
        assert resolve_time_seconds(value, 120.0) is None


class TestRatioToFraction:
    """Tests for ratio interpretation."""

    def test_fraction(self):
        assert ratio_to_fraction(0.25) == 0.25

    def test_one_is_fraction(self):
        assert ratio_to_fraction(1) == 1

    def test_percentage(self):
        assert ratio_to_fraction(40) == pytest.approx(0.4)

    @pytest.mark.parametrize("value", [-0.1, 100.5, math.nan, math.inf])
    def test_out_of_range(self, value):
        assert ratio_to_fraction(value) is None


class TestProgressNormalizer:
    """Tests for ProgressNormalizer."""

    def test_ratio_signal(self):
        normalizer = ProgressNormalizer()
        assert normalizer.feed(RatioSignal(0.42)) == 42

    def test_percentage_ratio(self):
        normalizer = ProgressNormalizer()
        assert normalizer.feed(RatioSignal(55)) == 55

    def test_ambiguous_time_with_duration(self):
        normalizer = ProgressNormalizer(duration=120.0)
        assert normalizer.feed(TimeSignal(60000)) == 50

    def test_time_without_duration_is_dropped(self):
        normalizer = ProgressNormalizer()
        assert normalizer.feed(TimeSignal(10.0, TimeUnit.SECONDS)) is None
        assert normalizer.last_emitted == 0

    def test_duration_from_log_line(self):
        normalizer = ProgressNormalizer()
        assert normalizer.feed_log_line("  Duration: 00:02:00.00, start: 0.000000") is None
        assert normalizer.duration == 120.0
        assert normalizer.feed(TimeSignal("00:00:30.00")) == 25

    def test_time_from_stats_line(self):
        normalizer = ProgressNormalizer(duration=100.0)
        line = "frame=  300 fps= 60 q=28.0 size=512kB time=00:00:10.00 bitrate=419.4kbits/s"
        assert normalizer.feed_log_line(line) == 10

    def test_unrelated_log_line(self):
        normalizer = ProgressNormalizer(duration=100.0)
        assert normalizer.feed_log_line("Stream #0:0: Video: vp9") is None

    def test_first_duration_wins(self):
        normalizer = ProgressNormalizer()
        normalizer.update_duration(120.0)
        normalizer.update_duration(60.0)
        normalizer.feed_log_line("Duration: 00:00:30.00")
        assert normalizer.duration == 120.0

    @pytest.mark.parametrize("value", [None, 0, -5, math.nan])
    def test_invalid_duration_ignored(self, value):
        normalizer = ProgressNormalizer()
        normalizer.update_duration(value)
        assert normalizer.duration is None

    def test_frame_signal(self):
        """Total frames are estimated as duration x frame rate."""
        normalizer = ProgressNormalizer(duration=10.0, frame_rate=30.0)
        assert normalizer.feed(FrameSignal(150)) == 50

    def test_frame_ignored_after_time_progress(self):
        normalizer = ProgressNormalizer(duration=60.0, frame_rate=30.0)
        assert normalizer.feed(TimeSignal(30_000_000.0, TimeUnit.MICROSECONDS)) == 50
        # A 60 fps source counted at its own rate would read as 100 %
        assert normalizer.feed(FrameSignal(1800)) is None
        assert normalizer.last_emitted == 50

    def test_resampled_progress_block(self):
        """A 60 fps clip resampled to 30 fps, halfway through."""
        normalizer = ProgressNormalizer(duration=60.0, frame_rate=30.0)
        block = ["frame=900", "fps=58.2", "out_time_us=30000000", "out_time=00:00:30.000000"]
        emitted = [normalizer.feed(s) for s in map(parse_progress_line, block) if s is not None]
        assert emitted == [50, None, None]
        assert normalizer.last_emitted == 50

    def test_frame_without_duration(self):
        normalizer = ProgressNormalizer()
        assert normalizer.feed(FrameSignal(150)) is None

    def test_regression_is_dropped(self):
        normalizer = ProgressNormalizer()
        assert normalizer.feed(RatioSignal(0.6)) == 60
        assert normalizer.feed(RatioSignal(0.3)) is None
        assert normalizer.last_emitted == 60

    def test_tie_is_dropped(self):
        normalizer = ProgressNormalizer()
        normalizer.feed(RatioSignal(0.5))
        assert normalizer.feed(RatioSignal(0.505)) is None

    def test_ratio_ignored_after_time_progress(self):
        normalizer = ProgressNormalizer(duration=100.0)
        assert normalizer.feed(TimeSignal(20.0, TimeUnit.SECONDS)) == 20
        assert normalizer.feed(RatioSignal(0.9)) is None
        assert normalizer.feed(TimeSignal(30.0, TimeUnit.SECONDS)) == 30

    def test_overshoot_clamped_to_complete(self):
        normalizer = ProgressNormalizer(duration=100.0)
        assert normalizer.feed(TimeSignal(110.0, TimeUnit.SECONDS)) == PROGRESS_COMPLETE

    def test_complete_always_reports_100(self):
        normalizer = ProgressNormalizer()
        normalizer.feed(RatioSignal(0.3))
        assert normalizer.complete() == 100
        assert normalizer.last_emitted == 100

    def test_complete_after_full_progress(self):
        normalizer = ProgressNormalizer()
        normalizer.feed(RatioSignal(1.0))
        assert normalizer.complete() == 100
