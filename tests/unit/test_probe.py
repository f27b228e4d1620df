"""Unit tests for duration probing."""

import asyncio
import json
import stat
import sys

import pytest

from vbt.services.probe import parse_probe_duration, probe_duration


class TestParseProbeDuration:
    """Tests for parse_probe_duration."""

    def test_container_duration(self):
        data = {"format": {"duration": "12.480000"}, "streams": [{"duration": "99"}]}
        assert parse_probe_duration(data) == pytest.approx(12.48)

    def test_stream_duration_when_container_has_none(self):
        """WebM files often report no container duration."""
        data = {
            "format": {"duration": "N/A"},
            "streams": [{"codec_type": "video", "duration": "9.5"}, {"duration": "10.0"}],
        }
        assert parse_probe_duration(data) == pytest.approx(10.0)

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"format": {}},
            {"format": {"duration": "0"}},
            {"format": {"duration": "-3"}, "streams": [{"duration": "nan"}]},
            {"streams": [{"codec_type": "audio"}]},
        ],
    )
    def test_unknown_duration(self, data):
        assert parse_probe_duration(data) is None


class TestProbeDuration:
    """Tests for probe_duration against a scripted ffprobe."""

    def test_missing_binary_returns_none(self, temp_dir):
        result = asyncio.run(probe_duration(temp_dir / "a.webm", str(temp_dir / "no-ffprobe")))
        assert result is None

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as ffprobe")
    def test_reads_json_output(self, temp_dir):
        payload = json.dumps({"format": {"duration": "42.0"}})
        script = temp_dir / "ffprobe"
        script.write_text(f"#!/bin/sh\necho '{payload}'\n")
        script.chmod(script.stat().st_mode | stat.S_IEXEC)

        result = asyncio.run(probe_duration(temp_dir / "a.webm", str(script)))
        assert result == 42.0

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as ffprobe")
    def test_failing_probe_returns_none(self, temp_dir):
        script = temp_dir / "ffprobe"
        script.write_text("#!/bin/sh\necho 'a.webm: No such file' >&2\nexit 1\n")
        script.chmod(script.stat().st_mode | stat.S_IEXEC)

        assert asyncio.run(probe_duration(temp_dir / "a.webm", str(script))) is None
