"""
Tests for reporting format helpers.
"""

import re

import pytest
from datetime import datetime, timedelta, timezone

from reporting.formatting import (
    build_export_filename,
    format_clock_time,
    format_duration,
    format_timestamp,
    slugify_title,
)


# =============================================================
# TEST: Duration
# =============================================================

class TestFormatDuration:

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(hours=26, minutes=30), "1d 2h 30m"),
        (timedelta(minutes=45), "45m"),
        (timedelta(hours=2, minutes=5), "2h 5m"),
        (timedelta(hours=1), "1h 0m"),
        (timedelta(days=1), "1d 0h 0m"),
        (timedelta(seconds=59), "0m"),
        (timedelta(0), "0m"),
    ])
    def test_format(self, delta, expected):
        assert format_duration(delta) == expected

    def test_truncates_not_rounds(self):
        assert format_duration(timedelta(minutes=59, seconds=59)) == "59m"
        assert format_duration(timedelta(hours=23, minutes=59, seconds=59)) == "23h 59m"

    def test_negative_clamped(self):
        assert format_duration(timedelta(minutes=-5)) == "0m"


# =============================================================
# TEST: Timestamps
# =============================================================

class TestTimestamps:

    def test_utc_rendering(self):
        dt = datetime(2024, 1, 15, 9, 5, 7, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2024-01-15 09:05:07"
        assert format_clock_time(dt) == "09:05"

    def test_converts_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        dt = datetime(2024, 1, 15, 11, 0, 0, tzinfo=plus_two)
        assert format_timestamp(dt) == "2024-01-15 09:00:00"


# =============================================================
# TEST: Filenames
# =============================================================

class TestFilename:

    def test_critical_bug_title(self):
        started = datetime(2024, 1, 15, 3, 0, tzinfo=timezone.utc)
        name = build_export_filename("Critical Bug: API/Auth #123 (prod)", started)

        assert re.fullmatch(r"incident-2024-01-15-[\w-]+\.md", name)
        for ch in "/#()":
            assert ch not in name
        assert name == "incident-2024-01-15-critical-bug-apiauth-123-prod.md"

    def test_whitespace_runs_collapse(self):
        assert slugify_title("a   b\t\tc") == "a-b-c"

    def test_hyphens_kept(self):
        assert slugify_title("Fail-over broke") == "fail-over-broke"

    def test_truncated_to_50(self):
        slug = slugify_title("x" * 80)
        assert slug == "x" * 50

    def test_custom_max_length(self):
        assert slugify_title("abcdefgh", max_length=3) == "abc"

    @pytest.mark.parametrize("title", ["", None, "!!!", "#/()"])
    def test_fallback(self, title):
        assert slugify_title(title) == "unnamed"
