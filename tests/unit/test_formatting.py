"""
Unit Tests for video display formatting
"""

import pytest
import sys
import os
from datetime import datetime, timezone

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "learnverse_tutor", "src"))

from learnverse_tutor.formatting import format_duration, format_time_ago, format_view_count


class TestFormatDuration:

    def test_hours_minutes_seconds(self):
        assert format_duration("PT1H2M3S") == "1:02:03"

    def test_minutes_seconds(self):
        assert format_duration("PT5M9S") == "5:09"

    @pytest.mark.parametrize("duration,expected", [
        ("PT45S", "0:45"),
        ("PT12M", "12:00"),
        ("PT2H", "2:00:00"),
        ("PT0S", "0:00"),
    ])
    def test_partial_durations(self, duration, expected):
        assert format_duration(duration) == expected

    def test_unparseable_duration(self):
        assert format_duration("not a duration") == "0:00"
        assert format_duration("") == "0:00"


class TestFormatViewCount:

    def test_millions(self):
        assert format_view_count("1234567") == "1.2M"

    def test_thousands(self):
        assert format_view_count("3400") == "3.4K"

    def test_small_counts_unchanged(self):
        assert format_view_count("999") == "999"

    def test_non_numeric_passthrough(self):
        assert format_view_count("n/a") == "n/a"


class TestFormatTimeAgo:

    NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_one_day(self):
        assert format_time_ago("2024-05-31T12:00:00Z", now=self.NOW) == "1 day ago"

    def test_days(self):
        assert format_time_ago("2024-05-20T12:00:00Z", now=self.NOW) == "12 days ago"

    def test_months(self):
        assert format_time_ago("2024-02-01T12:00:00Z", now=self.NOW) == "4 months ago"

    def test_years(self):
        assert format_time_ago("2021-06-01T12:00:00Z", now=self.NOW) == "3 years ago"
