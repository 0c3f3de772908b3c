"""Tests for utils/timezone.py - UTC-everywhere time handling."""

from datetime import date, datetime, timezone
from unittest.mock import patch

from utils.timezone import now_utc, today_utc


class TestNowUtc:
    """Tests for now_utc() and today_utc()."""

    def test_is_utc(self):
        """Result timezone must be specifically UTC."""
        assert now_utc().tzinfo == timezone.utc

    def test_today_is_a_date(self):
        """Default invoice date is a calendar date, not a datetime."""
        today = today_utc()
        assert type(today) is date

    def test_today_follows_utc_clock(self):
        """Late evening west of UTC is already tomorrow in UTC."""
        with patch("utils.timezone.now_utc", return_value=datetime(2026, 1, 16, 2, 0, tzinfo=timezone.utc)):
            assert today_utc() == date(2026, 1, 16)
