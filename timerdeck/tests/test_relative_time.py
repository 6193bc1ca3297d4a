"""Tests for timerdeck.core.relative_time - End times and time-of-day targets."""

from datetime import date, datetime

import pytest

from timerdeck.core.parser import ParseError
from timerdeck.core.relative_time import (
    OUT_OF_RANGE,
    difference_in_days,
    format_relative_time,
    parse_end_time,
    to_time,
)

MIN = 60_000
HOUR = 60 * MIN
DAY = 24 * HOUR

# a Wednesday
NOW = datetime(2023, 3, 1, 12, 0)


class TestToTime:
    """Test time-of-day formatting."""

    @pytest.mark.parametrize(
        "dt,expected",
        [
            (datetime(2023, 1, 1, 0, 5), "12:05 am"),
            (datetime(2023, 1, 1, 9, 30), "9:30 am"),
            (datetime(2023, 1, 1, 12, 0), "12:00 pm"),
            (datetime(2023, 1, 1, 23, 59), "11:59 pm"),
        ],
    )
    def test_12h(self, dt, expected):
        """12-hour times use am/pm."""
        assert to_time(dt) == expected

    def test_24h(self):
        """24-hour times are zero padded."""
        assert to_time(datetime(2023, 1, 1, 0, 5), "24h") == "00:05"
        assert to_time(datetime(2023, 1, 1, 18, 45), "24h") == "18:45"


class TestDifferenceInDays:
    """Test calendar day differences."""

    def test_ignores_time(self):
        """Only the date matters."""
        a = datetime(2023, 3, 1, 23, 59)
        b = datetime(2023, 3, 2, 0, 1)
        assert difference_in_days(a, b) == 1

    def test_ignores_order(self):
        """The result is never negative."""
        assert difference_in_days(date(2023, 3, 10), date(2023, 3, 1)) == 9


class TestFormatRelativeTime:
    """Test end time formatting."""

    def test_same_day(self):
        """Same day shows only the time."""
        assert format_relative_time(45 * MIN, now=NOW) == "12:45 pm"

    def test_same_day_24h(self):
        """24-hour format."""
        assert format_relative_time(45 * MIN, "24h", now=NOW) == "12:45"

    def test_tomorrow(self):
        """Next day is 'tmr.'."""
        assert format_relative_time(DAY + 45 * MIN, now=NOW) == "tmr. 12:45 pm"

    def test_past_midnight(self):
        """Crossing midnight counts as tomorrow."""
        now = datetime(2023, 3, 1, 23, 30)
        assert format_relative_time(HOUR, now=now) == "tmr. 12:30 am"
        assert format_relative_time(HOUR, "24h", now=now) == "tmr. 00:30"

    def test_weekday(self):
        """Within a week shows the weekday."""
        assert format_relative_time(3 * DAY + 45 * MIN, now=NOW) == "Sat. 12:45 pm"

    def test_date(self):
        """A week or more away shows the date."""
        assert (
            format_relative_time(10 * DAY + 45 * MIN, now=NOW) == "2023-03-11 12:45 pm"
        )

    def test_default_now(self):
        """Works without a reference time."""
        assert format_relative_time(0)

    @pytest.mark.parametrize("ms", [599_999_999_940_000, -599_999_999_940_000, 10**30])
    def test_out_of_range(self, ms):
        """Ends past the datetime range give a fixed string."""
        assert format_relative_time(ms, now=NOW) == OUT_OF_RANGE


class TestParseEndTime:
    """Test time-of-day targets."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("3pm", 3 * HOUR),
            ("3 PM", 3 * HOUR),
            ("3:12 pm", 3 * HOUR + 12 * MIN),
            ("12:30pm", 30 * MIN),
            ("12am", 12 * HOUR),
            ("5:12:30 a.m.", 17 * HOUR + 12 * MIN + 30_000),
        ],
    )
    def test_ms_until(self, text, expected):
        """Milliseconds until the next occurrence."""
        assert parse_end_time(text, now=NOW) == expected

    def test_now_is_tomorrow(self):
        """The current time means the same time tomorrow."""
        assert parse_end_time("12pm", now=NOW) == DAY

    def test_past_is_tomorrow(self):
        """A time already passed today is tomorrow."""
        assert parse_end_time("11:30am", now=NOW) == DAY - 30 * MIN

    @pytest.mark.parametrize(
        "text", ["", "3", "noon", "13pm", "0am", "3:60pm", "3:15:75pm", "3:5pm"]
    )
    def test_invalid(self, text):
        """Anything but a 12-hour time fails."""
        with pytest.raises(ParseError):
            parse_end_time(text, now=NOW)
