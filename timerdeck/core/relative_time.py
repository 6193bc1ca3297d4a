"""Relative time - End-of-timer times and time-of-day targets.

Formats how far away a timer's end is ("12:45 pm", "tmr. 12:45 pm",
"Sat. 12:45 pm") and parses "5:30pm"-style targets into a duration.
"""

import re
from datetime import date, datetime, timedelta
from typing import Literal

from timerdeck.core.parser import ParseError

TimeFormat = Literal["12h", "24h"]

SHORT_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# shown when the end lies outside the calendar datetime can represent
OUT_OF_RANGE = "far future"

_END_TIME_RE = re.compile(
    r"^(?P<hour>\d{1,2})"
    r"(?::(?P<minute>\d{2}))?"
    r"(?::(?P<second>\d{2}))?"
    r"\s*(?P<meridiem>a\.?m\.?|p\.?m\.?)$",
    re.IGNORECASE,
)


def to_time(dt: datetime, time_format: TimeFormat = "12h") -> str:
    """Format the time of day, e.g. ``12:45 pm`` or ``00:45``."""
    if time_format == "24h":
        return f"{dt.hour:02d}:{dt.minute:02d}"
    hour = dt.hour % 12 or 12
    meridiem = "am" if dt.hour < 12 else "pm"
    return f"{hour}:{dt.minute:02d} {meridiem}"


def difference_in_days(a: date | datetime, b: date | datetime) -> int:
    """Number of calendar days between two dates, ignoring order."""
    if isinstance(a, datetime):
        a = a.date()
    if isinstance(b, datetime):
        b = b.date()
    return abs((b - a).days)


def format_relative_time(
    ms_away: int,
    time_format: TimeFormat = "12h",
    now: datetime | None = None,
) -> str:
    """Format the moment ``ms_away`` from now.

    - Same day: only the time (``12:45 pm``).
    - Next day: ``tmr.`` and the time (``tmr. 12:45 pm``).
    - Within 7 days: the weekday and time (``Sat. 12:45 pm``).
    - Later: the date and time (``2023-03-04 12:45 pm``).

    Args:
        ms_away: Milliseconds ahead of ``now``.
        time_format: ``"12h"`` or ``"24h"``.
        now: Reference time, defaults to the local current time.

    Returns:
        The formatted end time, or ``OUT_OF_RANGE`` if the end is past
        what a datetime can hold.
    """
    now = now or datetime.now()
    try:
        end = now + timedelta(milliseconds=ms_away)
    except OverflowError:
        return OUT_OF_RANGE
    end_time = to_time(end, time_format)
    days = difference_in_days(now, end)

    if days == 0:
        return end_time
    if days < 7:
        relative_day = "tmr" if days == 1 else SHORT_DAYS[end.weekday()]
        return f"{relative_day}. {end_time}"
    return f"{end.date().isoformat()} {end_time}"


def parse_end_time(text: str, now: datetime | None = None) -> int:
    """Milliseconds until the next occurrence of a 12-hour clock time.

    Accepts ``"3pm"``, ``"3:12 pm"`` or ``"5:12:30 a.m."``. 12am is midnight
    and 12pm is noon. If the time is now or already past today, the next
    day's occurrence is used.

    Args:
        text: Time of day with an am/pm suffix.
        now: Reference time, defaults to the local current time.

    Returns:
        Milliseconds until that time, at most one day.

    Raises:
        ParseError: If the text is not a valid 12-hour time.
    """
    match = _END_TIME_RE.match(text.strip())
    if match is None:
        raise ParseError(f"Invalid time of day '{text}'")

    hour = int(match["hour"])
    minute = int(match["minute"] or 0)
    second = int(match["second"] or 0)
    if not 1 <= hour <= 12 or minute > 59 or second > 59:
        raise ParseError(f"Invalid time of day '{text}'")

    meridiem = match["meridiem"].lower().replace(".", "")
    if meridiem == "am":
        hour = 0 if hour == 12 else hour
    else:
        hour = 12 if hour == 12 else hour + 12

    now = now or datetime.now()
    target = now.replace(hour=hour, minute=minute, second=second, microsecond=0)
    if target <= now:
        target += timedelta(days=1)

    return int((target - now) / timedelta(milliseconds=1))
