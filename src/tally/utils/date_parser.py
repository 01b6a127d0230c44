"""Date parsing utilities."""

import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_DAYS_AGO = re.compile(r"^(\d+)\s+days?\s+ago$")
# Bank statements write dates day first: 31.01.2024, 31/01/2024
_DAY_FIRST = re.compile(r"^\d{1,2}[./]\d{1,2}[./]\d{2,4}")


def _period_start(period: str, today: date) -> date:
    if period == "week":
        return today - timedelta(days=today.weekday())
    if period == "month":
        return today.replace(day=1)
    if period == "year":
        return today.replace(month=1, day=1)
    raise ValueError(f"Unknown period '{period}'")


def _period_shift(period: str) -> relativedelta:
    return relativedelta(**{f"{period}s": 1})


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Accepts ISO dates, day-first bank dates ("31.01.2024"), free-form dates
    understood by dateutil, and relative forms: "today", "yesterday",
    "tomorrow", "3 days ago", "this/last/next week|month|year" (the first day
    of that period).

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = date.today()

    fixed = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if text in fixed:
        return fixed[text]

    match = _DAYS_AGO.match(text)
    if match:
        return today - timedelta(days=int(match.group(1)))

    words = text.split()
    if len(words) == 2 and words[0] in ("this", "last", "next") and words[1] in ("week", "month", "year"):
        start = _period_start(words[1], today)
        if words[0] == "last":
            return start - _period_shift(words[1])
        if words[0] == "next":
            return start + _period_shift(words[1])
        return start

    try:
        return date_parser.parse(text, dayfirst=bool(_DAY_FIRST.match(text))).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str) -> tuple[date, date]:
    """Get (start, end) dates for a named period.

    Args:
        period: One of this-week, this-month, this-year, last-week,
            last-month, last-year

    Returns:
        Inclusive date range; "this" periods end today

    Raises:
        ValueError: If period string is not recognized
    """
    which, _, unit = period.strip().lower().partition("-")
    if which not in ("this", "last") or unit not in ("week", "month", "year"):
        raise ValueError(
            f"Unknown period: '{period}'. Supported periods: this-week, this-month, "
            "this-year, last-week, last-month, last-year"
        )
    today = date.today()
    start = _period_start(unit, today)
    if which == "this":
        return start, today
    return start - _period_shift(unit), start - timedelta(days=1)
