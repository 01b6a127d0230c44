"""Tests for date parser with relative dates."""

import pytest
from datetime import date, timedelta
from dateutil.relativedelta import relativedelta
from tally.utils.date_parser import parse_date, get_date_range


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    assert parse_date("2024-01-15") == date(2024, 1, 15)


@pytest.mark.parametrize("text", ["31.01.2024", "31/01/2024", "05.02.2024"])
def test_parse_day_first_bank_dates(text):
    """Bank statements put the day first."""
    day, month, year = (int(part) for part in text.replace("/", ".").split("."))
    assert parse_date(text) == date(year, month, day)


def test_parse_today():
    assert parse_date("today") == date.today()


def test_parse_yesterday():
    assert parse_date(" Yesterday ") == date.today() - timedelta(days=1)


def test_parse_tomorrow():
    assert parse_date("tomorrow") == date.today() + timedelta(days=1)


def test_parse_days_ago():
    assert parse_date("3 days ago") == date.today() - timedelta(days=3)
    assert parse_date("1 day ago") == date.today() - timedelta(days=1)


def test_parse_last_month():
    """Test parsing 'last month' as the first day of last month."""
    expected = date.today().replace(day=1) - relativedelta(months=1)
    assert parse_date("last month") == expected


def test_parse_this_week():
    today = date.today()
    assert parse_date("this week") == today - timedelta(days=today.weekday())


def test_parse_next_year():
    assert parse_date("next year") == date(date.today().year + 1, 1, 1)


def test_parse_invalid():
    with pytest.raises(ValueError, match="Could not parse date"):
        parse_date("not a date")


def test_get_date_range_this_month():
    today = date.today()
    assert get_date_range("this-month") == (today.replace(day=1), today)


def test_get_date_range_last_month():
    start, end = get_date_range("last-month")
    first_of_month = date.today().replace(day=1)
    assert start == first_of_month - relativedelta(months=1)
    assert end == first_of_month - timedelta(days=1)


def test_get_date_range_last_year():
    year = date.today().year - 1
    assert get_date_range("last-year") == (date(year, 1, 1), date(year, 12, 31))


def test_get_date_range_invalid():
    with pytest.raises(ValueError, match="Unknown period"):
        get_date_range("next-month")
