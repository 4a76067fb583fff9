"""
Date helpers for fill-up queries and display.

Fill-up dates are stored as naive UTC datetimes.
"""
from datetime import date, datetime, time, timedelta, timezone

from dateutil.relativedelta import relativedelta


def start_of_day(value):
    return datetime.combine(value.date() if isinstance(value, datetime) else value, time.min)


def end_of_day(value):
    """Last whole second of the day"""
    return start_of_day(value) + timedelta(days=1, seconds=-1)


def month_bounds(value):
    """(first second, last second) of the calendar month containing *value*"""
    start = start_of_day(value).replace(day=1)
    end = start + relativedelta(months=1, seconds=-1)
    return start, end


def parse_year_month(year_month_str):
    """Parse YYYY-MM string to a date on the first of that month"""
    parts = year_month_str.split('-')
    return date(int(parts[0]), int(parts[1]), 1)


def utc_today():
    return datetime.now(timezone.utc).date()


def relative_description(value, today=None):
    """
    'Today', 'Yesterday', or an abbreviated date like 'Mar 4, 2026'.

    *value* is naive UTC, so *today* defaults to the current UTC date.
    """
    today = today or utc_today()
    day = value.date() if isinstance(value, datetime) else value
    if day == today:
        return 'Today'
    if day == today - timedelta(days=1):
        return 'Yesterday'
    return f"{day.strftime('%b')} {day.day}, {day.year}"
