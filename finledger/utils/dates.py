"""
"Today" and "now" in the configured business timezone
"""
import calendar
from datetime import date, datetime
from zoneinfo import ZoneInfo

from finledger.config import get_settings


def business_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def today() -> date:
    """Calendar date in settings.TIMEZONE (goal deadlines, report dates)"""
    return datetime.now(tz=business_tz()).date()


def now() -> datetime:
    return datetime.now(tz=business_tz())


def months_between(start: date, end: date) -> int:
    """
    Whole calendar months from start to end (negative if end is earlier)

    Example:
        >>> months_between(date(2024, 1, 15), date(2024, 3, 14))
        1
        >>> months_between(date(2024, 1, 15), date(2024, 3, 15))
        2
    """
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and end.day < start.day:
        months -= 1
    elif months < 0 and end.day > start.day:
        months += 1
    return months


def add_months(day: date, months: int) -> date:
    """
    Shift by calendar months, clamping to the last day of the target month

    Example:
        >>> add_months(date(2024, 5, 31), -3)
        datetime.date(2024, 2, 29)
    """
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))
