"""
Time helpers.

All timestamps are stored as naive UTC datetimes.
"""
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def first_of_month(day: date) -> date:
    """First day of the month containing ``day``."""
    return day.replace(day=1)
