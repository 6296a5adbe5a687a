"""UTC calendar helpers shared by the streak and daily-aggregate code.

Every calendar day in this package is a UTC day: a session that ends at
23:30 in New York belongs to the following UTC day. Naive datetimes are
taken to already be in UTC.
"""

from datetime import UTC, date, datetime, timedelta


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_day(value: datetime | date) -> date:
    """Calendar day (UTC midnight boundary) of a timestamp or date."""
    if isinstance(value, datetime):
        return to_utc(value).date()
    return value


def day_key(value: datetime | date) -> str:
    """ISO ``YYYY-MM-DD`` key for the UTC day of ``value``."""
    return utc_day(value).isoformat()


def day_before(day: date) -> date:
    return day - timedelta(days=1)


def start_of_utc_day(value: datetime) -> datetime:
    day = utc_day(value)
    return datetime(day.year, day.month, day.day, tzinfo=UTC)
