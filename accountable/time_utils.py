"""Time helpers: UTC storage and coarse "time ago" rendering."""

from datetime import date, datetime, timezone
from typing import Optional, Union

import structlog
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


JUST_NOW = "just now"

logger = structlog.get_logger(__name__)

TimestampLike = Union[datetime, date, str]


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: TimestampLike) -> datetime:
    """
    Coerce a datetime, date or string into an aware UTC datetime.

    Raises ValueError/TypeError/OverflowError when the value cannot be read.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")
    return ensure_utc(date_parser.parse(value))


def _ago(amount: int, unit: str) -> str:
    return f"{amount} {unit}{'s' if amount > 1 else ''} ago"


def relative_time(
    timestamp: TimestampLike,
    now: Optional[datetime] = None,
) -> str:
    """
    Render how long ago `timestamp` was, using only the largest unit.

    Uses a calendar-aware difference, so a month is a real calendar month.
    Weeks come from the day component of that difference (days // 7).
    Unreadable input is returned unchanged.

    Example: 60 minutes before `now` renders as "1 hour ago",
    13 calendar months before renders as "1 year ago".
    """
    try:
        moment = parse_timestamp(timestamp)
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning(
            "relative_time_unparsable",
            value=repr(timestamp),
            error=str(e),
        )
        return timestamp if isinstance(timestamp, str) else str(timestamp)

    reference = ensure_utc(now) if now is not None else utcnow()
    if moment >= reference:
        return JUST_NOW

    delta = relativedelta(reference, moment)

    if delta.years > 0:
        return _ago(delta.years, "year")
    if delta.months > 0:
        return _ago(delta.months, "month")
    if delta.days >= 7:
        return _ago(delta.days // 7, "week")
    if delta.days > 0:
        return _ago(delta.days, "day")
    if delta.hours > 0:
        return _ago(delta.hours, "hour")
    if delta.minutes > 0:
        return _ago(delta.minutes, "minute")
    return JUST_NOW
