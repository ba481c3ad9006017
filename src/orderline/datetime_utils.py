"""
Datetime utilities.

Order documents carry timestamps as epoch milliseconds; these helpers convert
between that wire form and timezone-aware datetimes.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Current instant as epoch milliseconds."""
    return to_ms(utcnow())


def to_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def from_ms(value: int, tz: str | ZoneInfo | None = None) -> datetime:
    """Epoch milliseconds to an aware datetime, in `tz` when given, else UTC."""
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if tz is None:
        return moment
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    return moment.astimezone(zone)
