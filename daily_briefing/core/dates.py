"""Timezone-aware helpers for calendar-day boundaries and timestamps."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo

from zoneinfo import ZoneInfo


def resolve_timezone(timezone_name: str | None) -> tzinfo:
    """Resolve local/system timezone or a specific IANA timezone name."""
    if timezone_name:
        return ZoneInfo(timezone_name)

    local = datetime.now().astimezone().tzinfo
    if local is None:
        return timezone.utc
    return local


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Return the inclusive [start, end] of a calendar day in `tz`.

    The end is one microsecond before the next day's midnight, so DST days
    of 23 or 25 hours are handled by the timezone rather than by arithmetic
    on a fixed 24 hour span.
    """
    start = datetime.combine(day, time.min, tzinfo=tz)
    next_start = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, next_start - timedelta(microseconds=1)


def today(tz: tzinfo, now: datetime | None = None) -> date:
    """Calendar day of `now` (default: current time) in `tz`."""
    current = now or datetime.now(timezone.utc)
    return current.astimezone(tz).date()


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_epoch(value: datetime | None) -> int | None:
    if value is None:
        return None
    return int(ensure_aware(value).timestamp())


def from_epoch(value: int | float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def parse_day(value: str) -> date:
    """Parse an ISO calendar day (YYYY-MM-DD)."""
    return date.fromisoformat(value.strip())
