"""
Civil date / zoned time helpers.

Every conversion between a civil (timezone-free) date or wall-clock time and an
absolute instant goes through here, always with an explicit zone. Nothing in
this module looks at the process's local timezone.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from coachbook.services.validators import InvalidArgument

UTC = timezone.utc


def resolve_zone(tz_id) -> ZoneInfo:
    if isinstance(tz_id, ZoneInfo):
        return tz_id
    try:
        return ZoneInfo(str(tz_id))
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidArgument(f"Unknown timezone {tz_id!r}") from e


def parse_civil_date(value) -> date:
    """YYYY-MM-DD -> date. Accepts a date as-is (but not a datetime)."""
    if isinstance(value, datetime):
        raise InvalidArgument("Expected a civil date, got a datetime")
    if isinstance(value, date):
        return value
    s = str(value or "").strip()
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidArgument(f"Invalid date {value!r} (expected YYYY-MM-DD)") from None


def parse_wall_time(value) -> time:
    """HH:MM (24h) -> time."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    s = str(value or "").strip()
    try:
        hh, mm = s.split(":")[:2]
        return time(int(hh), int(mm))
    except ValueError:
        raise InvalidArgument(f"Invalid time {value!r} (expected HH:MM)") from None


def civil_weekday(d: date) -> int:
    # date.weekday() is Mon=0..Sun=6; stored rules use Sun=0..Sat=6
    return (d.weekday() + 1) % 7


def as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def zoned_instant(d: date, t: time, zone) -> datetime:
    """The absolute instant of wall-clock time `t` on civil day `d` in `zone`."""
    tz = resolve_zone(zone)
    local = datetime(d.year, d.month, d.day, t.hour, t.minute, tzinfo=tz)
    return local.astimezone(UTC)


def day_bounds(d: date, zone) -> tuple[datetime, datetime]:
    """00:00:00 and 23:59:59 of civil day `d` in `zone`, as UTC instants."""
    tz = resolve_zone(zone)
    start = datetime(d.year, d.month, d.day, 0, 0, 0, tzinfo=tz)
    end = datetime(d.year, d.month, d.day, 23, 59, 59, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def local_parts(instant: datetime, zone) -> dict:
    """Display fields for an instant as seen in `zone`."""
    local = as_utc(instant).astimezone(resolve_zone(zone))
    hour12 = local.hour % 12 or 12
    return {
        "datetime": as_utc(instant).isoformat().replace("+00:00", "Z"),
        "time": f"{hour12}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}",
        "date": local.date().isoformat(),
    }


def minutes(n: int) -> timedelta:
    return timedelta(minutes=n)
