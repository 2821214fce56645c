"""
Time Resolver — turns a recurring "HH:MM in zone Z" slot into today's
absolute UTC instant, and back.

Pure functions: "now" is always passed in, never read from the clock.
"""
import re
from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

SLOT_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
DEFAULT_TIMEZONE = "UTC"


class ScheduleConfigError(ValueError):
    """Bad nudge configuration; the caller skips the slot or user"""
    pass


class InvalidSlot(ScheduleConfigError):
    pass


class InvalidTimezone(ScheduleConfigError):
    pass


def parse_slot(local_time: str) -> time:
    """
    "9:05" / "09:05" -> time(9, 5). Raises InvalidSlot.
    """
    match = SLOT_RE.match(local_time.strip()) if isinstance(local_time, str) else None
    if not match:
        raise InvalidSlot(f"Invalid slot time: {local_time!r} (expected HH:MM, 00:00-23:59)")
    return time(int(match.group(1)), int(match.group(2)))


def get_zone(tz_name: str | None) -> ZoneInfo:
    """
    Resolve an IANA zone name. Empty / blank falls back to UTC; anything
    else that zoneinfo cannot load raises InvalidTimezone.
    """
    name = (tz_name or "").strip() or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimezone(f"Unknown time zone: {name!r}") from exc


def as_utc(dt: datetime) -> datetime:
    """Normalize to aware UTC; naive values (e.g. read back from SQLite) are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_slot_to_utc(local_time: str, tz_name: str | None, reference_now: datetime) -> datetime:
    """
    Absolute UTC instant of `local_time` on the current local date in `tz_name`.

    "Current local date" is reference_now seen from the zone, so 09:00 in
    America/New_York is 13:00Z in summer and 14:00Z in winter, and two sweeps
    on the same local day always agree.

    Wall times inside a spring-forward gap keep the pre-transition offset
    (they land just after the gap); ambiguous fall-back times take the first
    occurrence.
    """
    slot = parse_slot(local_time)
    zone = get_zone(tz_name)
    local_today = as_utc(reference_now).astimezone(zone).date()
    local_dt = datetime.combine(local_today, slot, tzinfo=zone)  # fold=0
    return local_dt.astimezone(timezone.utc)


def utc_to_local(instant: datetime, tz_name: str | None) -> datetime:
    """Inverse direction: a stored UTC instant seen in the user's zone."""
    return as_utc(instant).astimezone(get_zone(tz_name))


def format_slot(instant: datetime, tz_name: str | None) -> str:
    """UTC instant -> "HH:MM" wall clock in tz_name."""
    return utc_to_local(instant, tz_name).strftime("%H:%M")
