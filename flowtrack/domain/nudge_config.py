"""
NudgeConfig domain validation.

Rules:
  - 1..3 slots per user, each 24-hour HH:MM
  - no duplicate slots (after normalization "9:00" == "09:00")
  - timezone must be an IANA name zoneinfo can load; blank means UTC
"""
from dataclasses import dataclass

from flowtrack.domain.time_resolver import DEFAULT_TIMEZONE, ScheduleConfigError, get_zone, parse_slot

MAX_SLOTS = 3


class NudgeConfigValidationError(ValueError):
    pass


@dataclass(frozen=True)
class EffectiveNudgeConfig:
    """What the materializer actually runs with (stored row or defaults)"""
    times: list[str]
    timezone: str
    enabled: bool
    is_default: bool = False


def normalize_slot(value: str) -> str:
    """'9:5' is rejected, '9:05' -> '09:05'. Raises NudgeConfigValidationError."""
    try:
        return parse_slot(value).strftime("%H:%M")
    except ScheduleConfigError as exc:
        raise NudgeConfigValidationError(str(exc)) from exc


def validate_nudge_config(times: list[str], timezone: str | None) -> tuple[list[str], str]:
    """
    Validate and normalize a user's schedule.

    Returns (normalized_times, timezone_name); slot order is preserved.
    """
    if not times:
        raise NudgeConfigValidationError("At least one nudge time is required")
    if len(times) > MAX_SLOTS:
        raise NudgeConfigValidationError(f"At most {MAX_SLOTS} nudge times per day")

    normalized: list[str] = []
    for raw in times:
        slot = normalize_slot(raw)
        if slot in normalized:
            raise NudgeConfigValidationError(f"Duplicate nudge time: {slot}")
        normalized.append(slot)

    tz_name = (timezone or "").strip() or DEFAULT_TIMEZONE
    try:
        get_zone(tz_name)
    except ScheduleConfigError as exc:
        raise NudgeConfigValidationError(str(exc)) from exc

    return normalized, tz_name
