"""
Nudge settings and history use cases for the owning user / manager.
"""
from sqlalchemy import func
from sqlalchemy.orm import Session

from flowtrack.config import Settings, get_settings
from flowtrack.domain.nudge_config import EffectiveNudgeConfig, validate_nudge_config
from flowtrack.infrastructure.db.models import NudgeConfigModel, NudgeModel, ManagerReportModel
from flowtrack.infrastructure.db.upsert import upsert


def get_effective_config(db: Session, user_id: int, settings: Settings | None = None) -> EffectiveNudgeConfig:
    """Stored NudgeConfig for the user, or the configured defaults if none exists."""
    settings = settings or get_settings()
    row = db.get(NudgeConfigModel, user_id)
    if row is None:
        return EffectiveNudgeConfig(
            times=settings.default_nudge_times(),
            timezone=settings.NUDGE_DEFAULT_TIMEZONE,
            enabled=True,
            is_default=True,
        )
    return EffectiveNudgeConfig(
        times=list(row.times or settings.default_nudge_times()),
        timezone=(row.timezone or "").strip() or settings.NUDGE_DEFAULT_TIMEZONE,
        enabled=bool(row.enabled),
    )


class SaveNudgeConfigUseCase:
    """
    Use case: upsert the user's own nudge schedule in place.

    Raises NudgeConfigValidationError on bad input; nothing is written then.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, times: list[str], timezone: str | None, enabled: bool = True) -> EffectiveNudgeConfig:
        normalized, tz_name = validate_nudge_config(times, timezone)
        upsert(
            self.db,
            NudgeConfigModel,
            {"user_id": user_id, "times": normalized, "timezone": tz_name, "enabled": enabled},
            keys=["user_id"],
            update_columns=["times", "timezone", "enabled"],
        )
        self.db.commit()
        return EffectiveNudgeConfig(times=normalized, timezone=tz_name, enabled=enabled)


def list_user_nudges(db: Session, user_id: int, limit: int = 100) -> list[NudgeModel]:
    """Nudge history for one user, newest slot first."""
    return (
        db.query(NudgeModel)
        .filter(NudgeModel.user_id == user_id)
        .order_by(NudgeModel.scheduled_at.desc())
        .limit(limit)
        .all()
    )


def list_manager_reports(db: Session, manager_id: int, limit: int = 60) -> list[ManagerReportModel]:
    """Daily reports for one manager, newest date first."""
    return (
        db.query(ManagerReportModel)
        .filter(ManagerReportModel.manager_id == manager_id)
        .order_by(ManagerReportModel.report_date.desc())
        .limit(limit)
        .all()
    )


def count_nudges_by_status(db: Session, user_id: int) -> dict[str, int]:
    """{"sent": 12, "acknowledged": 9, ...} for the history header."""
    rows = (
        db.query(NudgeModel.status, func.count(NudgeModel.id))
        .filter(NudgeModel.user_id == user_id)
        .group_by(NudgeModel.status)
        .all()
    )
    return {status.value: count for status, count in rows}
