"""
Schedule Materializer — makes sure today's nudge rows exist for each user.

For every configured slot the local HH:MM is resolved to a UTC instant and a
`scheduled` nudge is inserted unless (user_id, scheduled_at) already exists.
The insert itself is the dedup check, so repeated and overlapping sweeps
cannot double-schedule a slot.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from flowtrack.config import Settings, get_settings
from flowtrack.application.nudge_configs import get_effective_config
from flowtrack.domain.statuses import NudgeStatus
from flowtrack.domain.time_resolver import InvalidSlot, InvalidTimezone, get_zone, resolve_slot_to_utc
from flowtrack.infrastructure.db.models import NudgeModel, User
from flowtrack.infrastructure.db.upsert import insert_if_absent

logger = logging.getLogger(__name__)


class ScheduleMaterializer:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def ensure_today(self, user: User, now: datetime) -> int:
        """
        Create missing nudges for the user's slots on their current local day.

        Returns the number of rows created by this call (0 when everything
        already existed or nudges are disabled).
        """
        config = get_effective_config(self.db, user.id, self.settings)
        if not config.enabled:
            return 0

        try:
            get_zone(config.timezone)
        except InvalidTimezone:
            logger.warning("User %d has unknown time zone %r, skipping", user.id, config.timezone)
            return 0

        created = 0
        for slot in config.times:
            try:
                scheduled_at = resolve_slot_to_utc(slot, config.timezone, now)
            except InvalidSlot:
                logger.warning("User %d has invalid nudge time %r, skipping slot", user.id, slot)
                continue

            if insert_if_absent(
                self.db,
                NudgeModel,
                {"user_id": user.id, "scheduled_at": scheduled_at, "status": NudgeStatus.SCHEDULED},
                keys=["user_id", "scheduled_at"],
            ):
                created += 1
                logger.info("Scheduled nudge for user %d at %s", user.id, scheduled_at.isoformat())

        self.db.commit()
        return created

    def ensure_all(self, users: list[User], now: datetime) -> int:
        """Sweep every user; one user's failure never stops the others."""
        total = 0
        for user in users:
            user_id = user.id
            try:
                total += self.ensure_today(user, now)
            except Exception:
                self.db.rollback()
                logger.exception("Materializing nudges failed for user_id=%s", user_id)
        return total
