"""
Nudge dispatcher — materializes today's nudges, then emails every due one.

Usage (cron / systemd timer / manual):
    python -m flowtrack.application.nudge_dispatcher

Or call run_nudge_sweep(db) from your own scheduler.

Due = scheduled_at <= now, sent_at IS NULL, not acknowledged. Failed rows
match too, so a failed delivery is retried on the next sweep (bounded by
NUDGE_MAX_ATTEMPTS when that is > 0). Delivery is at-least-once.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from flowtrack.config import Settings, get_settings
from flowtrack.application.acknowledgements import build_ack_url
from flowtrack.application.email_templates import NUDGE_SUBJECT, render_nudge_email
from flowtrack.application.mail_service import Mailer, get_mailer, safe_send
from flowtrack.application.schedule_materializer import ScheduleMaterializer
from flowtrack.application.task_snapshot import build_snapshot
from flowtrack.domain.statuses import NudgeStatus
from flowtrack.domain.time_resolver import as_utc
from flowtrack.infrastructure.db.models import NudgeModel, TaskModel, User

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    users_processed: int = 0
    created: int = 0
    sent: int = 0
    failed: int = 0


class NudgeDispatcher:
    def __init__(self, db: Session, mailer: Mailer, settings: Settings | None = None):
        self.db = db
        self.mailer = mailer
        self.settings = settings or get_settings()

    def due_nudge_ids(self, now: datetime) -> list[int]:
        query = (
            self.db.query(NudgeModel.id)
            .filter(
                NudgeModel.scheduled_at <= as_utc(now),
                NudgeModel.sent_at.is_(None),
                NudgeModel.status != NudgeStatus.ACKNOWLEDGED,
            )
        )
        if self.settings.NUDGE_MAX_ATTEMPTS > 0:
            query = query.filter(NudgeModel.attempts < self.settings.NUDGE_MAX_ATTEMPTS)
        return [row[0] for row in query.order_by(NudgeModel.scheduled_at, NudgeModel.id).all()]

    def dispatch_due(self, now: datetime, base_url: str) -> DispatchResult:
        """
        Materialize first (a nudge must exist before it can be due), then
        deliver. Returns aggregate counts; per-nudge errors are logged and
        counted as failures.
        """
        now = as_utc(now)
        users = self.db.query(User).order_by(User.id).all()
        result = DispatchResult(users_processed=len(users))
        result.created = ScheduleMaterializer(self.db, self.settings).ensure_all(users, now)

        for nudge_id in self.due_nudge_ids(now):
            try:
                if self._deliver(nudge_id, now, base_url):
                    result.sent += 1
                else:
                    result.failed += 1
            except Exception:
                self.db.rollback()
                result.failed += 1
                logger.exception("Dispatching nudge %d failed", nudge_id)

        logger.info(
            "Nudge sweep: %d user(s), %d created, %d sent, %d failed",
            result.users_processed, result.created, result.sent, result.failed,
        )
        return result

    def _deliver(self, nudge_id: int, now: datetime, base_url: str) -> bool:
        nudge = self.db.get(NudgeModel, nudge_id)
        if nudge is None:
            return False
        user = self.db.get(User, nudge.user_id)
        nudge.attempts = (nudge.attempts or 0) + 1

        if user is None or not user.email:
            nudge.status = NudgeStatus.FAILED
            self.db.commit()
            logger.warning("No email for user %s, nudge %d marked failed", nudge.user_id, nudge_id)
            return False

        tasks = self.db.query(TaskModel).filter(TaskModel.owner_id == user.id).all()
        snapshot = build_snapshot(tasks, now)
        html = render_nudge_email(
            name=user.name or user.email or "there",
            snapshot=snapshot,
            ack_url=build_ack_url(base_url, nudge_id, self.settings.ACK_SECRET),
        )

        logger.info("Sending nudge %d to user %d (%s) scheduled_at %s", nudge_id, user.id, user.email, nudge.scheduled_at)
        if safe_send(self.mailer, user.email, NUDGE_SUBJECT, html):
            nudge.sent_at = now
            nudge.status = NudgeStatus.SENT
            nudge.payload = snapshot.to_payload()
            self.db.commit()
            return True

        nudge.status = NudgeStatus.FAILED
        self.db.commit()
        logger.warning("Delivery failed for nudge %d (attempt %d)", nudge_id, nudge.attempts)
        return False


def run_nudge_sweep(
    db: Session,
    now: datetime | None = None,
    base_url: str | None = None,
    mailer: Mailer | None = None,
    settings: Settings | None = None,
) -> DispatchResult:
    """Entry point shared by the HTTP trigger, the scheduler and the CLI."""
    settings = settings or get_settings()
    dispatcher = NudgeDispatcher(db, mailer or get_mailer(settings), settings)
    return dispatcher.dispatch_due(
        now or datetime.now(timezone.utc),
        base_url or settings.PUBLIC_BASE_URL or "http://localhost:8000",
    )


# ── CLI entry point ──
if __name__ == "__main__":
    from flowtrack.infrastructure.db.session import get_session_factory
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        res = run_nudge_sweep(db)
        logger.info("Dispatched %d nudge(s), %d failed", res.sent, res.failed)
    finally:
        db.close()
