"""
Daily manager report: per-team-member task rollup, stored and emailed.

Usage (cron / systemd timer / manual):
    python -m flowtrack.application.report_aggregator

One manager_reports row per (manager, UTC date): re-running the same day
refreshes that row instead of adding another.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from flowtrack.application.email_templates import (
    REPORT_EMPTY_SUBJECT, REPORT_SUBJECT, render_empty_team_report, render_team_report,
)
from flowtrack.application.mail_service import Mailer, get_mailer, safe_send
from flowtrack.application.task_snapshot import MemberStats, member_stats, utc_today
from flowtrack.domain.statuses import ReportStatus, Role
from flowtrack.domain.time_resolver import as_utc
from flowtrack.infrastructure.db.models import ManagerReportModel, TaskModel, User
from flowtrack.infrastructure.db.upsert import upsert

logger = logging.getLogger(__name__)


@dataclass
class ReportRunResult:
    managers_processed: int = 0
    sent: int = 0


class ReportAggregator:
    def __init__(self, db: Session, mailer: Mailer):
        self.db = db
        self.mailer = mailer

    def run_daily(self, now: datetime) -> ReportRunResult:
        now = as_utc(now)
        managers = (
            self.db.query(User)
            .filter(User.role == Role.MANAGER)
            .order_by(User.id)
            .all()
        )
        result = ReportRunResult(managers_processed=len(managers))

        for manager in managers:
            manager_id = manager.id
            try:
                if self._run_for_manager(manager, now):
                    result.sent += 1
            except Exception:
                self.db.rollback()
                logger.exception("Team report failed for manager_id=%s", manager_id)

        logger.info("Team reports: sent %d of %d manager(s)", result.sent, result.managers_processed)
        return result

    def build_team_stats(self, team: list[User], now: datetime) -> list[tuple[User, MemberStats]]:
        tasks_by_owner: dict[int, list[TaskModel]] = defaultdict(list)
        team_ids = [m.id for m in team]
        for task in self.db.query(TaskModel).filter(TaskModel.owner_id.in_(team_ids)).all():
            tasks_by_owner[task.owner_id].append(task)
        return [(m, member_stats(m.display_name, tasks_by_owner[m.id], now)) for m in team]

    def _run_for_manager(self, manager: User, now: datetime) -> bool:
        today = utc_today(now)
        team = (
            self.db.query(User)
            .filter(User.manager_id == manager.id)
            .order_by(User.name, User.id)
            .all()
        )

        if not team:
            # Keep the daily cadence visible even without a team; nothing is stored.
            return safe_send(
                self.mailer, manager.email, REPORT_EMPTY_SUBJECT,
                render_empty_team_report(today.isoformat()),
            )

        rows = self.build_team_stats(team, now)
        summary = {
            "date": today.isoformat(),
            "perUser": {str(member.id): stats.to_dict() for member, stats in rows},
        }

        upsert(
            self.db,
            ManagerReportModel,
            {
                "manager_id": manager.id,
                "report_date": today,
                "summary": summary,
                "status": ReportStatus.SCHEDULED,
                "sent_at": None,
            },
            keys=["manager_id", "report_date"],
            update_columns=["summary", "status", "sent_at"],
        )
        self.db.commit()

        ok = safe_send(
            self.mailer, manager.email, REPORT_SUBJECT,
            render_team_report(today.isoformat(), [stats for _, stats in rows]),
        )

        report = (
            self.db.query(ManagerReportModel)
            .filter(ManagerReportModel.manager_id == manager.id, ManagerReportModel.report_date == today)
            .execution_options(populate_existing=True)
            .one()
        )
        if ok:
            report.status = ReportStatus.SENT
            report.sent_at = now
        else:
            report.status = ReportStatus.FAILED
            logger.warning("Team report email failed for manager %d", manager.id)
        self.db.commit()
        return ok


def run_report_sweep(db: Session, now: datetime | None = None, mailer: Mailer | None = None) -> ReportRunResult:
    """Entry point shared by the HTTP trigger, the scheduler and the CLI."""
    return ReportAggregator(db, mailer or get_mailer()).run_daily(now or datetime.now(timezone.utc))


# ── CLI entry point ──
if __name__ == "__main__":
    from flowtrack.infrastructure.db.session import get_session_factory
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        res = run_report_sweep(db)
        logger.info("Sent %d team report(s) for %d manager(s)", res.sent, res.managers_processed)
    finally:
        db.close()
