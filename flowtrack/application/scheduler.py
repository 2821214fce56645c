"""
Background scheduler — runs the periodic sweeps inside the FastAPI process.

Jobs:
  - Nudge sweep (every NUDGE_INTERVAL_MINUTES, default 10)
  - Team reports (daily at REPORT_HOUR_UTC:00 UTC, default 18:00)

Deployments that prefer an external cron leave SCHEDULER_ENABLED off and call
/api/cron/nudges and /api/cron/reports instead.
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from flowtrack.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True, timezone="UTC")


def _run_nudges():
    from flowtrack.infrastructure.db.session import get_session_factory
    from flowtrack.application.nudge_dispatcher import run_nudge_sweep

    Session = get_session_factory()
    db = Session()
    try:
        run_nudge_sweep(db)
    except Exception:
        logger.exception("Nudge sweep job failed")
    finally:
        db.close()


def _run_reports():
    from flowtrack.infrastructure.db.session import get_session_factory
    from flowtrack.application.report_aggregator import run_report_sweep

    Session = get_session_factory()
    db = Session()
    try:
        run_report_sweep(db)
    except Exception:
        logger.exception("Team report job failed")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler with both periodic jobs."""
    settings = get_settings()

    scheduler.add_job(
        _run_nudges,
        "interval",
        minutes=settings.NUDGE_INTERVAL_MINUTES,
        id="nudges",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.add_job(
        _run_reports,
        CronTrigger(hour=settings.REPORT_HOUR_UTC, minute=0, timezone="UTC"),
        id="team_reports",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: nudges (every %d min), team_reports (%02d:00 UTC)",
        settings.NUDGE_INTERVAL_MINUTES, settings.REPORT_HOUR_UTC,
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
