"""
Trigger endpoints for an external scheduler (Vercel cron, systemd timer, ...).

Both are idempotent: calling them again just finds less (or nothing) to do.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from flowtrack.api.deps import get_db, is_authorized_cron
from flowtrack.config import get_settings
from flowtrack.application.mail_service import get_mailer
from flowtrack.application.nudge_dispatcher import run_nudge_sweep
from flowtrack.application.report_aggregator import run_report_sweep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


def _unauthorized() -> PlainTextResponse:
    return PlainTextResponse("Unauthorized", status_code=401)


@router.api_route("/nudges", methods=["GET", "POST"])
def cron_nudges(request: Request, db: Session = Depends(get_db)):
    if not is_authorized_cron(request):
        logger.warning("Rejected nudge trigger from %s", request.client.host if request.client else "?")
        return _unauthorized()

    settings = get_settings()
    result = run_nudge_sweep(
        db,
        now=datetime.now(timezone.utc),
        base_url=settings.PUBLIC_BASE_URL or str(request.base_url),
        mailer=get_mailer(settings),
        settings=settings,
    )
    return {
        "ensured_for_users": result.users_processed,
        "nudges_created": result.created,
        "nudges_sent": result.sent,
        "nudges_failed": result.failed,
    }


@router.api_route("/reports", methods=["GET", "POST"])
def cron_reports(request: Request, db: Session = Depends(get_db)):
    if not is_authorized_cron(request):
        logger.warning("Rejected report trigger from %s", request.client.host if request.client else "?")
        return _unauthorized()

    result = run_report_sweep(db, now=datetime.now(timezone.utc), mailer=get_mailer(get_settings()))
    return {
        "reports_sent": result.sent,
        "managers_considered": result.managers_processed,
    }
