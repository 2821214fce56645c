"""
Nudge endpoints: capability-link acknowledgement, history, schedule settings.
"""
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel
from sqlalchemy.orm import Session

from flowtrack.api.deps import get_db, get_current_user
from flowtrack.config import get_settings
from flowtrack.application.acknowledgements import AcknowledgeNudgeUseCase, acknowledge_own_nudge
from flowtrack.application.nudge_configs import (
    SaveNudgeConfigUseCase, get_effective_config, list_user_nudges, count_nudges_by_status,
)
from flowtrack.domain.nudge_config import NudgeConfigValidationError
from flowtrack.infrastructure.db.models import NudgeModel, User

router = APIRouter(prefix="/api/nudges", tags=["nudges"])

templates = Jinja2Templates(directory=str(Path(__file__).parent.parent.parent / "templates"))


# === Request / response models ===

class NudgeConfigRequest(BaseModel):
    times: list[str]
    timezone: str = "UTC"
    enabled: bool = True


class NudgeConfigResponse(BaseModel):
    times: list[str]
    timezone: str
    enabled: bool
    is_default: bool = False


class NudgeResponse(BaseModel):
    id: int
    scheduled_at: datetime
    sent_at: datetime | None = None
    acknowledged_at: datetime | None = None
    status: str
    payload: dict | None = None


def _nudge_response(n: NudgeModel) -> NudgeResponse:
    return NudgeResponse(
        id=n.id,
        scheduled_at=n.scheduled_at,
        sent_at=n.sent_at,
        acknowledged_at=n.acknowledged_at,
        status=n.status.value,
        payload=n.payload,
    )


# === Routes ===

@router.get("/ack")
def ack_link(request: Request, i: str | None = None, t: str | None = None, db: Session = Depends(get_db)):
    """Redeem the link from a nudge email. No login, no hint whether the id exists."""
    ok = AcknowledgeNudgeUseCase(db, get_settings().ACK_SECRET).execute(i, t, datetime.now(timezone.utc))
    return templates.TemplateResponse(
        request,
        "pages/ack.html",
        {"ok": ok},
        status_code=200 if ok else 400,
    )


@router.get("", response_model=list[NudgeResponse])
def list_nudges(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [_nudge_response(n) for n in list_user_nudges(db, user.id)]


@router.get("/stats")
def nudge_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return count_nudges_by_status(db, user.id)


@router.post("/{nudge_id}/ack", response_model=NudgeResponse)
def ack_own(nudge_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    nudge = acknowledge_own_nudge(db, user.id, nudge_id, datetime.now(timezone.utc))
    if nudge is None:
        raise HTTPException(status_code=404, detail="Nudge not found")
    return _nudge_response(nudge)


@router.get("/config", response_model=NudgeConfigResponse)
def get_config(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    cfg = get_effective_config(db, user.id)
    return NudgeConfigResponse(times=cfg.times, timezone=cfg.timezone, enabled=cfg.enabled, is_default=cfg.is_default)


@router.put("/config", response_model=NudgeConfigResponse)
def save_config(body: NudgeConfigRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        cfg = SaveNudgeConfigUseCase(db).execute(user.id, body.times, body.timezone, body.enabled)
    except NudgeConfigValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return NudgeConfigResponse(times=cfg.times, timezone=cfg.timezone, enabled=cfg.enabled)
