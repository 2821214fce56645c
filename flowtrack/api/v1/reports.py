"""
Manager report history.
"""
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from flowtrack.api.deps import get_db, get_current_user
from flowtrack.application.nudge_configs import list_manager_reports
from flowtrack.domain.statuses import Role
from flowtrack.infrastructure.db.models import User

router = APIRouter(prefix="/api/reports", tags=["reports"])


class ReportResponse(BaseModel):
    id: int
    report_date: date
    status: str
    sent_at: datetime | None = None
    summary: dict | None = None


@router.get("", response_model=list[ReportResponse])
def list_reports(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if user.role != Role.MANAGER:
        raise HTTPException(status_code=403, detail="Only managers can view team reports")
    return [
        ReportResponse(
            id=r.id,
            report_date=r.report_date,
            status=r.status.value,
            sent_at=r.sent_at,
            summary=r.summary,
        )
        for r in list_manager_reports(db, user.id)
    ]
