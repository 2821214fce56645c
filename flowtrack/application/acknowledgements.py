"""
Acknowledgement capability links.

A nudge email carries /api/nudges/ack?i=<id>&t=<token> where
token = hex HMAC-SHA256(ACK_SECRET, str(id)). Whoever holds the link may mark
that one nudge acknowledged without logging in, and nothing else.
"""
import hashlib
import hmac
import logging
from datetime import datetime
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from flowtrack.domain.statuses import NudgeStatus
from flowtrack.infrastructure.db.models import NudgeModel

logger = logging.getLogger(__name__)

ACK_PATH = "/api/nudges/ack"


def build_ack_token(instance_id: int | str, secret: str) -> str:
    return hmac.new(secret.encode(), str(instance_id).encode(), hashlib.sha256).hexdigest()


def build_ack_url(base_url: str, instance_id: int | str, secret: str) -> str:
    query = urlencode({"i": str(instance_id), "t": build_ack_token(instance_id, secret)})
    return f"{base_url.rstrip('/')}{ACK_PATH}?{query}"


def verify_ack_token(instance_id: str | None, token: str | None, secret: str) -> bool:
    """Constant-time comparison; missing values are simply invalid."""
    if not instance_id or not token:
        return False
    expected = build_ack_token(instance_id, secret)
    return hmac.compare_digest(expected.encode(), token.encode())


def _mark_acknowledged(nudge: NudgeModel, now: datetime) -> None:
    # First acknowledgement wins the timestamp; repeats are no-ops.
    if nudge.acknowledged_at is None:
        nudge.acknowledged_at = now
    nudge.status = NudgeStatus.ACKNOWLEDGED


class AcknowledgeNudgeUseCase:
    """
    Use case: redeem an acknowledgement link.

    Returns False for a bad token, a malformed id and an unknown id alike, so
    the caller cannot tell whether a nudge exists.
    """

    def __init__(self, db: Session, secret: str):
        self.db = db
        self.secret = secret

    def execute(self, instance_id: str | None, token: str | None, now: datetime) -> bool:
        if not verify_ack_token(instance_id, token, self.secret):
            return False
        try:
            nudge_id = int(instance_id)
        except ValueError:
            return False

        nudge = self.db.get(NudgeModel, nudge_id)
        if nudge is None:
            return False

        _mark_acknowledged(nudge, now)
        self.db.commit()
        logger.info("Nudge %d acknowledged via link (user_id=%s)", nudge.id, nudge.user_id)
        return True


def acknowledge_own_nudge(db: Session, user_id: int, nudge_id: int, now: datetime) -> NudgeModel | None:
    """Logged-in owner acknowledges from the history list (no token needed)."""
    nudge = (
        db.query(NudgeModel)
        .filter(NudgeModel.id == nudge_id, NudgeModel.user_id == user_id)
        .first()
    )
    if nudge is None:
        return None
    _mark_acknowledged(nudge, now)
    db.commit()
    return nudge
