"""
FastAPI dependencies (DB session, session user, trigger secret)
"""
import secrets

from fastapi import Depends, Request, HTTPException, status
from sqlalchemy.orm import Session

from flowtrack.config import get_settings
from flowtrack.infrastructure.db.session import get_db as _get_db
from flowtrack.infrastructure.db.models import User


# Re-exported so routers and tests share one dependency key
get_db = _get_db


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    User from the session cookie. Login itself happens in the external auth
    layer, which stores `user_id` in the session.

    Raises:
        HTTPException(401): no session or unknown user
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user


def is_authorized_cron(request: Request) -> bool:
    """
    Shared-secret check for trigger endpoints.

    Accepts `Authorization: Bearer <secret>`, `Authorization: <secret>` or
    `X-Cron-Secret: <secret>`. An empty CRON_SECRET leaves triggers open
    (local development).
    """
    secret = get_settings().CRON_SECRET
    if not secret:
        return True
    header = request.headers.get("authorization") or request.headers.get("x-cron-secret")
    if not header:
        return False
    if secrets.compare_digest(header.encode(), secret.encode()):
        return True
    if header.startswith("Bearer "):
        return secrets.compare_digest(header[len("Bearer "):].encode(), secret.encode())
    return False
