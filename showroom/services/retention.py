"""Data retention: delete expired sessions and spent single-use tokens."""

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_
from sqlalchemy.orm import Session

from showroom.core.timeutils import utcnow
from showroom.models import AuthSession, SingleUseToken

if TYPE_CHECKING:
    from showroom.core.config import Settings

logger = logging.getLogger(__name__)


def run_retention(
    session: Session, settings: "Settings", now: datetime | None = None
) -> tuple[int, int]:
    """
    Delete sessions past expires_at and single-use tokens that are used or expired.

    Returns (sessions_deleted, tokens_deleted). Idempotent: safe to run repeatedly.
    Live sessions and unused, unexpired tokens are never touched.
    """
    if not settings.RETENTION_ENABLED:
        logger.info("Retention is disabled (RETENTION_ENABLED=false); skipping.")
        return (0, 0)

    cutoff = now or utcnow()
    sessions_deleted = (
        session.query(AuthSession)
        .filter(AuthSession.expires_at <= cutoff)
        .delete(synchronize_session=False)
    )
    tokens_deleted = (
        session.query(SingleUseToken)
        .filter(or_(SingleUseToken.expires_at <= cutoff, SingleUseToken.is_used.is_(True)))
        .delete(synchronize_session=False)
    )
    session.commit()

    if sessions_deleted > 0 or tokens_deleted > 0:
        logger.info(
            "Retention run: cutoff=%s, sessions_deleted=%s, tokens_deleted=%s",
            cutoff.isoformat(),
            sessions_deleted,
            tokens_deleted,
        )
    return (sessions_deleted, tokens_deleted)
