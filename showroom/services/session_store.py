"""Persistence for refresh-token sessions and single-use tokens (password reset, email verification)."""

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import delete, update
from sqlalchemy.orm import Session, sessionmaker

from showroom.core.timeutils import Clock, utcnow
from showroom.models import AuthSession, SingleUseToken
from showroom.schemas.records import (
    ConsumedSingleUseToken,
    IssuedSingleUseToken,
    SessionRecord,
    SingleUseTokenKind,
)
from showroom.services.storage import unit_of_work

logger = logging.getLogger(__name__)

# 32 random bytes, hex-encoded (64 characters).
SINGLE_USE_TOKEN_BYTES = 32


class SessionStore:
    """
    Session and single-use token records. Every operation is one transaction.

    Single-use tokens are consumed with a conditional UPDATE (compare-and-set on
    is_used), so the database decides the single winner when the same token is
    redeemed concurrently.
    """

    def __init__(self, session_factory: sessionmaker[Session], clock: Clock = utcnow) -> None:
        self._session_factory = session_factory
        self._clock = clock

    # Sessions

    def create_session(self, user_id: str, refresh_token: str, expires_at: datetime) -> SessionRecord:
        """Persist a session; raises ConflictError if refresh_token already exists."""
        with unit_of_work(self._session_factory, "create_session") as db:
            record = AuthSession(user_id=user_id, refresh_token=refresh_token, expires_at=expires_at)
            db.add(record)
            db.flush()
            return SessionRecord.model_validate(record)

    def find_session_by_token(self, refresh_token: str) -> SessionRecord | None:
        with unit_of_work(self._session_factory, "find_session") as db:
            record = (
                db.query(AuthSession)
                .filter(AuthSession.refresh_token == refresh_token)
                .first()
            )
            return SessionRecord.model_validate(record) if record is not None else None

    def delete_session(self, refresh_token: str) -> int:
        """Idempotent; returns the number of sessions removed (0 or 1)."""
        with unit_of_work(self._session_factory, "delete_session") as db:
            result = db.execute(
                delete(AuthSession)
                .where(AuthSession.refresh_token == refresh_token)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

    def delete_all_sessions_for_user(self, user_id: str) -> int:
        """Idempotent; returns the number of sessions removed."""
        with unit_of_work(self._session_factory, "delete_user_sessions") as db:
            result = db.execute(
                delete(AuthSession)
                .where(AuthSession.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

    def rotate_session(
        self, old_refresh_token: str, new_refresh_token: str, expires_at: datetime
    ) -> SessionRecord | None:
        """
        Replace one session's refresh token in a single transaction.

        Returns None when the old session no longer exists (revoked, or already
        rotated by a concurrent refresh); nothing is inserted in that case.
        """
        with unit_of_work(self._session_factory, "rotate_session") as db:
            deleted = db.execute(
                delete(AuthSession)
                .where(AuthSession.refresh_token == old_refresh_token)
                .returning(AuthSession.user_id)
                .execution_options(synchronize_session=False)
            ).first()
            if deleted is None:
                return None
            record = AuthSession(
                user_id=deleted.user_id,
                refresh_token=new_refresh_token,
                expires_at=expires_at,
            )
            db.add(record)
            db.flush()
            return SessionRecord.model_validate(record)

    # Single-use tokens

    def create_single_use_token(
        self,
        kind: SingleUseTokenKind,
        user_id: str,
        ttl: timedelta,
        email: str | None = None,
    ) -> IssuedSingleUseToken:
        """Generate and persist an unused token valid for ttl."""
        token = secrets.token_hex(SINGLE_USE_TOKEN_BYTES)
        expires_at = self._clock() + ttl
        with unit_of_work(self._session_factory, "create_single_use_token") as db:
            db.add(
                SingleUseToken(
                    kind=kind.value,
                    token=token,
                    user_id=user_id,
                    email=email,
                    expires_at=expires_at,
                    is_used=False,
                )
            )
        logger.info(
            "Single-use token created",
            extra={"kind": kind.value, "user_id": user_id, "expires_at": expires_at.isoformat()},
        )
        return IssuedSingleUseToken(
            kind=kind, token=token, user_id=user_id, email=email, expires_at=expires_at
        )

    def invalidate_single_use_tokens(self, kind: SingleUseTokenKind, user_id: str) -> int:
        """Mark every outstanding token of kind for user_id as used."""
        with unit_of_work(self._session_factory, "invalidate_single_use_tokens") as db:
            result = db.execute(
                update(SingleUseToken)
                .where(
                    SingleUseToken.kind == kind.value,
                    SingleUseToken.user_id == user_id,
                    SingleUseToken.is_used.is_(False),
                )
                .values(is_used=True)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

    def peek_single_use_token(
        self, kind: SingleUseTokenKind, token: str
    ) -> ConsumedSingleUseToken | None:
        """Read-only validity check (unused and unexpired); does not consume."""
        now = self._clock()
        with unit_of_work(self._session_factory, "peek_single_use_token") as db:
            record = (
                db.query(SingleUseToken)
                .filter(
                    SingleUseToken.kind == kind.value,
                    SingleUseToken.token == token,
                    SingleUseToken.is_used.is_(False),
                    SingleUseToken.expires_at > now,
                )
                .first()
            )
            if record is None:
                return None
            return ConsumedSingleUseToken(kind=kind, user_id=record.user_id, email=record.email)

    def consume_single_use_token(
        self, kind: SingleUseTokenKind, token: str
    ) -> ConsumedSingleUseToken | None:
        """
        Atomically flip is_used when the token is unused and unexpired.

        Returns who the token belonged to, or None if it is unknown, already
        used or expired. Of any number of concurrent calls for one token, at
        most one gets a result.
        """
        now = self._clock()
        with unit_of_work(self._session_factory, "consume_single_use_token") as db:
            row = db.execute(
                update(SingleUseToken)
                .where(
                    SingleUseToken.kind == kind.value,
                    SingleUseToken.token == token,
                    SingleUseToken.is_used.is_(False),
                    SingleUseToken.expires_at > now,
                )
                .values(is_used=True)
                .returning(SingleUseToken.user_id, SingleUseToken.email)
                .execution_options(synchronize_session=False)
            ).first()
        if row is None:
            return None
        return ConsumedSingleUseToken(kind=kind, user_id=row.user_id, email=row.email)
