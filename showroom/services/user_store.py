"""User-record store consumed by the auth gateway."""

from sqlalchemy import func, update
from sqlalchemy.orm import Session, sessionmaker

from showroom.models import User
from showroom.schemas.records import UserRecord
from showroom.services.storage import unit_of_work


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    """Reads and writes users; every call is its own transaction."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_by_email(self, email: str) -> UserRecord | None:
        with unit_of_work(self._session_factory, "get_user_by_email") as db:
            user = (
                db.query(User)
                .filter(func.lower(User.email) == normalize_email(email))
                .first()
            )
            return UserRecord.model_validate(user) if user is not None else None

    def get_by_id(self, user_id: str) -> UserRecord | None:
        with unit_of_work(self._session_factory, "get_user_by_id") as db:
            user = db.get(User, user_id)
            return UserRecord.model_validate(user) if user is not None else None

    def create_user(
        self,
        email: str,
        password_hash: str,
        role: str = "user",
        username: str | None = None,
        is_active: bool = True,
        is_verified: bool = False,
    ) -> UserRecord:
        """Insert a user; raises ConflictError if the email is taken."""
        with unit_of_work(self._session_factory, "create_user") as db:
            user = User(
                email=normalize_email(email),
                password_hash=password_hash,
                username=username,
                role=role,
                is_active=is_active,
                is_verified=is_verified,
            )
            db.add(user)
            db.flush()
            db.refresh(user)
            return UserRecord.model_validate(user)

    def _update(self, operation: str, user_id: str, **values: object) -> bool:
        with unit_of_work(self._session_factory, operation) as db:
            result = db.execute(
                update(User)
                .where(User.id == user_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    def update_password(self, user_id: str, password_hash: str) -> bool:
        return self._update("update_password", user_id, password_hash=password_hash)

    def set_role(self, user_id: str, role: str) -> bool:
        return self._update("set_role", user_id, role=role)

    def set_active(self, user_id: str, is_active: bool) -> bool:
        return self._update("set_active", user_id, is_active=is_active)

    def mark_verified(self, user_id: str) -> bool:
        return self._update("mark_verified", user_id, is_verified=True)
