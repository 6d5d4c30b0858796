"""SQLAlchemy ORM models."""

from showroom.models.base import Base
from showroom.models.session import AuthSession
from showroom.models.single_use_token import SingleUseToken
from showroom.models.user import User

__all__ = ["AuthSession", "Base", "SingleUseToken", "User"]
