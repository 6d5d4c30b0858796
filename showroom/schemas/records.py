"""Immutable records returned by the user and session stores."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class UserRecord(BaseModel):
    """User row as seen by the auth core (includes the password hash; never serialize it out)."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    email: str
    password_hash: str
    username: str | None = None
    role: str
    is_active: bool
    is_verified: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SessionRecord(BaseModel):
    """Persisted refresh-token session."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    user_id: str
    refresh_token: str
    expires_at: datetime
    created_at: datetime | None = None


class SingleUseTokenKind(str, Enum):
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFICATION = "email_verification"


class IssuedSingleUseToken(BaseModel):
    """Freshly created single-use token; token is the value to deliver to the user."""

    model_config = ConfigDict(frozen=True)

    kind: SingleUseTokenKind
    token: str
    user_id: str
    email: str | None = None
    expires_at: datetime


class ConsumedSingleUseToken(BaseModel):
    """What a successful consumption yields: who the token was for."""

    model_config = ConfigDict(frozen=True)

    kind: SingleUseTokenKind
    user_id: str
    email: str | None = None
