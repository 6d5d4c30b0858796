"""Discriminated results returned by AuthGateway operations."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class AuthErrorCode(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_SESSION = "invalid_session"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STORAGE_UNAVAILABLE = "storage_unavailable"


# One fixed message per code; never vary them by cause.
ERROR_MESSAGES: dict[AuthErrorCode, str] = {
    AuthErrorCode.INVALID_CREDENTIALS: "Invalid email or password.",
    AuthErrorCode.INVALID_SESSION: "Invalid or expired session.",
    AuthErrorCode.INVALID_OR_EXPIRED_TOKEN: "Invalid or expired token.",
    AuthErrorCode.FORBIDDEN: "Insufficient permissions.",
    AuthErrorCode.NOT_FOUND: "User not found.",
    AuthErrorCode.CONFLICT: "Could not complete the request, please retry.",
    AuthErrorCode.STORAGE_UNAVAILABLE: "Service temporarily unavailable, please retry.",
}

RETRYABLE_CODES = frozenset({AuthErrorCode.CONFLICT, AuthErrorCode.STORAGE_UNAVAILABLE})


class AuthFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: AuthErrorCode
    message: str
    retryable: bool = False

    @classmethod
    def of(cls, code: AuthErrorCode) -> "AuthFailure":
        return cls(code=code, message=ERROR_MESSAGES[code], retryable=code in RETRYABLE_CODES)


class AuthResult(BaseModel, Generic[T]):
    """Either value (success) or error (expected failure), never both."""

    model_config = ConfigDict(frozen=True)

    value: T | None = None
    error: AuthFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "AuthResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, code: AuthErrorCode) -> "AuthResult[T]":
        return cls(error=AuthFailure.of(code))


class UserProfile(BaseModel):
    """Public view of a user (no password hash)."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    email: str
    username: str | None = None
    role: str
    is_active: bool
    is_verified: bool = False


class TokenPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token lifetime in seconds")


class LoginSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    tokens: TokenPair
    user: UserProfile


class AuthDecision(BaseModel):
    """Answer to "may this bearer do that?". authenticated=False means 401, allowed=False means 403."""

    model_config = ConfigDict(frozen=True)

    authenticated: bool
    allowed: bool
    user_id: str | None = None
    role: str | None = None
