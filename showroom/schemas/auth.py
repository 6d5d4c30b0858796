"""Request/response schemas for auth and user-administration endpoints."""

import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, model_validator

from showroom.core.permissions import Role
from showroom.core.security import (
    BCRYPT_MAX_BYTES,
    EMAIL_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    exceeds_bcrypt_limit,
)
from showroom.schemas.results import TokenPair, UserProfile

# One "@", something on both sides, a dot in the domain.
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# At least one lowercase letter, one uppercase letter and one digit.
PASSWORD_COMPLEXITY_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _check_email(v: str) -> str:
    v = v.strip()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email address")
    return v.lower()


def _check_new_password(v: str) -> str:
    if exceeds_bcrypt_limit(v):
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes when UTF-8 encoded")
    if not PASSWORD_COMPLEXITY_PATTERN.match(v):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number"
        )
    return v


EmailAddress = Annotated[
    str, Field(min_length=3, max_length=EMAIL_MAX_LEN), AfterValidator(_check_email)
]
NewPassword = Annotated[
    str,
    Field(min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN),
    AfterValidator(_check_new_password),
]


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailAddress = Field(..., description="Account email")
    # Complexity rules apply to new passwords only.
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")
    remember_me: bool = Field(default=False, description="Issue a longer-lived refresh token")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from login or a previous refresh")


class LogoutRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token of the session to end")


class TokenResponse(BaseModel):
    """Bearer tokens returned by /refresh."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenResponse":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            token_type=pair.token_type,
            expires_in=pair.expires_in,
        )


class LoginResponse(TokenResponse):
    """Tokens plus the authenticated user's profile."""

    user: UserProfile


class PasswordResetRequest(BaseModel):
    email: EmailAddress


class TokenRequest(BaseModel):
    """Body carrying a single-use token (reset validation, email verification)."""

    token: str = Field(..., min_length=1, max_length=128)


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1, max_length=128)
    new_password: NewPassword
    confirm_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)

    @model_validator(mode="after")
    def passwords_match(self) -> "PasswordResetConfirm":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: NewPassword


class MessageResponse(BaseModel):
    """Generic acknowledgement; the message never depends on account existence."""

    message: str


class ValidTokenResponse(BaseModel):
    valid: bool


class SessionsEndedResponse(BaseModel):
    message: str
    sessions_terminated: int


class RoleUpdateRequest(BaseModel):
    role: Role


class StatusUpdateRequest(BaseModel):
    is_active: bool
