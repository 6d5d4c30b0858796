"""Pydantic request/response schemas, store records and gateway results."""

from showroom.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshRequest,
    RoleUpdateRequest,
    SessionsEndedResponse,
    StatusUpdateRequest,
    TokenRequest,
    TokenResponse,
    ValidTokenResponse,
)
from showroom.schemas.records import (
    ConsumedSingleUseToken,
    IssuedSingleUseToken,
    SessionRecord,
    SingleUseTokenKind,
    UserRecord,
)
from showroom.schemas.results import (
    AuthDecision,
    AuthErrorCode,
    AuthFailure,
    AuthResult,
    LoginSuccess,
    TokenPair,
    UserProfile,
)

__all__ = [
    "AuthDecision",
    "AuthErrorCode",
    "AuthFailure",
    "AuthResult",
    "ChangePasswordRequest",
    "ConsumedSingleUseToken",
    "IssuedSingleUseToken",
    "LoginRequest",
    "LoginResponse",
    "LoginSuccess",
    "LogoutRequest",
    "MessageResponse",
    "PasswordResetConfirm",
    "PasswordResetRequest",
    "RefreshRequest",
    "RoleUpdateRequest",
    "SessionRecord",
    "SessionsEndedResponse",
    "SingleUseTokenKind",
    "StatusUpdateRequest",
    "TokenPair",
    "TokenRequest",
    "TokenResponse",
    "UserProfile",
    "UserRecord",
    "ValidTokenResponse",
]
