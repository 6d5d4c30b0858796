"""Auth endpoints and route-guard dependencies (get_current_user, require_permission, require_role)."""

from collections.abc import Callable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from showroom.api.deps import get_gateway
from showroom.core.permissions import Permission, Role
from showroom.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshRequest,
    SessionsEndedResponse,
    TokenRequest,
    TokenResponse,
    ValidTokenResponse,
)
from showroom.schemas.results import AuthDecision, AuthErrorCode, AuthFailure, AuthResult, UserProfile
from showroom.services.auth_gateway import AuthGateway

router = APIRouter()
security = HTTPBearer(auto_error=False)

Gateway = Annotated[AuthGateway, Depends(get_gateway)]

_STATUS_BY_CODE = {
    AuthErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.INVALID_SESSION: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.INVALID_OR_EXPIRED_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    AuthErrorCode.STORAGE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

RESET_REQUESTED_MESSAGE = "If an account with that email exists, we have sent a password reset link."


def raise_for_failure(error: AuthFailure) -> None:
    """Translate a gateway failure into the matching HTTP error."""
    status_code = _STATUS_BY_CODE[error.code]
    headers: dict[str, str] | None = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    elif error.retryable:
        headers = {"Retry-After": "1"}
    raise HTTPException(
        status_code=status_code,
        detail={"message": error.message, "code": error.code.value},
        headers=headers,
    )


def unwrap(result: AuthResult[Any]) -> Any:
    if result.error is not None:
        raise_for_failure(result.error)
    return result.value


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Dependency: the raw Bearer token. Raises 401 if the header is missing."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


BearerToken = Annotated[str, Depends(get_bearer_token)]


def get_current_user(token: BearerToken, gateway: Gateway) -> UserProfile:
    """Dependency: require a valid access token for an active account and return its profile."""
    return unwrap(gateway.current_user(token))


def _enforce(decision: AuthDecision, forbidden_detail: str) -> AuthDecision:
    if not decision.authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=forbidden_detail)
    return decision


def require_permission(permission: Permission | str) -> Callable[..., AuthDecision]:
    """Dependency factory: 401 without a valid token, 403 unless the role grants permission."""

    def dependency(token: BearerToken, gateway: Gateway) -> AuthDecision:
        return _enforce(gateway.authorize(token, permission), "Insufficient permissions")

    return dependency


def require_role(role: Role | str) -> Callable[..., AuthDecision]:
    """Dependency factory: 401 without a valid token, 403 unless the bearer's role ranks at least role."""
    required = role.value if isinstance(role, Role) else role

    def dependency(token: BearerToken, gateway: Gateway) -> AuthDecision:
        return _enforce(gateway.authorize_role(token, role), f"Access denied. Required role: {required}")

    return dependency


require_admin = require_role(Role.ADMIN)
require_super_admin = require_role(Role.SUPER_ADMIN)


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, gateway: Gateway) -> LoginResponse:
    """
    Authenticate with email and password; returns access and refresh tokens.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    result = unwrap(gateway.login(body.email, body.password, remember_me=body.remember_me))
    tokens = result.tokens
    return LoginResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
        user=result.user,
    )


@router.post("/refresh", response_model=TokenResponse)
def refresh(body: RefreshRequest, gateway: Gateway) -> TokenResponse:
    """Exchange a refresh token for a new access token (and, with rotation, a new refresh token)."""
    return TokenResponse.from_pair(unwrap(gateway.refresh(body.refresh_token)))


@router.post("/logout", response_model=MessageResponse)
def logout(body: LogoutRequest, gateway: Gateway) -> MessageResponse:
    """End the session behind a refresh token. Safe to repeat."""
    unwrap(gateway.logout(body.refresh_token))
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=SessionsEndedResponse)
def logout_all(token: BearerToken, gateway: Gateway) -> SessionsEndedResponse:
    removed = unwrap(gateway.logout_all(token))
    return SessionsEndedResponse(
        message="Logged out from all devices successfully", sessions_terminated=removed
    )


@router.get("/me", response_model=UserProfile)
def me(current_user: Annotated[UserProfile, Depends(get_current_user)]) -> UserProfile:
    return current_user


@router.get("/permissions", response_model=list[str])
def my_permissions(
    current_user: Annotated[UserProfile, Depends(get_current_user)], gateway: Gateway
) -> list[str]:
    """Permissions granted by the caller's current role."""
    return gateway.permissions.get_permissions(current_user.role)


@router.post("/change-password", response_model=SessionsEndedResponse)
def change_password(
    body: ChangePasswordRequest, token: BearerToken, gateway: Gateway
) -> SessionsEndedResponse:
    """Change the caller's password. All sessions end; log in again with the new password."""
    removed = unwrap(gateway.change_password(token, body.current_password, body.new_password))
    return SessionsEndedResponse(message="Password changed successfully", sessions_terminated=removed)


@router.post("/password-reset/request", response_model=MessageResponse)
def request_password_reset(body: PasswordResetRequest, gateway: Gateway) -> MessageResponse:
    """Send a reset link if the account exists. The response is the same either way."""
    unwrap(gateway.request_password_reset(body.email))
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/password-reset/validate", response_model=ValidTokenResponse)
def validate_reset_token(body: TokenRequest, gateway: Gateway) -> ValidTokenResponse:
    result = gateway.validate_reset_token(body.token)
    if result.error is not None and result.error.retryable:
        raise_for_failure(result.error)
    return ValidTokenResponse(valid=result.ok)


@router.post("/password-reset/reset", response_model=MessageResponse)
def reset_password(body: PasswordResetConfirm, gateway: Gateway) -> MessageResponse:
    unwrap(gateway.reset_password(body.token, body.new_password))
    return MessageResponse(message="Password has been reset successfully.")


@router.post("/verify-email/request", response_model=MessageResponse)
def request_email_verification(token: BearerToken, gateway: Gateway) -> MessageResponse:
    unwrap(gateway.request_email_verification(token))
    return MessageResponse(message="If your email is not yet verified, a verification link is on its way.")


@router.post("/verify-email", response_model=UserProfile)
def verify_email(body: TokenRequest, gateway: Gateway) -> UserProfile:
    return unwrap(gateway.verify_email(body.token))
