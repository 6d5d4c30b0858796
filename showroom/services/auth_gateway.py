"""
AuthGateway: login, refresh, logout, password reset, email verification and
permission checks. The single entry point used by route guards.

Expected failures come back as AuthResult errors, never exceptions. The error
codes are coarse: login says "invalid credentials" whether the
account is unknown, deactivated or the password is wrong.
"""

import functools
import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from showroom.core.config import Settings
from showroom.core.exceptions import ConflictError, StorageUnavailable, UnknownRoleError
from showroom.core.permissions import Permission, PermissionModel, Role
from showroom.core.secret_provider import SecretProvider
from showroom.core.security import PasswordHasher
from showroom.core.timeutils import Clock, as_utc, parse_duration, utcnow
from showroom.core.tokens import TokenClaims, TokenCodec, TokenPurpose
from showroom.schemas.records import SingleUseTokenKind, UserRecord
from showroom.schemas.results import (
    AuthDecision,
    AuthErrorCode,
    AuthResult,
    LoginSuccess,
    TokenPair,
    UserProfile,
)
from showroom.services.mailer import LoggingMailer, MailDeliveryError, Mailer
from showroom.services.session_store import SessionStore
from showroom.services.user_store import UserStore

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., AuthResult[Any]])

DEFAULT_REMEMBER_ME_LIFETIME = timedelta(days=30)
DEFAULT_SINGLE_USE_TOKEN_TTL = timedelta(hours=24)

_DENIED = AuthDecision(authenticated=False, allowed=False)


def _storage_guarded(func: F) -> F:
    """Turn storage exceptions into retryable AuthResult errors. No retry is attempted."""

    @functools.wraps(func)
    def wrapper(self: "AuthGateway", *args: Any, **kwargs: Any) -> AuthResult[Any]:
        try:
            return func(self, *args, **kwargs)
        except StorageUnavailable as e:
            logger.warning(
                "Auth operation failed: storage unavailable",
                extra={"operation": func.__name__, "reason": e.message},
            )
            return AuthResult.failure(AuthErrorCode.STORAGE_UNAVAILABLE)
        except ConflictError as e:
            logger.warning(
                "Auth operation failed: conflict",
                extra={"operation": func.__name__, "reason": e.message},
            )
            return AuthResult.failure(AuthErrorCode.CONFLICT)

    return wrapper  # type: ignore[return-value]


def _profile(user: UserRecord) -> UserProfile:
    return UserProfile(
        id=user.id,
        email=user.email,
        username=user.username,
        role=user.role,
        is_active=user.is_active,
        is_verified=user.is_verified,
    )


class AuthGateway:
    """Orchestrates hashing, tokens, permissions and the stores. Holds no mutable state."""

    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        codec: TokenCodec,
        hasher: PasswordHasher,
        permissions: PermissionModel,
        mailer: Mailer,
        remember_me_lifetime: timedelta = DEFAULT_REMEMBER_ME_LIFETIME,
        reset_token_ttl: timedelta = DEFAULT_SINGLE_USE_TOKEN_TTL,
        verification_token_ttl: timedelta = DEFAULT_SINGLE_USE_TOKEN_TTL,
        rotate_refresh_tokens: bool = True,
        clock: Clock = utcnow,
    ) -> None:
        self._users = users
        self._sessions = sessions
        self._codec = codec
        self._hasher = hasher
        self._permissions = permissions
        self._mailer = mailer
        self.remember_me_lifetime = remember_me_lifetime
        self.reset_token_ttl = reset_token_ttl
        self.verification_token_ttl = verification_token_ttl
        self.rotate_refresh_tokens = rotate_refresh_tokens
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: sessionmaker[Session],
        secret_provider: SecretProvider,
        mailer: Mailer | None = None,
        clock: Clock = utcnow,
    ) -> "AuthGateway":
        """Wire the production object graph from settings."""
        return cls(
            users=UserStore(session_factory),
            sessions=SessionStore(session_factory, clock=clock),
            codec=TokenCodec.from_settings(settings, secret_provider, clock=clock),
            hasher=PasswordHasher(),
            permissions=PermissionModel(strict=not settings.is_production),
            mailer=mailer or LoggingMailer(),
            remember_me_lifetime=parse_duration(settings.JWT_REMEMBER_ME_EXPIRES_IN),
            reset_token_ttl=parse_duration(settings.PASSWORD_RESET_TOKEN_TTL),
            verification_token_ttl=parse_duration(settings.EMAIL_VERIFICATION_TOKEN_TTL),
            rotate_refresh_tokens=settings.REFRESH_TOKEN_ROTATION,
            clock=clock,
        )

    @property
    def permissions(self) -> PermissionModel:
        return self._permissions

    def _token_pair(self, access_token: str, refresh_token: str) -> TokenPair:
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self._codec.access_lifetime.total_seconds()),
        )

    # Anonymous -> Authenticated

    @_storage_guarded
    def login(self, email: str, password: str, remember_me: bool = False) -> AuthResult[LoginSuccess]:
        """Check credentials and open a session. Every rejection is INVALID_CREDENTIALS."""
        user = self._users.get_by_email(email)
        if user is None:
            self._hasher.verify_dummy(password)
            logger.info("Login rejected", extra={"reason": "unknown_account"})
            return AuthResult.failure(AuthErrorCode.INVALID_CREDENTIALS)
        if not self._hasher.verify(password, user.password_hash):
            logger.info("Login rejected", extra={"reason": "bad_password", "user_id": user.id})
            return AuthResult.failure(AuthErrorCode.INVALID_CREDENTIALS)
        if not user.is_active:
            logger.info("Login rejected", extra={"reason": "inactive", "user_id": user.id})
            return AuthResult.failure(AuthErrorCode.INVALID_CREDENTIALS)

        lifetime = self.remember_me_lifetime if remember_me else self._codec.refresh_lifetime
        access = self._codec.issue_access_token(user.id, user.role)
        refresh = self._codec.issue_refresh_token(user.id, user.role, lifetime=lifetime)
        self._sessions.create_session(user.id, refresh.token, refresh.claims.expires_at)

        logger.info("Login succeeded", extra={"user_id": user.id, "role": user.role})
        return AuthResult.success(
            LoginSuccess(tokens=self._token_pair(access.token, refresh.token), user=_profile(user))
        )

    # Authenticated -> Refreshed

    @_storage_guarded
    def refresh(self, refresh_token: str) -> AuthResult[TokenPair]:
        """
        Exchange a live refresh token for a new access token.

        The session must still exist, be unexpired and belong to an active user;
        the new access token carries the user's current role. With rotation on,
        the refresh token is replaced as well (same lifetime) and the old one
        stops working.
        """
        verified = self._codec.verify(refresh_token, TokenPurpose.REFRESH)
        if not verified.ok or verified.claims is None:
            return AuthResult.failure(AuthErrorCode.INVALID_SESSION)
        claims = verified.claims

        session = self._sessions.find_session_by_token(refresh_token)
        if session is None or session.user_id != claims.subject:
            logger.info("Refresh rejected", extra={"reason": "no_session", "user_id": claims.subject})
            return AuthResult.failure(AuthErrorCode.INVALID_SESSION)
        if as_utc(session.expires_at) <= self._clock():
            self._sessions.delete_session(refresh_token)
            logger.info("Refresh rejected", extra={"reason": "session_expired", "user_id": claims.subject})
            return AuthResult.failure(AuthErrorCode.INVALID_SESSION)

        user = self._users.get_by_id(claims.subject)
        if user is None or not user.is_active:
            self._sessions.delete_session(refresh_token)
            logger.info("Refresh rejected", extra={"reason": "inactive", "user_id": claims.subject})
            return AuthResult.failure(AuthErrorCode.INVALID_SESSION)

        access = self._codec.issue_access_token(user.id, user.role)
        if not self.rotate_refresh_tokens:
            return AuthResult.success(self._token_pair(access.token, refresh_token))

        new_refresh = self._codec.issue_refresh_token(user.id, user.role, lifetime=claims.lifetime)
        rotated = self._sessions.rotate_session(
            refresh_token, new_refresh.token, new_refresh.claims.expires_at
        )
        if rotated is None:
            # Revoked or rotated by a concurrent refresh between lookup and rotation.
            logger.info("Refresh rejected", extra={"reason": "rotated_concurrently", "user_id": user.id})
            return AuthResult.failure(AuthErrorCode.INVALID_SESSION)
        logger.info("Session rotated", extra={"user_id": user.id})
        return AuthResult.success(self._token_pair(access.token, new_refresh.token))

    # -> LoggedOut

    @_storage_guarded
    def logout(self, refresh_token: str) -> AuthResult[int]:
        """Delete the session unconditionally; logging out twice is fine."""
        removed = self._sessions.delete_session(refresh_token)
        logger.info("Logout", extra={"sessions_removed": removed})
        return AuthResult.success(removed)

    @_storage_guarded
    def logout_all(self, access_token: str) -> AuthResult[int]:
        """End every session of the bearer's user."""
        claims = self.authenticate(access_token)
        if claims is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        removed = self._sessions.delete_all_sessions_for_user(claims.subject)
        logger.info("Logout from all sessions", extra={"user_id": claims.subject, "sessions_removed": removed})
        return AuthResult.success(removed)

    # Password reset

    @_storage_guarded
    def request_password_reset(self, email: str) -> AuthResult[None]:
        """
        Issue a reset token and hand it to the mailer if an active account exists.

        Succeeds either way so callers cannot learn whether the email is registered.
        A new request supersedes earlier, still-unused reset links.
        """
        user = self._users.get_by_email(email)
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return AuthResult.success(None)

        self._sessions.invalidate_single_use_tokens(SingleUseTokenKind.PASSWORD_RESET, user.id)
        issued = self._sessions.create_single_use_token(
            SingleUseTokenKind.PASSWORD_RESET, user.id, ttl=self.reset_token_ttl
        )
        try:
            self._mailer.send_password_reset(user.email, issued.token)
        except MailDeliveryError as e:
            logger.error(
                "Password reset mail could not be sent",
                extra={"user_id": user.id, "reason": e.message},
            )
        return AuthResult.success(None)

    @_storage_guarded
    def validate_reset_token(self, token: str) -> AuthResult[None]:
        """Check a reset token without consuming it (for the reset form)."""
        if self._sessions.peek_single_use_token(SingleUseTokenKind.PASSWORD_RESET, token) is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        return AuthResult.success(None)

    @_storage_guarded
    def reset_password(self, token: str, new_password: str) -> AuthResult[int]:
        """
        Consume a reset token, store the new password hash and end all of the
        user's sessions. Returns the number of sessions ended.
        """
        consumed = self._sessions.consume_single_use_token(SingleUseTokenKind.PASSWORD_RESET, token)
        if consumed is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        user = self._users.get_by_id(consumed.user_id)
        if user is None or not user.is_active:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)

        self._users.update_password(user.id, self._hasher.hash(new_password))
        removed = self._sessions.delete_all_sessions_for_user(user.id)
        logger.info("Password reset completed", extra={"user_id": user.id, "sessions_removed": removed})
        return AuthResult.success(removed)

    @_storage_guarded
    def change_password(
        self, access_token: str, current_password: str, new_password: str
    ) -> AuthResult[int]:
        """Change password for the bearer after re-checking the current one; ends all sessions."""
        claims = self.authenticate(access_token)
        if claims is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        user = self._users.get_by_id(claims.subject)
        if user is None or not user.is_active:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        if not self._hasher.verify(current_password, user.password_hash):
            logger.info("Password change rejected", extra={"reason": "bad_password", "user_id": user.id})
            return AuthResult.failure(AuthErrorCode.INVALID_CREDENTIALS)

        self._users.update_password(user.id, self._hasher.hash(new_password))
        removed = self._sessions.delete_all_sessions_for_user(user.id)
        logger.info("Password changed", extra={"user_id": user.id, "sessions_removed": removed})
        return AuthResult.success(removed)

    # Email verification

    @_storage_guarded
    def request_email_verification(self, access_token: str) -> AuthResult[None]:
        """Send a verification token for the bearer's current email. No-op if already verified."""
        claims = self.authenticate(access_token)
        if claims is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        user = self._users.get_by_id(claims.subject)
        if user is None or not user.is_active:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        if user.is_verified:
            return AuthResult.success(None)

        self._sessions.invalidate_single_use_tokens(SingleUseTokenKind.EMAIL_VERIFICATION, user.id)
        issued = self._sessions.create_single_use_token(
            SingleUseTokenKind.EMAIL_VERIFICATION,
            user.id,
            ttl=self.verification_token_ttl,
            email=user.email,
        )
        try:
            self._mailer.send_email_verification(user.email, issued.token)
        except MailDeliveryError as e:
            logger.error(
                "Verification mail could not be sent",
                extra={"user_id": user.id, "reason": e.message},
            )
        return AuthResult.success(None)

    @_storage_guarded
    def verify_email(self, token: str) -> AuthResult[UserProfile]:
        """Consume a verification token; the address must still be the account's email."""
        consumed = self._sessions.consume_single_use_token(
            SingleUseTokenKind.EMAIL_VERIFICATION, token
        )
        if consumed is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        user = self._users.get_by_id(consumed.user_id)
        if user is None or user.email != consumed.email:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        self._users.mark_verified(user.id)
        logger.info("Email verified", extra={"user_id": user.id})
        return AuthResult.success(_profile(user.model_copy(update={"is_verified": True})))

    @_storage_guarded
    def current_user(self, access_token: str) -> AuthResult[UserProfile]:
        """Fresh profile of the bearer; deactivated or vanished accounts count as unauthenticated."""
        claims = self.authenticate(access_token)
        if claims is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        user = self._users.get_by_id(claims.subject)
        if user is None or not user.is_active:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        return AuthResult.success(_profile(user))

    # Per-request checks (stateless)

    def authenticate(self, access_token: str) -> TokenClaims | None:
        """Claims of a valid access token, else None. Callers must not tell expired from invalid."""
        return self._codec.verify(access_token, TokenPurpose.ACCESS).claims

    def _decide(self, access_token: str, check: Callable[[str], bool]) -> AuthDecision:
        claims = self.authenticate(access_token)
        if claims is None:
            return _DENIED
        if not self._permissions.is_valid_role(claims.role):
            if self._permissions.strict:
                raise UnknownRoleError(f"Access token for {claims.subject} carries unknown role {claims.role!r}")
            logger.warning("Token carries unknown role", extra={"user_id": claims.subject, "role": claims.role})
            return AuthDecision(authenticated=True, allowed=False, user_id=claims.subject, role=claims.role)
        return AuthDecision(
            authenticated=True,
            allowed=check(claims.role),
            user_id=claims.subject,
            role=claims.role,
        )

    def authorize(self, access_token: str, required_permission: Permission | str) -> AuthDecision:
        """May the bearer perform required_permission? Pure: no storage access, no mutation."""
        return self._decide(
            access_token,
            lambda role: self._permissions.has_permission(role, required_permission),
        )

    def authorize_role(self, access_token: str, required_role: Role | str) -> AuthDecision:
        """Does the bearer hold required_role or a higher one?"""
        return self._decide(
            access_token,
            lambda role: self._permissions.has_higher_or_equal_role(role, required_role),
        )

    # Back-office user administration

    def _load_actor(self, access_token: str) -> UserRecord | None:
        claims = self.authenticate(access_token)
        if claims is None:
            return None
        actor = self._users.get_by_id(claims.subject)
        if actor is None or not actor.is_active:
            return None
        return actor

    def _may_manage(self, actor: UserRecord, target: UserRecord) -> bool:
        return actor.id != target.id and not self._permissions.has_higher_or_equal_role(
            target.role, actor.role
        )

    def _grantable_roles(self, actor: UserRecord) -> list[str]:
        if not self._permissions.has_permission(actor.role, Permission.MANAGE_ROLES):
            return []
        return [
            role
            for role in self._permissions.roles
            if not self._permissions.has_higher_or_equal_role(role, actor.role)
        ]

    @_storage_guarded
    def assignable_roles(self, access_token: str) -> AuthResult[list[str]]:
        """Roles the caller may grant, lowest first. Empty without manage_roles."""
        actor = self._load_actor(access_token)
        if actor is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        return AuthResult.success(self._grantable_roles(actor))

    @_storage_guarded
    def assign_role(
        self, access_token: str, target_user_id: str, new_role: Role | str
    ) -> AuthResult[UserProfile]:
        """
        Change another user's role.

        The caller needs manage_roles, may only grant roles strictly below their
        own and may only touch users ranked strictly below them. The target's
        sessions are ended so the new role applies from their next login.
        """
        actor = self._load_actor(access_token)
        if actor is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        new_role = new_role.value if isinstance(new_role, Role) else new_role
        if new_role not in self._grantable_roles(actor):
            logger.info("Role change denied", extra={"actor_id": actor.id, "requested_role": new_role})
            return AuthResult.failure(AuthErrorCode.FORBIDDEN)

        target = self._users.get_by_id(target_user_id)
        if target is None:
            return AuthResult.failure(AuthErrorCode.NOT_FOUND)
        if not self._may_manage(actor, target):
            logger.info("Role change denied", extra={"actor_id": actor.id, "target_id": target.id})
            return AuthResult.failure(AuthErrorCode.FORBIDDEN)

        self._users.set_role(target.id, new_role)
        self._sessions.delete_all_sessions_for_user(target.id)
        logger.info(
            "Role changed",
            extra={"actor_id": actor.id, "target_id": target.id, "old_role": target.role, "new_role": new_role},
        )
        return AuthResult.success(_profile(target.model_copy(update={"role": new_role})))

    @_storage_guarded
    def set_user_active(
        self, access_token: str, target_user_id: str, active: bool
    ) -> AuthResult[UserProfile]:
        """Soft-(de)activate another user; deactivation ends all their sessions."""
        actor = self._load_actor(access_token)
        if actor is None:
            return AuthResult.failure(AuthErrorCode.INVALID_OR_EXPIRED_TOKEN)
        if not self._permissions.has_permission(actor.role, Permission.MANAGE_USERS):
            return AuthResult.failure(AuthErrorCode.FORBIDDEN)

        target = self._users.get_by_id(target_user_id)
        if target is None:
            return AuthResult.failure(AuthErrorCode.NOT_FOUND)
        if not self._may_manage(actor, target):
            return AuthResult.failure(AuthErrorCode.FORBIDDEN)

        self._users.set_active(target.id, active)
        if not active:
            self._sessions.delete_all_sessions_for_user(target.id)
        logger.info(
            "User status changed",
            extra={"actor_id": actor.id, "target_id": target.id, "is_active": active},
        )
        return AuthResult.success(_profile(target.model_copy(update={"is_active": active})))
