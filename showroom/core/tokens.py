"""Signed, time-bound bearer tokens (JWT) for access and refresh."""

import uuid
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import jwt
from pydantic import BaseModel, ConfigDict

from showroom.core.config import Settings
from showroom.core.secret_provider import SecretProvider, SecretPurpose
from showroom.core.timeutils import Clock, parse_duration, utcnow

DEFAULT_ACCESS_TOKEN_LIFETIME = timedelta(hours=1)
DEFAULT_REFRESH_TOKEN_LIFETIME = timedelta(days=7)

REQUIRED_CLAIMS = ["sub", "role", "iat", "exp", "typ", "jti"]


class TokenPurpose(str, Enum):
    """Token type; also selects the signing secret."""

    ACCESS = "access"
    REFRESH = "refresh"


_SECRET_FOR_PURPOSE = {
    TokenPurpose.ACCESS: SecretPurpose.ACCESS,
    TokenPurpose.REFRESH: SecretPurpose.REFRESH,
}


class TokenClaims(BaseModel):
    """Decoded payload of a verified token."""

    model_config = ConfigDict(frozen=True)

    subject: str
    role: str
    issued_at: datetime
    expires_at: datetime
    purpose: TokenPurpose
    token_id: str

    @property
    def lifetime(self) -> timedelta:
        return self.expires_at - self.issued_at


class SignedToken(BaseModel):
    """Encoded token plus the claims it carries."""

    model_config = ConfigDict(frozen=True)

    token: str
    claims: TokenClaims


class VerificationStatus(str, Enum):
    OK = "ok"
    EXPIRED = "expired"
    INVALID = "invalid"


class VerificationResult(BaseModel):
    """
    Outcome of TokenCodec.verify.

    claims is set only when status is OK. Callers that face the outside world
    must collapse EXPIRED and INVALID into one "unauthenticated" answer.
    """

    model_config = ConfigDict(frozen=True)

    status: VerificationStatus
    claims: TokenClaims | None = None

    @property
    def ok(self) -> bool:
        return self.status is VerificationStatus.OK


_EXPIRED = VerificationResult(status=VerificationStatus.EXPIRED)
_INVALID = VerificationResult(status=VerificationStatus.INVALID)


class TokenCodec:
    """Issues and verifies HMAC-signed JWTs with one secret per purpose."""

    def __init__(
        self,
        secret_provider: SecretProvider,
        access_lifetime: timedelta = DEFAULT_ACCESS_TOKEN_LIFETIME,
        refresh_lifetime: timedelta = DEFAULT_REFRESH_TOKEN_LIFETIME,
        algorithm: str = "HS256",
        clock: Clock = utcnow,
    ) -> None:
        self._secrets = secret_provider
        self.access_lifetime = access_lifetime
        self.refresh_lifetime = refresh_lifetime
        self.algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(
        cls, settings: Settings, secret_provider: SecretProvider, clock: Clock = utcnow
    ) -> "TokenCodec":
        return cls(
            secret_provider,
            access_lifetime=parse_duration(settings.JWT_EXPIRES_IN),
            refresh_lifetime=parse_duration(settings.JWT_REFRESH_EXPIRES_IN),
            algorithm=settings.JWT_ALGORITHM,
            clock=clock,
        )

    def _secret(self, purpose: TokenPurpose) -> str:
        return self._secrets.get_signing_secret(_SECRET_FOR_PURPOSE[purpose])

    def _issue(
        self, purpose: TokenPurpose, subject: str, role: str, lifetime: timedelta
    ) -> SignedToken:
        # JWT times have one-second resolution; truncate so claims round-trip exactly.
        now = self._clock().astimezone(UTC).replace(microsecond=0)
        claims = TokenClaims(
            subject=str(subject),
            role=role,
            issued_at=now,
            expires_at=now + lifetime,
            purpose=purpose,
            token_id=uuid.uuid4().hex,
        )
        payload: dict[str, Any] = {
            "sub": claims.subject,
            "role": claims.role,
            "iat": int(claims.issued_at.timestamp()),
            "exp": int(claims.expires_at.timestamp()),
            "typ": purpose.value,
            "jti": claims.token_id,
        }
        token = jwt.encode(payload, self._secret(purpose), algorithm=self.algorithm)
        return SignedToken(token=token, claims=claims)

    def issue_access_token(self, subject: str, role: str) -> SignedToken:
        """Short-lived token embedding user id and role."""
        return self._issue(TokenPurpose.ACCESS, subject, role, self.access_lifetime)

    def issue_refresh_token(
        self, subject: str, role: str, lifetime: timedelta | None = None
    ) -> SignedToken:
        """Long-lived token; the caller persists it as a session."""
        return self._issue(
            TokenPurpose.REFRESH, subject, role, lifetime or self.refresh_lifetime
        )

    def verify(self, token: str, purpose: TokenPurpose | str) -> VerificationResult:
        """
        Check signature, token type and that now is within [issued_at, expires_at).

        Never raises: malformed, mis-signed or wrong-purpose tokens are INVALID,
        tokens outside their window are EXPIRED.
        """
        if not token or not isinstance(token, str):
            return _INVALID
        try:
            purpose = TokenPurpose(purpose)
        except (TypeError, ValueError):
            return _INVALID
        try:
            payload = jwt.decode(
                token,
                self._secret(purpose),
                algorithms=[self.algorithm],
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError:
            return _INVALID

        try:
            if payload["typ"] != purpose.value:
                return _INVALID
            claims = TokenClaims(
                subject=str(payload["sub"]),
                role=str(payload["role"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
                purpose=purpose,
                token_id=str(payload["jti"]),
            )
        except (TypeError, ValueError, OverflowError, OSError):
            return _INVALID

        now = self._clock()
        if now < claims.issued_at:
            return _INVALID
        if now >= claims.expires_at:
            return _EXPIRED
        return VerificationResult(status=VerificationStatus.OK, claims=claims)
