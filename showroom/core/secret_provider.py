"""Signing-secret resolution: validated from settings once, immutable afterwards."""

import logging
import secrets
import string
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType

from showroom.core.config import Settings
from showroom.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Production secrets shorter than this are rejected as weak.
MIN_SECRET_LENGTH = 32

GENERATED_SECRET_LENGTH = 64
GENERATED_SECRET_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


class SecretPurpose(str, Enum):
    """What a signing secret is used for; each purpose has its own key."""

    ACCESS = "access"
    REFRESH = "refresh"


# Purpose -> settings field / environment variable name.
SECRET_SETTING_NAMES: Mapping[SecretPurpose, str] = MappingProxyType(
    {
        SecretPurpose.ACCESS: "JWT_SECRET",
        SecretPurpose.REFRESH: "JWT_REFRESH_SECRET",
    }
)


def mask_secret(value: str) -> str:
    """Masked preview for debug logs: first 4 + last 4 characters."""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


def generate_secret(length: int = GENERATED_SECRET_LENGTH) -> str:
    """Random secret from a mixed alphanumeric/symbol alphabet (CSPRNG)."""
    return "".join(secrets.choice(GENERATED_SECRET_ALPHABET) for _ in range(length))


class SecretProvider:
    """
    Holds one signing secret per SecretPurpose.

    Build it once at process start with from_settings() and inject it wherever
    tokens are signed or verified. There is no API to change secrets afterwards.
    """

    __slots__ = ("_secrets",)

    def __init__(self, secrets_by_purpose: Mapping[SecretPurpose, str]) -> None:
        missing = [p.value for p in SecretPurpose if not secrets_by_purpose.get(p)]
        if missing:
            raise ConfigurationError(f"No signing secret for purpose(s): {', '.join(missing)}")
        self._secrets = MappingProxyType(dict(secrets_by_purpose))

    @classmethod
    def from_settings(cls, settings: Settings) -> "SecretProvider":
        """
        Resolve secrets from settings.

        Production: every secret must be present and at least MIN_SECRET_LENGTH
        characters, and DATABASE_URL must be set explicitly rather than left at its
        default; all problems are reported in one ConfigurationError.
        Development: absent secrets are generated for this process and a warning is logged.
        """
        resolved: dict[SecretPurpose, str] = {}
        errors: list[str] = []
        for purpose, setting_name in SECRET_SETTING_NAMES.items():
            configured = getattr(settings, setting_name)
            value = configured.get_secret_value() if configured is not None else ""
            if settings.is_production:
                if not value:
                    errors.append(f"{setting_name} is required in production")
                elif len(value) < MIN_SECRET_LENGTH:
                    errors.append(
                        f"{setting_name} must be at least {MIN_SECRET_LENGTH} characters long"
                    )
            elif not value:
                value = generate_secret()
                logger.warning(
                    "Generated %s signing secret for development (length=%s). Set %s in production.",
                    purpose.value,
                    len(value),
                    setting_name,
                )
            resolved[purpose] = value

        if settings.is_production and "DATABASE_URL" not in settings.model_fields_set:
            errors.append("DATABASE_URL is required in production")

        if errors:
            raise ConfigurationError("Secrets validation failed:\n" + "\n".join(errors))

        for purpose, value in resolved.items():
            logger.debug(
                "Signing secret loaded",
                extra={"purpose": purpose.value, "length": len(value), "preview": mask_secret(value)},
            )
        return cls(resolved)

    def get_signing_secret(self, purpose: SecretPurpose) -> str:
        """Return the non-empty secret for purpose."""
        return self._secrets[SecretPurpose(purpose)]
