"""Process-wide object graph for request handlers, built once and injected via Depends."""

from functools import lru_cache

from showroom.core.config import get_settings
from showroom.core.database import SessionLocal
from showroom.core.secret_provider import SecretProvider
from showroom.services.auth_gateway import AuthGateway


@lru_cache
def get_secret_provider() -> SecretProvider:
    """Signing secrets; raises ConfigurationError on first use if production secrets are missing or weak."""
    return SecretProvider.from_settings(get_settings())


@lru_cache
def get_gateway() -> AuthGateway:
    """The AuthGateway shared by all requests (stateless apart from immutable config)."""
    return AuthGateway.from_settings(get_settings(), SessionLocal, get_secret_provider())
