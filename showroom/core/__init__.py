"""Core configuration, secrets, hashing, tokens and permissions."""

from showroom.core.config import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
