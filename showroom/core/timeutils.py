"""Duration grammar for token lifetimes and UTC clock helpers."""

import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from showroom.core.exceptions import ConfigurationError

# Integer magnitude followed by exactly one unit code, e.g. "15m" or "7d".
DURATION_PATTERN = re.compile(r"(\d+)([smhd])", re.ASCII)

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
}

Clock = Callable[[], datetime]


def parse_duration(value: str) -> timedelta:
    """
    Parse a compact duration string ("30s", "15m", "1h", "7d") into a timedelta.

    Raises ConfigurationError for anything else; callers parse at startup so a
    bad value aborts the process instead of failing individual requests.
    """
    match = DURATION_PATTERN.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise ConfigurationError(
            f"Invalid duration {value!r}: expected an integer followed by s, m, h or d (e.g. '15m')"
        )
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them naive); convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
