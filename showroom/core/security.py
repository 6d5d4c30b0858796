"""Password hashing and verification (bcrypt) for authentication."""

from functools import cached_property

import bcrypt

# Bcrypt cost (rounds): 2^12 iterations. Raising it later only affects new hashes.
BCRYPT_ROUNDS = 12

# bcrypt only reads the first 72 bytes; longer passwords are rejected rather than truncated.
BCRYPT_MAX_BYTES = 72

# Min/max lengths for email and password validation.
EMAIL_MAX_LEN = 320
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


def exceeds_bcrypt_limit(plain_password: str) -> bool:
    return len(plain_password.encode("utf-8")) > BCRYPT_MAX_BYTES


class PasswordHasher:
    """Salted, adaptive one-way hashing. Stateless apart from the fixed cost."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self.rounds = rounds

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Raises ValueError past BCRYPT_MAX_BYTES."""
        if exceeds_bcrypt_limit(plain_password):
            raise ValueError(f"Password exceeds {BCRYPT_MAX_BYTES} bytes")
        return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode(
            "utf-8"
        )

    def verify(self, plain_password: str, hashed: str) -> bool:
        """Verify a plain password against a stored hash; malformed hashes and over-long input give False."""
        try:
            if exceeds_bcrypt_limit(plain_password):
                # No stored hash can come from such input; still pay for one check.
                self.verify_dummy("")
                return False
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False

    @cached_property
    def _dummy_hash(self) -> str:
        return self.hash("showroom-dummy-password")

    def verify_dummy(self, plain_password: str) -> bool:
        """Spend one verification's worth of time when there is no account to check against."""
        self.verify(plain_password, self._dummy_hash)
        return False
