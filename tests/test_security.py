"""Unit tests for showroom.core.security.PasswordHasher (bcrypt)."""

import unittest

from pydantic import ValidationError

from showroom.core.security import BCRYPT_MAX_BYTES, BCRYPT_ROUNDS, PasswordHasher
from showroom.schemas.auth import ChangePasswordRequest, PasswordResetConfirm

# Minimum bcrypt cost keeps the suite fast; production uses BCRYPT_ROUNDS.
hasher = PasswordHasher(rounds=4)


class TestPasswordHasher(unittest.TestCase):
    def test_default_cost(self) -> None:
        self.assertEqual(PasswordHasher().rounds, BCRYPT_ROUNDS)
        self.assertEqual(BCRYPT_ROUNDS, 12)

    def test_hash_verifies(self) -> None:
        hashed = hasher.hash("Admin123!")
        self.assertNotEqual(hashed, "Admin123!")
        self.assertTrue(hasher.verify("Admin123!", hashed))

    def test_hash_is_salted(self) -> None:
        self.assertNotEqual(hasher.hash("Admin123!"), hasher.hash("Admin123!"))

    def test_cost_is_encoded_in_hash(self) -> None:
        hashed = PasswordHasher(rounds=5).hash("Admin123!")
        self.assertTrue(hashed.startswith("$2b$05$"))

    def test_single_character_mutations_fail(self) -> None:
        password = "Admin123!"
        hashed = hasher.hash(password)
        mutations = [
            "admin123!",
            "Admin123",
            "Admin123!!",
            "Bdmin123!",
            "Admin124!",
            " Admin123!",
        ]
        for candidate in mutations:
            with self.subTest(candidate=candidate):
                self.assertFalse(hasher.verify(candidate, hashed))

    def test_malformed_hash_is_false(self) -> None:
        for stored in ("", "not-a-bcrypt-hash", "$2b$04$short"):
            with self.subTest(stored=stored):
                self.assertFalse(hasher.verify("Admin123!", stored))

    def test_mutation_in_last_byte_fails(self) -> None:
        password = "Aa1" + "x" * (BCRYPT_MAX_BYTES - 3)
        hashed = hasher.hash(password)
        self.assertTrue(hasher.verify(password, hashed))
        self.assertFalse(hasher.verify(password[:-1] + "Y", hashed))

    def test_password_past_bcrypt_limit_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            hasher.hash("Aa1" + "x" * 97)
        with self.assertRaises(ValueError):
            # 37 two-byte characters: 74 bytes
            hasher.hash("\u00e9" * 37)

    def test_long_input_sharing_a_stored_prefix_fails(self) -> None:
        prefix = "Aa1" + "x" * (BCRYPT_MAX_BYTES - 3)
        hashed = hasher.hash(prefix)
        password = "Aa1" + "x" * 97
        mutated = password[:90] + "Y" + password[91:]
        self.assertFalse(hasher.verify(password, hashed))
        self.assertFalse(hasher.verify(mutated, hashed))

    def test_dummy_verification_never_succeeds(self) -> None:
        self.assertFalse(hasher.verify_dummy("showroom-dummy-password"))
        self.assertFalse(hasher.verify_dummy("anything"))



class TestNewPasswordSchema(unittest.TestCase):
    """New passwords are limited to what bcrypt actually reads."""

    def test_reset_rejects_password_past_bcrypt_limit(self) -> None:
        password = "Aa1" + "x" * 97
        with self.assertRaises(ValidationError):
            PasswordResetConfirm(token="t", new_password=password, confirm_password=password)

    def test_multibyte_password_is_measured_in_bytes(self) -> None:
        password = "Aa1" + "\u00e9" * 35
        with self.assertRaises(ValidationError):
            ChangePasswordRequest(current_password="Buyer123!", new_password=password)

    def test_password_at_limit_is_accepted(self) -> None:
        password = "Aa1" + "x" * (BCRYPT_MAX_BYTES - 3)
        body = PasswordResetConfirm(token="t", new_password=password, confirm_password=password)
        self.assertEqual(body.new_password, password)


if __name__ == "__main__":
    unittest.main()
