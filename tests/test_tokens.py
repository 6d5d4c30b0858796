"""Unit tests for showroom.core.tokens.TokenCodec: issuance, verification and expiry."""

import unittest
from datetime import UTC, datetime, timedelta

import jwt

from showroom.core.secret_provider import SecretProvider, SecretPurpose
from showroom.core.tokens import TokenCodec, TokenPurpose, VerificationStatus

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


class FakeClock:
    """Settable clock; tests move it forward explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def _provider() -> SecretProvider:
    return SecretProvider({SecretPurpose.ACCESS: ACCESS_SECRET, SecretPurpose.REFRESH: REFRESH_SECRET})


class TokenCodecTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock(datetime(2026, 3, 1, 9, 30, 15, 123456, tzinfo=UTC))
        self.codec = TokenCodec(
            _provider(),
            access_lifetime=timedelta(hours=1),
            refresh_lifetime=timedelta(days=7),
            clock=self.clock,
        )


class TestIssueAndVerify(TokenCodecTestCase):
    def test_claims_survive_round_trip(self) -> None:
        issued = self.codec.issue_access_token("user-1", "admin")
        result = self.codec.verify(issued.token, TokenPurpose.ACCESS)
        self.assertEqual(result.status, VerificationStatus.OK)
        self.assertTrue(result.ok)
        self.assertEqual(result.claims, issued.claims)
        self.assertEqual(result.claims.subject, "user-1")
        self.assertEqual(result.claims.role, "admin")

    def test_issue_time_is_whole_seconds(self) -> None:
        issued = self.codec.issue_access_token("user-1", "user")
        self.assertEqual(issued.claims.issued_at.microsecond, 0)
        self.assertEqual(issued.claims.lifetime, timedelta(hours=1))

    def test_refresh_lifetime_override(self) -> None:
        issued = self.codec.issue_refresh_token("user-1", "user", lifetime=timedelta(days=30))
        self.assertEqual(issued.claims.lifetime, timedelta(days=30))
        self.assertEqual(self.codec.issue_refresh_token("user-1", "user").claims.lifetime, timedelta(days=7))

    def test_tokens_are_unique(self) -> None:
        first = self.codec.issue_refresh_token("user-1", "user")
        second = self.codec.issue_refresh_token("user-1", "user")
        self.assertNotEqual(first.token, second.token)


class TestExpiry(TokenCodecTestCase):
    def test_valid_until_just_before_expiry(self) -> None:
        issued = self.codec.issue_access_token("user-1", "user")
        self.clock.now = issued.claims.expires_at - timedelta(seconds=1)
        self.assertTrue(self.codec.verify(issued.token, TokenPurpose.ACCESS).ok)

    def test_expired_at_exact_expiry(self) -> None:
        issued = self.codec.issue_access_token("user-1", "user")
        self.clock.now = issued.claims.expires_at
        result = self.codec.verify(issued.token, TokenPurpose.ACCESS)
        self.assertEqual(result.status, VerificationStatus.EXPIRED)
        self.assertIsNone(result.claims)

    def test_not_yet_valid_is_invalid(self) -> None:
        issued = self.codec.issue_access_token("user-1", "user")
        self.clock.now = issued.claims.issued_at - timedelta(seconds=1)
        self.assertEqual(
            self.codec.verify(issued.token, TokenPurpose.ACCESS).status, VerificationStatus.INVALID
        )


class TestRejection(TokenCodecTestCase):
    def test_access_token_is_not_a_refresh_token(self) -> None:
        access = self.codec.issue_access_token("user-1", "user")
        refresh = self.codec.issue_refresh_token("user-1", "user")
        self.assertEqual(
            self.codec.verify(access.token, TokenPurpose.REFRESH).status, VerificationStatus.INVALID
        )
        self.assertEqual(
            self.codec.verify(refresh.token, TokenPurpose.ACCESS).status, VerificationStatus.INVALID
        )

    def test_tampered_token_is_invalid(self) -> None:
        token = self.codec.issue_access_token("user-1", "user").token
        header, payload, signature = token.split(".")
        flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
        self.assertEqual(
            self.codec.verify(f"{header}.{payload}.{flipped}", TokenPurpose.ACCESS).status,
            VerificationStatus.INVALID,
        )

    def test_forged_role_is_invalid(self) -> None:
        issued = self.codec.issue_access_token("user-1", "user")
        payload = jwt.decode(issued.token, options={"verify_signature": False})
        payload["role"] = "super_admin"
        forged = jwt.encode(payload, "some-other-secret-0123456789abcdef", algorithm="HS256")
        self.assertEqual(
            self.codec.verify(forged, TokenPurpose.ACCESS).status, VerificationStatus.INVALID
        )

    def test_missing_claim_is_invalid(self) -> None:
        now = int(self.clock.now.timestamp())
        token = jwt.encode(
            {"sub": "user-1", "iat": now, "exp": now + 60, "typ": "access", "jti": "x"},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        self.assertEqual(
            self.codec.verify(token, TokenPurpose.ACCESS).status, VerificationStatus.INVALID
        )

    def test_purpose_given_as_plain_string(self) -> None:
        issued = self.codec.issue_access_token("user-1", "user")
        result = self.codec.verify(issued.token, "access")
        self.assertEqual(result.status, VerificationStatus.OK)
        self.assertIs(result.claims.purpose, TokenPurpose.ACCESS)
        self.assertEqual(
            self.codec.verify(issued.token, "refresh").status, VerificationStatus.INVALID
        )

    def test_unknown_purpose_is_invalid(self) -> None:
        issued = self.codec.issue_access_token("user-1", "user")
        for purpose in ("bogus", "", None):
            with self.subTest(purpose=purpose):
                self.assertEqual(
                    self.codec.verify(issued.token, purpose).status, VerificationStatus.INVALID
                )

    def test_garbage_is_invalid(self) -> None:
        for token in ("", "not-a-jwt", "a.b.c"):
            with self.subTest(token=token):
                self.assertEqual(
                    self.codec.verify(token, TokenPurpose.ACCESS).status,
                    VerificationStatus.INVALID,
                )


if __name__ == "__main__":
    unittest.main()
