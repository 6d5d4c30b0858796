"""HTTP tests for the /api/v1/auth and /api/v1/users routers (FastAPI TestClient)."""

import unittest

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from helpers import FakeClock, RecordingMailer, memory_database

from showroom.api.deps import get_gateway
from showroom.api.v1.auth import require_permission, require_role
from showroom.core.permissions import Permission, PermissionModel, Role
from showroom.core.secret_provider import SecretProvider, SecretPurpose
from showroom.core.security import PasswordHasher
from showroom.core.tokens import TokenCodec
from showroom.main import app
from showroom.schemas.results import AuthDecision
from showroom.services.auth_gateway import AuthGateway
from showroom.services.session_store import SessionStore
from showroom.services.user_store import UserStore

PREFIX = "/api/v1"

SECRETS = {
    SecretPurpose.ACCESS: "api-access-secret-0123456789abcdef0123",
    SecretPurpose.REFRESH: "api-refresh-secret-0123456789abcdef0123",
}


def _gateway(session_factory, mailer: RecordingMailer) -> AuthGateway:
    clock = FakeClock()
    return AuthGateway(
        users=UserStore(session_factory),
        sessions=SessionStore(session_factory, clock=clock),
        codec=TokenCodec(SecretProvider(SECRETS), clock=clock),
        hasher=PasswordHasher(rounds=4),
        permissions=PermissionModel(),
        mailer=mailer,
        clock=clock,
    )


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine, session_factory = memory_database()
        self.mailer = RecordingMailer()
        self.gateway = _gateway(session_factory, self.mailer)
        hasher = PasswordHasher(rounds=4)
        users = UserStore(session_factory)
        self.admin = users.create_user("admin@x.com", hasher.hash("Admin123!"), role="admin")
        self.buyer = users.create_user("buyer@x.com", hasher.hash("Buyer123!"), role="user")
        self.owner = users.create_user("owner@x.com", hasher.hash("Owner123!"), role="super_admin")
        app.dependency_overrides[get_gateway] = lambda: self.gateway
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.engine.dispose()

    def _login(self, email: str, password: str) -> dict:
        response = self.client.post(f"{PREFIX}/auth/login", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    @staticmethod
    def _bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


class TestLoginEndpoint(ApiTestCase):
    def test_login_returns_tokens_and_profile(self) -> None:
        body = self._login("admin@x.com", "Admin123!")
        self.assertEqual(body["token_type"], "bearer")
        self.assertEqual(body["user"]["email"], "admin@x.com")
        self.assertEqual(body["user"]["role"], "admin")
        self.assertNotIn("password_hash", body["user"])

    def test_bad_credentials_are_401(self) -> None:
        response = self.client.post(
            f"{PREFIX}/auth/login", json={"email": "admin@x.com", "password": "wrong"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"]["code"], "invalid_credentials")
        self.assertEqual(response.headers["www-authenticate"], "Bearer")

    def test_malformed_email_is_422(self) -> None:
        response = self.client.post(
            f"{PREFIX}/auth/login", json={"email": "not-an-email", "password": "Admin123!"}
        )
        self.assertEqual(response.status_code, 422)


class TestSessionEndpoints(ApiTestCase):
    def test_me_requires_bearer(self) -> None:
        self.assertEqual(self.client.get(f"{PREFIX}/auth/me").status_code, 401)
        response = self.client.get(f"{PREFIX}/auth/me", headers=self._bearer("garbage"))
        self.assertEqual(response.status_code, 401)

    def test_me_and_permissions(self) -> None:
        access = self._login("buyer@x.com", "Buyer123!")["access_token"]
        me = self.client.get(f"{PREFIX}/auth/me", headers=self._bearer(access))
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["email"], "buyer@x.com")
        perms = self.client.get(f"{PREFIX}/auth/permissions", headers=self._bearer(access))
        self.assertEqual(perms.json(), ["view_cars", "view_car_details"])

    def test_refresh_then_reuse(self) -> None:
        refresh_token = self._login("admin@x.com", "Admin123!")["refresh_token"]
        response = self.client.post(f"{PREFIX}/auth/refresh", json={"refresh_token": refresh_token})
        self.assertEqual(response.status_code, 200)
        self.assertNotEqual(response.json()["refresh_token"], refresh_token)
        reused = self.client.post(f"{PREFIX}/auth/refresh", json={"refresh_token": refresh_token})
        self.assertEqual(reused.status_code, 401)
        self.assertEqual(reused.json()["detail"]["code"], "invalid_session")

    def test_logout_twice(self) -> None:
        refresh_token = self._login("admin@x.com", "Admin123!")["refresh_token"]
        for _ in range(2):
            response = self.client.post(f"{PREFIX}/auth/logout", json={"refresh_token": refresh_token})
            self.assertEqual(response.status_code, 200)

    def test_logout_all(self) -> None:
        self._login("admin@x.com", "Admin123!")
        access = self._login("admin@x.com", "Admin123!")["access_token"]
        response = self.client.post(f"{PREFIX}/auth/logout-all", headers=self._bearer(access))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["sessions_terminated"], 2)


class TestPasswordEndpoints(ApiTestCase):
    def test_reset_request_response_does_not_depend_on_account(self) -> None:
        known = self.client.post(f"{PREFIX}/auth/password-reset/request", json={"email": "buyer@x.com"})
        unknown = self.client.post(f"{PREFIX}/auth/password-reset/request", json={"email": "nobody@x.com"})
        self.assertEqual(known.status_code, 200)
        self.assertEqual(known.json(), unknown.json())
        self.assertEqual(len(self.mailer.password_resets), 1)

    def test_reset_flow(self) -> None:
        self.client.post(f"{PREFIX}/auth/password-reset/request", json={"email": "buyer@x.com"})
        token = self.mailer.password_resets[-1][1]
        valid = self.client.post(f"{PREFIX}/auth/password-reset/validate", json={"token": token})
        self.assertEqual(valid.json(), {"valid": True})

        body = {"token": token, "new_password": "NewPass123", "confirm_password": "NewPass123"}
        self.assertEqual(self.client.post(f"{PREFIX}/auth/password-reset/reset", json=body).status_code, 200)
        second = self.client.post(f"{PREFIX}/auth/password-reset/reset", json=body)
        self.assertEqual(second.status_code, 401)
        self.assertEqual(second.json()["detail"]["code"], "invalid_or_expired_token")
        invalid = self.client.post(f"{PREFIX}/auth/password-reset/validate", json={"token": token})
        self.assertEqual(invalid.json(), {"valid": False})

    def test_weak_or_mismatched_new_password_is_422(self) -> None:
        for new_password, confirm in (("alllowercase1", "alllowercase1"), ("NewPass123", "NewPass124")):
            with self.subTest(new_password=new_password, confirm=confirm):
                response = self.client.post(
                    f"{PREFIX}/auth/password-reset/reset",
                    json={"token": "t", "new_password": new_password, "confirm_password": confirm},
                )
                self.assertEqual(response.status_code, 422)

    def test_change_password(self) -> None:
        access = self._login("buyer@x.com", "Buyer123!")["access_token"]
        response = self.client.post(
            f"{PREFIX}/auth/change-password",
            json={"current_password": "Buyer123!", "new_password": "Changed123"},
            headers=self._bearer(access),
        )
        self.assertEqual(response.status_code, 200)
        self._login("buyer@x.com", "Changed123")

    def test_verify_email(self) -> None:
        access = self._login("buyer@x.com", "Buyer123!")["access_token"]
        response = self.client.post(f"{PREFIX}/auth/verify-email/request", headers=self._bearer(access))
        self.assertEqual(response.status_code, 200)
        token = self.mailer.verifications[-1][1]
        verified = self.client.post(f"{PREFIX}/auth/verify-email", json={"token": token})
        self.assertEqual(verified.status_code, 200)
        self.assertTrue(verified.json()["is_verified"])


class TestUserEndpoints(ApiTestCase):
    def test_role_update(self) -> None:
        access = self._login("owner@x.com", "Owner123!")["access_token"]
        response = self.client.put(
            f"{PREFIX}/users/{self.buyer.id}/role", json={"role": "admin"}, headers=self._bearer(access)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "admin")

    def test_role_update_forbidden_for_admin(self) -> None:
        access = self._login("admin@x.com", "Admin123!")["access_token"]
        response = self.client.put(
            f"{PREFIX}/users/{self.buyer.id}/role", json={"role": "admin"}, headers=self._bearer(access)
        )
        self.assertEqual(response.status_code, 403)

    def test_unknown_role_is_422(self) -> None:
        access = self._login("owner@x.com", "Owner123!")["access_token"]
        response = self.client.put(
            f"{PREFIX}/users/{self.buyer.id}/role", json={"role": "owner"}, headers=self._bearer(access)
        )
        self.assertEqual(response.status_code, 422)

    def test_assignable_roles(self) -> None:
        access = self._login("owner@x.com", "Owner123!")["access_token"]
        response = self.client.get(f"{PREFIX}/users/roles", headers=self._bearer(access))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), ["user", "admin"])
        self.assertEqual(self.client.get(f"{PREFIX}/users/roles").status_code, 401)

    def test_status_update_unknown_user_is_404(self) -> None:
        access = self._login("owner@x.com", "Owner123!")["access_token"]
        response = self.client.put(
            f"{PREFIX}/users/no-such-user/status", json={"is_active": False}, headers=self._bearer(access)
        )
        self.assertEqual(response.status_code, 404)


class TestRouteGuards(unittest.TestCase):
    """require_permission / require_role mounted on a throwaway app, as another router would use them."""

    def setUp(self) -> None:
        self.engine, session_factory = memory_database()
        self.gateway = _gateway(session_factory, RecordingMailer())
        hasher = PasswordHasher(rounds=4)
        users = UserStore(session_factory)
        users.create_user("admin@x.com", hasher.hash("Admin123!"), role="admin")
        users.create_user("buyer@x.com", hasher.hash("Buyer123!"), role="user")

        guarded = FastAPI()

        @guarded.post("/inventory")
        def create_car(
            decision: AuthDecision = Depends(require_permission(Permission.CREATE_CAR)),
        ) -> dict[str, str | None]:
            return {"user_id": decision.user_id}

        @guarded.get("/dashboard")
        def dashboard(_: AuthDecision = Depends(require_role(Role.ADMIN))) -> dict[str, str]:
            return {"status": "ok"}

        guarded.dependency_overrides[get_gateway] = lambda: self.gateway
        self.client = TestClient(guarded)

    def tearDown(self) -> None:
        self.engine.dispose()

    def _access(self, email: str, password: str) -> dict[str, str]:
        token = self.gateway.login(email, password).value.tokens.access_token
        return {"Authorization": f"Bearer {token}"}

    def test_missing_token_is_401(self) -> None:
        self.assertEqual(self.client.post("/inventory").status_code, 401)
        self.assertEqual(self.client.get("/dashboard").status_code, 401)

    def test_insufficient_permission_is_403(self) -> None:
        headers = self._access("buyer@x.com", "Buyer123!")
        self.assertEqual(self.client.post("/inventory", headers=headers).status_code, 403)
        self.assertEqual(self.client.get("/dashboard", headers=headers).status_code, 403)

    def test_granted(self) -> None:
        headers = self._access("admin@x.com", "Admin123!")
        self.assertEqual(self.client.post("/inventory", headers=headers).status_code, 200)
        self.assertEqual(self.client.get("/dashboard", headers=headers).json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
