"""HTTP-level tests: routing, auth dependencies, role checks and error-to-status mapping."""

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.main import create_app
from app.models import User, UserRole
from app.services.errors import StoreUnavailableError
from tests.support import make_database, make_settings, make_user

API = "/api/v1"
PASSWORD = "Secure123!"


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        self.database = make_database()
        self.app = create_app(database=self.database)
        self.app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(self.app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def tearDown(self) -> None:
        self.app.dependency_overrides.clear()

    def register(self, email: str = "jane@example.com", username: str = "jane", **extra: object):
        body = {
            "email": email,
            "username": username,
            "first_name": "Jane",
            "last_name": "Doe",
            "password": PASSWORD,
        }
        body.update(extra)
        return self.client.post(f"{API}/auth/register", json=body)

    def login(self, email: str = "jane@example.com", password: str = PASSWORD):
        return self.client.post(f"{API}/auth/login", json={"email": email, "password": password})

    def create_staff(self, role: UserRole, email: str, username: str) -> dict[str, str]:
        """Create a user with the given role directly in the store and return auth headers."""
        session = self.database.session()
        try:
            make_user(session, self.settings, email=email, username=username,
                      password=PASSWORD, role=role)
        finally:
            session.close()
        token = self.login(email=email).json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    def reset_token_for(self, email: str) -> str | None:
        session = self.database.session()
        try:
            user = session.query(User).filter(User.email == email).one()
            return user.password_reset_token
        finally:
            session.close()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestMeta(ApiTestCase):
    def test_root(self) -> None:
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["X-Frame-Options"], "DENY")
        self.assertEqual(response.headers["X-Content-Type-Options"], "nosniff")
        self.assertEqual(response.headers["Referrer-Policy"], "strict-origin-when-cross-origin")
        self.assertIn("camera=()", response.headers["Permissions-Policy"])
        self.assertIn("frame-ancestors 'none'", response.headers["Content-Security-Policy"])
        self.assertNotIn("Strict-Transport-Security", response.headers)

    def test_hsts_only_behind_https_proxy(self) -> None:
        response = self.client.get("/", headers={"X-Forwarded-Proto": "https"})
        self.assertIn("max-age=31536000", response.headers["Strict-Transport-Security"])

    def test_security_headers_on_error_responses(self) -> None:
        response = self.client.get(f"{API}/users/profile")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.headers["X-Frame-Options"], "DENY")

    def test_docs_served_without_csp(self) -> None:
        response = self.client.get("/docs")
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("Content-Security-Policy", response.headers)
        self.assertEqual(response.headers["X-Content-Type-Options"], "nosniff")

    def test_health_reports_database(self) -> None:
        response = self.client.get(f"{API}/health/")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["status"], "ok")
        self.assertEqual(data["database"], "connected")
        self.assertEqual(data["version"], self.app.version)

    def test_health_degraded_when_store_unreachable(self) -> None:
        with patch.object(self.database, "ping", return_value=False):
            response = self.client.get(f"{API}/health/")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["status"], "degraded")
        self.assertEqual(response.json()["database"], "disconnected")


class TestRegisterAndLogin(ApiTestCase):
    def test_register_returns_user_and_tokens(self) -> None:
        response = self.register(email="Jane@Example.com", role="admin")
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["user"]["email"], "jane@example.com")
        self.assertEqual(data["user"]["role"], "user")
        self.assertEqual(data["token_type"], "bearer")
        self.assertTrue(data["access_token"])
        self.assertTrue(data["refresh_token"])
        for secret in ("password", "password_hash", "password_reset_token"):
            self.assertNotIn(secret, data["user"])

    def test_register_duplicate_is_409(self) -> None:
        self.register()
        response = self.register(username="other")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"], "User with this email already exists")

    def test_register_validation_is_422(self) -> None:
        self.assertEqual(self.register(password="short").status_code, 422)
        self.assertEqual(self.register(email="not-an-email").status_code, 422)

    def test_login_success(self) -> None:
        self.register()
        response = self.login()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["username"], "jane")

    def test_unknown_email_and_wrong_password_give_same_response(self) -> None:
        self.register()
        unknown = self.login(email="nobody@example.com")
        wrong = self.login(password="Wrong123!")
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(unknown.json(), wrong.json())

    def test_lockout_after_repeated_failures(self) -> None:
        self.register()
        for _ in range(5):
            self.assertEqual(self.login(password="Wrong123!").status_code, 401)
        response = self.login()
        self.assertEqual(response.status_code, 401)
        self.assertIn("locked", response.json()["detail"])

    def test_deactivated_account_cannot_log_in(self) -> None:
        token = self.register().json()["access_token"]
        self.client.delete(f"{API}/users/profile", headers=bearer(token))
        response = self.login()
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Account is deactivated")


class TestTokens(ApiTestCase):
    def test_profile_requires_token(self) -> None:
        response = self.client.get(f"{API}/users/profile")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.headers.get("WWW-Authenticate"), "Bearer")

    def test_profile_with_token(self) -> None:
        token = self.register().json()["access_token"]
        response = self.client.get(f"{API}/users/profile", headers=bearer(token))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["full_name"], "Jane Doe")

    def test_refresh_token_is_not_an_access_token(self) -> None:
        refresh = self.register().json()["refresh_token"]
        response = self.client.get(f"{API}/users/profile", headers=bearer(refresh))
        self.assertEqual(response.status_code, 401)

    def test_refresh_issues_new_pair(self) -> None:
        refresh = self.register().json()["refresh_token"]
        response = self.client.post(f"{API}/auth/refresh", json={"refresh_token": refresh})
        self.assertEqual(response.status_code, 200)
        token = response.json()["access_token"]
        self.assertEqual(
            self.client.get(f"{API}/users/profile", headers=bearer(token)).status_code, 200
        )

    def test_refresh_with_garbage_is_401(self) -> None:
        response = self.client.post(f"{API}/auth/refresh", json={"refresh_token": "garbage"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Invalid or expired token")

    def test_token_of_deactivated_user_is_rejected(self) -> None:
        token = self.register().json()["access_token"]
        self.client.delete(f"{API}/users/profile", headers=bearer(token))
        response = self.client.get(f"{API}/users/profile", headers=bearer(token))
        self.assertEqual(response.status_code, 401)

    def test_logout(self) -> None:
        token = self.register().json()["access_token"]
        response = self.client.post(f"{API}/auth/logout", headers=bearer(token))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Logged out successfully")


class TestPasswordFlows(ApiTestCase):
    def test_forgot_password_response_does_not_reveal_registration(self) -> None:
        self.register()
        known = self.client.post(f"{API}/auth/forgot-password", json={"email": "jane@example.com"})
        unknown = self.client.post(f"{API}/auth/forgot-password", json={"email": "x@example.com"})
        self.assertEqual(known.status_code, 200)
        self.assertEqual(known.json(), unknown.json())

    def test_reset_password_flow(self) -> None:
        self.register()
        self.client.post(f"{API}/auth/forgot-password", json={"email": "jane@example.com"})
        token = self.reset_token_for("jane@example.com")

        body = {"token": token, "new_password": "Brand-new1!"}
        response = self.client.post(f"{API}/auth/reset-password", json=body)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Password reset successfully")

        replay = self.client.post(f"{API}/auth/reset-password", json=body)
        self.assertEqual(replay.status_code, 400)
        self.assertEqual(self.login().status_code, 401)
        self.assertEqual(self.login(password="Brand-new1!").status_code, 200)

    def test_change_password(self) -> None:
        token = self.register().json()["access_token"]
        body = {
            "current_password": PASSWORD,
            "new_password": "Changed-1!",
            "confirm_password": "Changed-1!",
        }
        response = self.client.post(f"{API}/auth/change-password", json=body, headers=bearer(token))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.login(password="Changed-1!").status_code, 200)

    def test_change_password_mismatch_is_400(self) -> None:
        token = self.register().json()["access_token"]
        body = {
            "current_password": PASSWORD,
            "new_password": "Changed-1!",
            "confirm_password": "Changed-2!",
        }
        response = self.client.post(f"{API}/auth/change-password", json=body, headers=bearer(token))
        self.assertEqual(response.status_code, 400)


class TestRoles(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user_token = self.register().json()["access_token"]
        self.user_id = self.client.get(
            f"{API}/users/profile", headers=bearer(self.user_token)
        ).json()["id"]
        self.admin = self.create_staff(UserRole.ADMIN, "admin@example.com", "admin")
        self.moderator = self.create_staff(UserRole.MODERATOR, "mod@example.com", "mod")

    def test_regular_user_cannot_list_users(self) -> None:
        response = self.client.get(f"{API}/users", headers=bearer(self.user_token))
        self.assertEqual(response.status_code, 403)

    def test_staff_can_list_users(self) -> None:
        for headers in (self.admin, self.moderator):
            response = self.client.get(f"{API}/users", headers=headers, params={"limit": 2})
            self.assertEqual(response.status_code, 200)
            data = response.json()
            self.assertEqual(data["meta"]["total"], 3)
            self.assertEqual(len(data["data"]), 2)
            self.assertTrue(data["meta"]["has_next_page"])

    def test_list_rejects_out_of_range_limit(self) -> None:
        response = self.client.get(f"{API}/users", headers=self.admin, params={"limit": 500})
        self.assertEqual(response.status_code, 422)

    def test_list_rejects_inverted_date_range(self) -> None:
        params = {"date_from": "2026-02-01T00:00:00Z", "date_to": "2026-01-01T00:00:00Z"}
        response = self.client.get(f"{API}/users", headers=self.admin, params=params)
        self.assertEqual(response.status_code, 400)

    def test_list_filters_by_role(self) -> None:
        response = self.client.get(f"{API}/users", headers=self.admin, params={"role": "moderator"})
        self.assertEqual([u["username"] for u in response.json()["data"]], ["mod"])

    def test_moderator_can_view_but_not_change_role(self) -> None:
        self.assertEqual(
            self.client.get(f"{API}/users/{self.user_id}", headers=self.moderator).status_code, 200
        )
        response = self.client.patch(
            f"{API}/users/{self.user_id}/role", json={"role": "admin"}, headers=self.moderator
        )
        self.assertEqual(response.status_code, 403)

    def test_admin_changes_role(self) -> None:
        response = self.client.patch(
            f"{API}/users/{self.user_id}/role", json={"role": "moderator"}, headers=self.admin
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "moderator")

    def test_unknown_role_is_422(self) -> None:
        response = self.client.patch(
            f"{API}/users/{self.user_id}/role", json={"role": "superuser"}, headers=self.admin
        )
        self.assertEqual(response.status_code, 422)

    def test_search_by_email(self) -> None:
        response = self.client.get(
            f"{API}/users/search/by-email", params={"email": "JANE@example.com"}, headers=self.moderator
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["username"], "jane")
        missing = self.client.get(
            f"{API}/users/search/by-email", params={"email": "no@example.com"}, headers=self.moderator
        )
        self.assertEqual(missing.status_code, 404)

    def test_admin_deactivate_then_activate(self) -> None:
        response = self.client.patch(f"{API}/users/{self.user_id}/deactivate", headers=self.admin)
        self.assertFalse(response.json()["is_active"])
        response = self.client.patch(f"{API}/users/{self.user_id}/activate", headers=self.admin)
        self.assertTrue(response.json()["is_active"])

    def test_admin_update_conflict_is_409(self) -> None:
        response = self.client.patch(
            f"{API}/users/{self.user_id}", json={"username": "MOD"}, headers=self.admin
        )
        self.assertEqual(response.status_code, 409)

    def test_admin_hard_delete(self) -> None:
        response = self.client.delete(f"{API}/users/{self.user_id}", headers=self.admin)
        self.assertEqual(response.status_code, 200)
        response = self.client.get(f"{API}/users/{self.user_id}", headers=self.admin)
        self.assertEqual(response.status_code, 404)

    def test_malformed_id_is_422(self) -> None:
        response = self.client.get(f"{API}/users/not-a-uuid", headers=self.admin)
        self.assertEqual(response.status_code, 422)


class TestStoreOutage(ApiTestCase):
    def test_outage_during_login_is_503_not_401(self) -> None:
        self.register()
        with patch(
            "app.services.auth.is_account_locked",
            side_effect=StoreUnavailableError(),
        ):
            response = self.login()
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.headers.get("Retry-After"), "1")


if __name__ == "__main__":
    unittest.main()
