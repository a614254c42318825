"""
Tests for token authentication and the /api/auth endpoints.
"""

import unittest

from models.users import User, ROLES
from tests.base import ApiTestCase, ADMIN_EMAIL, ADMIN_PASSWORD


class TestHealth(ApiTestCase):
    def test_hello_is_public(self) -> None:
        resp = self.client.get("/hello")
        self.assertEnvelope(resp, 200)


class TestLogin(ApiTestCase):
    def test_login_returns_tokens_and_user(self) -> None:
        resp = self.client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        result = self.assertEnvelope(resp, 200)
        self.assertTrue(result["accessToken"])
        self.assertTrue(result["refreshToken"])
        self.assertEqual(result["user"]["email"], ADMIN_EMAIL)
        self.assertEqual(result["user"]["role"], "Admin")
        self.assertNotIn("password", result["user"])

    def test_login_wrong_password(self) -> None:
        resp = self.client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
        body = resp.get_json()
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(body["success"])
        self.assertEqual(body["message"], "Invalid email or password")

    def test_login_requires_both_fields(self) -> None:
        resp = self.client.post("/api/auth/login", json={"email": ADMIN_EMAIL})
        self.assertEnvelope(resp, 400, success=False)

    def test_login_rejects_non_text_password(self) -> None:
        resp = self.client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": 12345678})
        self.assertEnvelope(resp, 400, success=False)


class TestTokenGuard(ApiTestCase):
    def test_missing_token_is_rejected(self) -> None:
        resp = self.client.get("/api/venue")
        body = resp.get_json()
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(body["message"], "Access Denied - No token provided")

    def test_invalid_token_is_rejected(self) -> None:
        resp = self.client.get("/api/venue", headers={"Authorization": "Bearer not-a-token"})
        body = resp.get_json()
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(body["message"], "Access Denied - Invalid token")

    def test_role_guard_forbids_students(self) -> None:
        _, headers = self.login_as(ROLES["STUDENT"])
        resp = self.client.get("/api/user", headers=headers)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.get_json()["message"], "Forbidden - Insufficient permissions")

    def test_expired_access_token_is_rejected(self) -> None:
        self.addCleanup(self.app.config.__setitem__, "ACCESS_TOKEN_MAX_AGE", self.app.config["ACCESS_TOKEN_MAX_AGE"])
        self.app.config["ACCESS_TOKEN_MAX_AGE"] = -1

        resp = self.client.get("/api/venue", headers=self.admin_headers)
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.get_json()["message"], "Access Denied - Invalid token")

    def test_unknown_route_is_enveloped_404(self) -> None:
        resp = self.client.get("/api/does-not-exist")
        self.assertEqual(resp.status_code, 404)
        self.assertFalse(resp.get_json()["success"])


class TestRefreshAndLogout(ApiTestCase):
    def _login_result(self):
        resp = self.client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        return resp.get_json()["result"]

    def test_refresh_issues_new_access_token(self) -> None:
        tokens = self._login_result()
        resp = self.client.post("/api/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        result = self.assertEnvelope(resp, 200)
        me = self.client.get("/api/auth/me", headers={"Authorization": f"Bearer {result['accessToken']}"})
        self.assertEqual(self.assertEnvelope(me, 200)["email"], ADMIN_EMAIL)

    def test_refresh_rejects_garbage(self) -> None:
        resp = self.client.post("/api/auth/refresh-token", json={"refreshToken": "garbage"})
        self.assertEnvelope(resp, 401, success=False)

    def test_refresh_rejects_expired_token(self) -> None:
        tokens = self._login_result()
        self.addCleanup(self.app.config.__setitem__, "REFRESH_TOKEN_MAX_AGE", self.app.config["REFRESH_TOKEN_MAX_AGE"])
        self.app.config["REFRESH_TOKEN_MAX_AGE"] = -1

        resp = self.client.post("/api/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        self.assertEnvelope(resp, 401, success=False)
        self.assertEqual(resp.get_json()["message"], "Invalid or expired refresh token")

    def test_refresh_rejects_non_text_token(self) -> None:
        resp = self.client.post("/api/auth/refresh-token", json={"refreshToken": 42})
        self.assertEnvelope(resp, 401, success=False)

    def test_logout_invalidates_refresh_token(self) -> None:
        tokens = self._login_result()
        headers = {"Authorization": f"Bearer {tokens['accessToken']}"}
        self.assertEnvelope(self.client.post("/api/auth/logout", headers=headers), 200)

        resp = self.client.post("/api/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        self.assertEnvelope(resp, 401, success=False)


class TestPasswords(ApiTestCase):
    def test_change_password(self) -> None:
        resp = self.client.post(
            "/api/auth/change-password",
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "brand-new"},
            headers=self.admin_headers,
        )
        self.assertEnvelope(resp, 200)
        self.login(ADMIN_EMAIL, "brand-new")
        user = User.find_by_email(ADMIN_EMAIL)
        self.assertFalse(user["password_change_required"])

    def test_change_password_wrong_current(self) -> None:
        resp = self.client.post(
            "/api/auth/change-password",
            json={"currentPassword": "wrong", "newPassword": "brand-new"},
            headers=self.admin_headers,
        )
        self.assertEqual(resp.get_json()["message"], "Current password is incorrect")
        self.assertEqual(resp.status_code, 400)

    def test_change_password_too_short(self) -> None:
        resp = self.client.post(
            "/api/auth/change-password",
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "abc"},
            headers=self.admin_headers,
        )
        self.assertEnvelope(resp, 400, success=False)

    def test_change_password_rejects_non_text(self) -> None:
        resp = self.client.post(
            "/api/auth/change-password",
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": 12345678},
            headers=self.admin_headers,
        )
        self.assertEnvelope(resp, 400, success=False)
        self.login(ADMIN_EMAIL, ADMIN_PASSWORD)

    def test_admin_reset_password(self) -> None:
        lecturer, _ = self.login_as(ROLES["LECTURER"])
        resp = self.client.post("/api/auth/reset-password", json={"userId": str(lecturer["_id"])},
                                headers=self.admin_headers)
        result = self.assertEnvelope(resp, 200)
        self.login("lecturer@example.com", result["temporaryPassword"])
        self.assertTrue(User.find_by_id(lecturer["_id"])["password_change_required"])


if __name__ == "__main__":
    unittest.main()
