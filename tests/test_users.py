"""
Tests for user administration (/api/user).
"""

import unittest

from models.users import User, ROLES
from tests.base import ApiTestCase


class TestUsers(ApiTestCase):
    def test_list_users_and_by_role(self) -> None:
        self.login_as(ROLES["LECTURER"])
        self.login_as(ROLES["STUDENT"])

        everyone = self.assertEnvelope(self.client.get("/api/user", headers=self.admin_headers), 200)
        self.assertEqual(len(everyone), 3)

        lecturers = self.assertEnvelope(
            self.client.get("/api/user/by-role/Lecturer", headers=self.admin_headers), 200)
        self.assertEqual([u["role"] for u in lecturers], ["Lecturer"])

    def test_by_role_rejects_unknown_role(self) -> None:
        resp = self.client.get("/api/user/by-role/Janitor", headers=self.admin_headers)
        self.assertEnvelope(resp, 400, success=False)

    def test_register_admin_and_duplicate(self) -> None:
        payload = {"firstName": "Bob", "lastName": "Boss", "email": "bob@example.com", "password": "secret1"}
        result = self.assertEnvelope(
            self.client.post("/api/user/register-admin", json=payload, headers=self.admin_headers), 201)
        self.assertEqual(result["role"], "Admin")

        resp = self.client.post("/api/user/register-admin", json=payload, headers=self.admin_headers)
        self.assertEnvelope(resp, 409, success=False)

    def test_edit_user_updates_only_names_and_email(self) -> None:
        lecturer, _ = self.login_as(ROLES["LECTURER"])
        resp = self.client.put(
            f"/api/user/{lecturer['_id']}",
            json={"firstName": "Grace", "lastName": "Hopper", "email": "grace@example.com"},
            headers=self.admin_headers,
        )
        result = self.assertEnvelope(resp, 200)
        self.assertEqual(result["firstName"], "Grace")
        self.assertEqual(result["email"], "grace@example.com")
        self.assertEqual(result["role"], "Lecturer")

    def test_edit_user_reports_field_errors(self) -> None:
        lecturer, _ = self.login_as(ROLES["LECTURER"])
        resp = self.client.put(f"/api/user/{lecturer['_id']}", json={"firstName": "", "lastName": "X"},
                               headers=self.admin_headers)
        result = self.assertEnvelope(resp, 400, success=False)
        self.assertIn("firstName", result["validationErrors"])
        self.assertIn("email", result["validationErrors"])

    def test_edit_user_rejects_non_text_fields(self) -> None:
        lecturer, _ = self.login_as(ROLES["LECTURER"])
        resp = self.client.put(f"/api/user/{lecturer['_id']}",
                               json={"firstName": 123, "lastName": "X", "email": "a@b.co"},
                               headers=self.admin_headers)
        result = self.assertEnvelope(resp, 400, success=False)
        self.assertEqual(result["validationErrors"], {"firstName": "First name must be text"})
        self.assertEqual(User.find_by_id(lecturer["_id"])["first_name"], "Lecturer")

    def test_register_admin_rejects_non_text_fields(self) -> None:
        resp = self.client.post("/api/user/register-admin", json={
            "firstName": "Grace", "lastName": "Hopper", "email": "grace@example.com", "password": 1234567,
        }, headers=self.admin_headers)
        self.assertEnvelope(resp, 400, success=False)
        self.assertIsNone(User.find_by_email("grace@example.com"))

    def test_delete_user_archives_record(self) -> None:
        student, _ = self.login_as(ROLES["STUDENT"])
        resp = self.client.delete(f"/api/user/{student['_id']}", json={"reason": "Graduated"},
                                  headers=self.admin_headers)
        self.assertEnvelope(resp, 200)

        resp = self.client.get(f"/api/user/{student['_id']}", headers=self.admin_headers)
        self.assertEnvelope(resp, 404, success=False)

        removed = self.assertEnvelope(self.client.get("/api/user/removed", headers=self.admin_headers), 200)
        self.assertEqual(len(removed), 1)
        self.assertEqual(removed[0]["reason"], "Graduated")
        self.assertEqual(removed[0]["removedBy"]["email"], "admin@example.com")

    def test_malformed_id_is_400(self) -> None:
        resp = self.client.get("/api/user/not-an-id", headers=self.admin_headers)
        self.assertEnvelope(resp, 400, success=False)


if __name__ == "__main__":
    unittest.main()
