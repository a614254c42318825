"""
Tests for profile picture upload, reset and serving (/api/profile, /uploads).
"""

import io
import os
import unittest
from unittest import mock

from pymongo.errors import PyMongoError

from models.users import User, ROLES, DEFAULT_PROFILE_PICTURE
from tests.base import ApiTestCase
from utils.db import mongo

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestProfilePicture(ApiTestCase):
    def _upload(self, url, filename="me.png", content=PNG_BYTES, headers=None):
        return self.client.post(
            url,
            data={"profilePicture": (io.BytesIO(content), filename)},
            content_type="multipart/form-data",
            headers=headers or self.admin_headers,
        )

    def test_default_picture(self) -> None:
        result = self.assertEnvelope(self.client.get("/api/profile/picture", headers=self.admin_headers), 200)
        self.assertEqual(result["profilePicture"]["key"], DEFAULT_PROFILE_PICTURE)

    def test_upload_serves_file_and_replaces_old_one(self) -> None:
        first = self.assertEnvelope(self._upload("/api/profile/picture/upload"), 200)["profilePicture"]
        self.assertTrue(first["key"].startswith("profile-pictures/"))
        self.assertTrue(first["key"].endswith(".png"))

        served = self.client.get(first["url"])
        self.assertEqual(served.status_code, 200)
        self.assertEqual(served.data, PNG_BYTES)
        served.close()

        second = self.assertEnvelope(self._upload("/api/profile/picture/upload", "me.jpg"), 200)["profilePicture"]
        old_path = os.path.join(self.upload_dir.name, first["key"])
        self.assertFalse(os.path.exists(old_path))
        self.assertEqual(User.find_by_id(self.admin["_id"])["profile_picture"], second["key"])

    def test_non_ascii_filename_keeps_extension(self) -> None:
        for filename in ("фото.png", "..png"):
            result = self.assertEnvelope(self._upload("/api/profile/picture/upload", filename), 200)
            key = result["profilePicture"]["key"]
            self.assertTrue(key.endswith(".png"), key)
            self.assertTrue(os.path.isfile(os.path.join(self.upload_dir.name, key)))

    def test_failed_update_leaves_no_file(self) -> None:
        users = mock.MagicMock(wraps=mongo.db.users)
        users.update_one.side_effect = PyMongoError("write failed")
        with mock.patch.object(User, "collection", return_value=users):
            resp = self._upload("/api/profile/picture/upload")

        self.assertEnvelope(resp, 500, success=False)
        folder = os.path.join(self.upload_dir.name, "profile-pictures")
        self.assertEqual(os.listdir(folder), [])
        self.assertEqual(User.find_by_id(self.admin["_id"])["profile_picture"], DEFAULT_PROFILE_PICTURE)

    def test_rejects_non_images(self) -> None:
        resp = self._upload("/api/profile/picture/upload", "notes.txt", b"hello")
        self.assertEnvelope(resp, 400, success=False)

    def test_rejects_missing_file(self) -> None:
        resp = self.client.post("/api/profile/picture/upload", data={}, content_type="multipart/form-data",
                                headers=self.admin_headers)
        self.assertEnvelope(resp, 400, success=False)

    def test_rejects_oversized_upload(self) -> None:
        big = b"\x00" * (self.app.config["MAX_CONTENT_LENGTH"] + 1)
        resp = self._upload("/api/profile/picture/upload", "big.png", big)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["message"], "File size too large. Maximum size is 5MB")

    def test_delete_resets_to_default(self) -> None:
        uploaded = self.assertEnvelope(self._upload("/api/profile/picture/upload"), 200)["profilePicture"]
        result = self.assertEnvelope(self.client.delete("/api/profile/picture", headers=self.admin_headers), 200)
        self.assertEqual(result["profilePicture"]["key"], DEFAULT_PROFILE_PICTURE)
        self.assertFalse(os.path.exists(os.path.join(self.upload_dir.name, uploaded["key"])))

    def test_admin_uploads_for_another_user(self) -> None:
        lecturer, lecturer_headers = self.login_as(ROLES["LECTURER"])
        url = f"/api/profile/picture/user/{lecturer['_id']}/upload"

        self.assertEnvelope(self._upload(url, headers=lecturer_headers), 403, success=False)

        result = self.assertEnvelope(self._upload(url), 200)
        self.assertEqual(User.find_by_id(lecturer["_id"])["profile_picture"], result["profilePicture"]["key"])

    def test_admin_upload_for_unknown_user(self) -> None:
        resp = self._upload("/api/profile/picture/user/65f000000000000000000000/upload")
        self.assertEnvelope(resp, 404, success=False)


if __name__ == "__main__":
    unittest.main()
