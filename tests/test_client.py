"""
Tests for the Python client: ApiClient, the list stores and the CLI.

ApiClient normally talks HTTP through a requests.Session; here it is given a
small transport that forwards each call to the Flask test client instead.
"""

import contextlib
import io
import tempfile
import unittest
from pathlib import Path
from urllib.parse import urlsplit

import requests

from client.api_client import ApiClient, ApiError
from client.cli import main
from client.stores import DuplicateNameError, GroupStore, TimetableStore
from models.users import User, ROLES
from models.subject import Subject
from models.venue import Venue
from tests.base import ApiTestCase, ADMIN_EMAIL, ADMIN_PASSWORD

GROUP = {"name": "Y1.S1.WD.IT.01", "faculty": "Computing", "department": "IT",
         "year": 1, "semester": 1, "groupType": "weekday"}


class _Response:
    def __init__(self, resp) -> None:
        self.status_code = resp.status_code
        self.content = resp.data
        self._resp = resp

    def json(self):
        data = self._resp.get_json(silent=True)
        if data is None:
            raise ValueError("response is not JSON")
        return data


class FlaskTransport:
    """The slice of requests.Session that ApiClient uses, backed by a Flask test client."""

    def __init__(self, test_client) -> None:
        self.test_client = test_client

    def request(self, method, url, json=None, params=None, files=None, headers=None, timeout=None):
        kwargs = {"method": method, "headers": headers or {}, "query_string": params}
        if files:
            kwargs["data"] = {field: (fh, filename) for field, (filename, fh) in files.items()}
            kwargs["content_type"] = "multipart/form-data"
        elif json is not None:
            kwargs["json"] = json
        resp = self.test_client.open(urlsplit(url).path, **kwargs)
        return _Response(resp)


class _Unreachable:
    def request(self, *args, **kwargs):
        raise requests.ConnectionError("connection refused")


class ClientTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.tmp = Path(tmp.name)
        self.session_file = self.tmp / "session.json"

    def make_client(self) -> ApiClient:
        return ApiClient(base_url="http://testserver", session_file=self.session_file,
                         http=FlaskTransport(self.client))

    def logged_in_client(self) -> ApiClient:
        api = self.make_client()
        api.login(ADMIN_EMAIL, ADMIN_PASSWORD)
        return api


class TestApiClient(ClientTestCase):
    def test_login_persists_session(self) -> None:
        api = self.logged_in_client()
        self.assertTrue(self.session_file.exists())

        again = self.make_client()
        self.assertTrue(again.is_logged_in)
        self.assertEqual(again.user["email"], ADMIN_EMAIL)
        self.assertEqual(again.me()["email"], ADMIN_EMAIL)

        api.logout()
        self.assertFalse(self.session_file.exists())
        self.assertFalse(api.is_logged_in)

    def test_refresh_replaces_access_token(self) -> None:
        api = self.logged_in_client()
        api.access_token = "stale"
        with self.assertRaises(ApiError) as ctx:
            api.list_venues()
        self.assertEqual(ctx.exception.status, 401)

        api.refresh()
        self.assertEqual(api.list_venues(), [])

    def test_failures_raise_api_error_with_message(self) -> None:
        api = self.make_client()
        with self.assertRaises(ApiError) as ctx:
            api.list_groups()
        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(ctx.exception.message, "Access Denied - No token provided")

        api.login(ADMIN_EMAIL, ADMIN_PASSWORD)
        with self.assertRaises(ApiError) as ctx:
            api.get_group("65f000000000000000000000")
        self.assertEqual(ctx.exception.status, 404)

    def test_unreachable_server(self) -> None:
        api = ApiClient(base_url="http://127.0.0.1:9", session_file=self.session_file, http=_Unreachable())
        with self.assertRaises(ApiError) as ctx:
            api.hello()
        self.assertEqual(ctx.exception.status, 0)

    def test_public_request_flow(self) -> None:
        anonymous = self.make_client()
        request_id = anonymous.submit_request({"firstName": "Tim", "lastName": "Student",
                                               "email": "tim@example.com", "role": "Student"})["requestId"]
        self.assertEqual(anonymous.request_status_by_email("tim@example.com")["status"], "Pending")

        admin = self.logged_in_client()
        admin.approve_request(request_id)
        user = admin.register_user(request_id)
        self.assertEqual(user["email"], "tim@example.com")

    def test_export_and_profile_picture(self) -> None:
        api = self.logged_in_client()
        timetable = api.create_timetable({"title": "T", "description": "D", "groupName": "G"})
        content = api.export_timetable(timetable["id"], "csv")
        self.assertIn(b"Timetable,T", content)

        with self.assertRaises(ApiError):
            api.export_timetable("65f000000000000000000000", "csv")

        picture = self.tmp / "avatar.png"
        picture.write_bytes(b"\x89PNG\r\n\x1a\n")
        result = api.upload_profile_picture(picture)
        self.assertEqual(api.user["profilePicture"], result["profilePicture"]["key"])
        self.assertEqual(api.profile_picture()["profilePicture"]["key"], result["profilePicture"]["key"])


class TestStores(ClientTestCase):
    def test_group_store_rejects_duplicate_names(self) -> None:
        store = GroupStore(self.logged_in_client())
        store.create(GROUP)
        self.assertEqual(len(store.items), 1)

        with self.assertRaises(DuplicateNameError):
            store.create(dict(GROUP, name="  y1.s1.wd.it.01 "))

        # nothing reached the server
        self.assertEqual(len(store.refresh()), 1)

    def test_group_store_update_checks_other_groups_only(self) -> None:
        store = GroupStore(self.logged_in_client())
        first = store.create(GROUP)
        second = store.create(dict(GROUP, name="Y1.S1.WD.IT.02"))

        store.update(first["id"], {"name": GROUP["name"], "semester": 2})
        with self.assertRaises(DuplicateNameError):
            store.update(second["id"], {"name": GROUP["name"]})

        self.assertEqual(store.get(first["id"])["semester"], 2)
        store.delete(second["id"])
        self.assertEqual([g["id"] for g in store.items], [first["id"]])

    def test_timetable_store_refreshes_after_changes(self) -> None:
        api = self.logged_in_client()
        lecturer = User("Alan", "Turing", "alan@example.com", "turing", ROLES["LECTURER"]).save()
        subject = Subject("Computability", "CS2020", 3).save()
        venue = Venue("Computing", "CS", "Main", "A-101", "lecture", 100).save()

        store = TimetableStore(api, group="G1")
        self.assertEqual(store.ensure_loaded(), [])
        created = store.create({"title": "T1", "description": "D", "groupName": "G1"})
        api.create_timetable({"title": "Other", "description": "D", "groupName": "G2"})
        store.add_slot(created["id"], {
            "subject": str(subject["_id"]), "instructor": str(lecturer["_id"]), "venue": str(venue["_id"]),
            "day": "Tuesday", "startTime": "08:00", "endTime": "09:00",
        })

        self.assertEqual(len(store.items), 1)
        self.assertEqual(len(store.items[0]["slots"]), 1)


class TestCli(ClientTestCase):
    def run_cli(self, argv, api):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            with self.assertRaises(SystemExit) as ctx:
                main(argv, api=api)
        return ctx.exception.code, out.getvalue(), err.getvalue()

    def test_login_and_whoami(self) -> None:
        code, out, _ = self.run_cli(["login", ADMIN_EMAIL, "--password", ADMIN_PASSWORD], self.make_client())
        self.assertEqual(code, 0)
        self.assertIn("Logged in as Ada Admin (Admin)", out)

        code, out, _ = self.run_cli(["whoami"], self.make_client())
        self.assertEqual(code, 0)
        self.assertIn(ADMIN_EMAIL, out)

    def test_group_commands(self) -> None:
        api = self.logged_in_client()
        argv = ["groups", "add", "Y1.S1.WD.IT.01", "--faculty", "Computing", "--department", "IT",
                "--year", "1", "--semester", "1"]
        code, out, _ = self.run_cli(argv, api)
        self.assertEqual(code, 0)
        self.assertIn("Group created", out)

        code, _, err = self.run_cli(argv, api)
        self.assertEqual(code, 1)
        self.assertIn("already exists", err)

        code, out, _ = self.run_cli(["groups", "list"], api)
        self.assertEqual(code, 0)
        self.assertEqual(out.count("Y1.S1.WD.IT.01"), 1)

    def test_api_error_exits_nonzero(self) -> None:
        code, _, err = self.run_cli(["venues", "list"], self.make_client())
        self.assertEqual(code, 1)
        self.assertIn("Access Denied", err)

    def test_timetable_export_writes_file(self) -> None:
        api = self.logged_in_client()
        timetable = api.create_timetable({"title": "T", "description": "D", "groupName": "G"})
        out_file = self.tmp / "t.csv"
        code, out, _ = self.run_cli(
            ["timetables", "export", timetable["id"], "--format", "csv", "--out", str(out_file)], api)
        self.assertEqual(code, 0)
        self.assertTrue(out_file.read_bytes().startswith(b"Timetable,T"))

    def test_requires_subcommand(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main([], api=self.make_client())
        self.assertNotEqual(ctx.exception.code, 0)


if __name__ == "__main__":
    unittest.main()
