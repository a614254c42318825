"""
client/api_client.py
-----------------
One method per REST endpoint. Every call unwraps the response envelope

    {"success": bool, "message": str, "result": ...}

and returns `result`, or raises ApiError when the server reports a failure.

The access token, refresh token and the logged-in user are kept in a small
JSON session file so consecutive CLI invocations stay logged in.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_SESSION_FILE = Path.home() / ".academic_scheduler" / "session.json"
TIMEOUT = 30


class ApiError(Exception):
    """A failed API call: HTTP status (0 when the server was unreachable) and message."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class ApiClient:
    def __init__(self, base_url: str | None = None, session_file: str | Path | None = None,
                 http: Any = None) -> None:
        self.base_url = (base_url or os.getenv("SCHEDULER_API_URL", DEFAULT_API_URL)).rstrip("/")
        self.session_file = Path(session_file or os.getenv("SCHEDULER_SESSION_FILE", DEFAULT_SESSION_FILE))
        self.http = http or requests.Session()

        saved = self._load_session()
        self.access_token: str | None = saved.get("accessToken")
        self.refresh_token_value: str | None = saved.get("refreshToken")
        self.user: dict | None = saved.get("user")

    # ------------------------------------------------------------------
    # Session persistence
    # ------------------------------------------------------------------

    def _load_session(self) -> dict:
        if not self.session_file.exists():
            return {}
        try:
            data = json.loads(self.session_file.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable session file %s", self.session_file)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_session(self) -> None:
        self.session_file.parent.mkdir(parents=True, exist_ok=True)
        data = {"accessToken": self.access_token, "refreshToken": self.refresh_token_value, "user": self.user}
        self.session_file.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def clear_session(self) -> None:
        self.access_token = None
        self.refresh_token_value = None
        self.user = None
        if self.session_file.exists():
            self.session_file.unlink()

    @property
    def is_logged_in(self) -> bool:
        return bool(self.access_token)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(self, method: str, path: str, json_body: dict | None = None,
              params: dict | None = None, files: dict | None = None):
        headers = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            return self.http.request(method, self.base_url + path, json=json_body, params=params,
                                     files=files, headers=headers, timeout=TIMEOUT)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise ApiError(0, f"Could not reach the server at {self.base_url}") from exc

    @staticmethod
    def _envelope(resp) -> dict:
        try:
            payload = resp.json()
        except ValueError:
            raise ApiError(resp.status_code, "Invalid response from server")
        if not isinstance(payload, dict):
            raise ApiError(resp.status_code, "Invalid response from server")
        return payload

    def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = self._send(method, path, **kwargs)
        payload = self._envelope(resp)
        if resp.status_code >= 400 or not payload.get("success"):
            raise ApiError(resp.status_code, payload.get("message") or "Request failed")
        return payload.get("result")

    def _download(self, path: str, params: dict | None = None) -> bytes:
        resp = self._send("GET", path, params=params)
        if resp.status_code >= 400:
            payload = self._envelope(resp)
            raise ApiError(resp.status_code, payload.get("message") or "Download failed")
        return resp.content

    # ------------------------------------------------------------------
    # Health & auth
    # ------------------------------------------------------------------

    def hello(self) -> Any:
        return self._request("GET", "/hello")

    def login(self, email: str, password: str) -> dict:
        result = self._request("POST", "/api/auth/login", json_body={"email": email, "password": password})
        self.access_token = result["accessToken"]
        self.refresh_token_value = result["refreshToken"]
        self.user = result["user"]
        self._save_session()
        return result

    def refresh(self) -> str:
        if not self.refresh_token_value:
            raise ApiError(401, "Not logged in")
        result = self._request("POST", "/api/auth/refresh-token",
                               json_body={"refreshToken": self.refresh_token_value})
        self.access_token = result["accessToken"]
        self._save_session()
        return self.access_token

    def change_password(self, current_password: str, new_password: str) -> Any:
        result = self._request("POST", "/api/auth/change-password",
                               json_body={"currentPassword": current_password, "newPassword": new_password})
        if self.user:
            self.user["passwordChangeRequired"] = False
            self._save_session()
        return result

    def reset_password(self, user_id: str) -> dict:
        return self._request("POST", "/api/auth/reset-password", json_body={"userId": user_id})

    def me(self) -> dict:
        self.user = self._request("GET", "/api/auth/me")
        self._save_session()
        return self.user

    def logout(self) -> None:
        try:
            self._request("POST", "/api/auth/logout")
        finally:
            self.clear_session()

    # ------------------------------------------------------------------
    # Users & registration requests
    # ------------------------------------------------------------------

    def list_users(self) -> list:
        return self._request("GET", "/api/user")

    def users_by_role(self, role: str) -> list:
        return self._request("GET", f"/api/user/by-role/{role}")

    def removed_users(self) -> list:
        return self._request("GET", "/api/user/removed")

    def get_user(self, user_id: str) -> dict:
        return self._request("GET", f"/api/user/{user_id}")

    def register_admin(self, data: dict) -> dict:
        return self._request("POST", "/api/user/register-admin", json_body=data)

    def register_user(self, request_id: str) -> dict:
        return self._request("POST", f"/api/user/register-user/{request_id}")

    def update_user(self, user_id: str, data: dict) -> dict:
        return self._request("PUT", f"/api/user/{user_id}", json_body=data)

    def delete_user(self, user_id: str, reason: str | None = None) -> dict:
        return self._request("DELETE", f"/api/user/{user_id}", json_body={"reason": reason} if reason else None)

    def submit_request(self, data: dict) -> dict:
        return self._request("POST", "/api/request/submit", json_body=data)

    def request_status_by_email(self, email: str) -> dict:
        return self._request("GET", f"/api/request/status-by-email/{email}")

    def list_requests(self) -> list:
        return self._request("GET", "/api/request/all")

    def requests_by_status(self, status: str) -> list:
        return self._request("GET", f"/api/request/status/{status}")

    def requests_by_role(self, role: str) -> list:
        return self._request("GET", f"/api/request/role/{role}")

    def approve_request(self, request_id: str) -> dict:
        return self._request("POST", f"/api/request/approve/{request_id}")

    def reject_request(self, request_id: str, reason: str | None = None) -> dict:
        return self._request("POST", f"/api/request/reject/{request_id}",
                             json_body={"reason": reason} if reason else None)

    # ------------------------------------------------------------------
    # Venues
    # ------------------------------------------------------------------

    def list_venues(self, **filters) -> list:
        return self._request("GET", "/api/venue", params=filters)

    def venue_options(self) -> list:
        return self._request("GET", "/api/venue/options")

    def get_venue(self, venue_id: str) -> dict:
        return self._request("GET", f"/api/venue/{venue_id}")

    def create_venue(self, data: dict) -> dict:
        return self._request("POST", "/api/venue", json_body=data)

    def update_venue(self, venue_id: str, data: dict) -> dict:
        return self._request("PUT", f"/api/venue/{venue_id}", json_body=data)

    def delete_venue(self, venue_id: str) -> Any:
        return self._request("DELETE", f"/api/venue/{venue_id}")

    def add_booked_slot(self, venue_id: str, data: dict) -> dict:
        return self._request("POST", f"/api/venue/{venue_id}/booked-slots", json_body=data)

    def delete_booked_slot(self, venue_id: str, slot_id: str) -> dict:
        return self._request("DELETE", f"/api/venue/{venue_id}/booked-slots/{slot_id}")

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def list_groups(self, **filters) -> list:
        return self._request("GET", "/api/group", params=filters)

    def get_group(self, group_id: str) -> dict:
        return self._request("GET", f"/api/group/{group_id}")

    def create_group(self, data: dict) -> dict:
        return self._request("POST", "/api/group", json_body=data)

    def update_group(self, group_id: str, data: dict) -> dict:
        return self._request("PUT", f"/api/group/{group_id}", json_body=data)

    def delete_group(self, group_id: str) -> Any:
        return self._request("DELETE", f"/api/group/{group_id}")

    def add_student_to_group(self, group_id: str, student_id: str) -> dict:
        return self._request("POST", f"/api/group/{group_id}/students", json_body={"studentId": student_id})

    def remove_student_from_group(self, group_id: str, student_id: str) -> dict:
        return self._request("DELETE", f"/api/group/{group_id}/students/{student_id}")

    # ------------------------------------------------------------------
    # Subjects & assignments
    # ------------------------------------------------------------------

    def list_subjects(self, **filters) -> list:
        return self._request("GET", "/api/subject/get/all", params=filters)

    def subject_options(self) -> list:
        return self._request("GET", "/api/subject/get/options")

    def get_subject(self, subject_id: str) -> dict:
        return self._request("GET", f"/api/subject/get/{subject_id}")

    def my_subjects(self) -> list:
        return self._request("GET", "/api/subject/lecturer")

    def create_subject(self, data: dict) -> dict:
        return self._request("POST", "/api/subject/add", json_body=data)

    def update_subject(self, subject_id: str, data: dict) -> dict:
        return self._request("PUT", f"/api/subject/update/{subject_id}", json_body=data)

    def delete_subject(self, subject_id: str) -> Any:
        return self._request("DELETE", f"/api/subject/delete/{subject_id}")

    def list_assignments(self) -> list:
        return self._request("GET", "/api/subject-assignment")

    def current_assignments(self, academic_year: str, semester: int) -> list:
        return self._request("GET", "/api/subject-assignment/current",
                             params={"academicYear": academic_year, "semester": semester})

    def lecturer_assignments(self, lecturer_id: str) -> list:
        return self._request("GET", f"/api/subject-assignment/lecturer/{lecturer_id}")

    def subject_assignments(self, subject_id: str) -> list:
        return self._request("GET", f"/api/subject-assignment/subject/{subject_id}")

    def available_lecturers(self, subject_id: str, academic_year: str, semester: int) -> list:
        return self._request("GET", "/api/subject-assignment/available-lecturers",
                             params={"subjectId": subject_id, "academicYear": academic_year,
                                     "semester": semester})

    def get_assignment(self, assignment_id: str) -> dict:
        return self._request("GET", f"/api/subject-assignment/{assignment_id}")

    def create_assignment(self, data: dict) -> dict:
        return self._request("POST", "/api/subject-assignment", json_body=data)

    def update_assignment(self, assignment_id: str, data: dict) -> dict:
        return self._request("PUT", f"/api/subject-assignment/{assignment_id}", json_body=data)

    def delete_assignment(self, assignment_id: str) -> Any:
        return self._request("DELETE", f"/api/subject-assignment/{assignment_id}")

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------

    def list_students(self, **filters) -> list:
        return self._request("GET", "/api/student/get/all", params=filters)

    def get_student(self, student_id: str) -> dict:
        return self._request("GET", f"/api/student/get/{student_id}")

    def create_student(self, data: dict) -> dict:
        return self._request("POST", "/api/student/add", json_body=data)

    def update_student(self, student_id: str, data: dict) -> dict:
        return self._request("PUT", f"/api/student/update/{student_id}", json_body=data)

    def delete_student(self, student_id: str) -> Any:
        return self._request("DELETE", f"/api/student/delete/{student_id}")

    # ------------------------------------------------------------------
    # Timetables
    # ------------------------------------------------------------------

    def list_timetables(self, group: str | None = None, published: bool | None = None) -> list:
        params = {"group": group}
        if published is not None:
            params["published"] = "true" if published else "false"
        return self._request("GET", "/api/timetable/get/all", params=params)

    def get_timetable(self, timetable_id: str) -> dict:
        return self._request("GET", f"/api/timetable/get/{timetable_id}")

    def create_timetable(self, data: dict) -> dict:
        return self._request("POST", "/api/timetable/create", json_body=data)

    def update_timetable(self, timetable_id: str, data: dict) -> dict:
        return self._request("PUT", f"/api/timetable/update/{timetable_id}", json_body=data)

    def delete_timetable(self, timetable_id: str) -> Any:
        return self._request("DELETE", f"/api/timetable/delete/{timetable_id}")

    def add_slot(self, timetable_id: str, data: dict) -> dict:
        return self._request("POST", f"/api/timetable/{timetable_id}/slots", json_body=data)

    def update_slot(self, timetable_id: str, slot_id: str, data: dict) -> dict:
        return self._request("PUT", f"/api/timetable/{timetable_id}/slots/{slot_id}", json_body=data)

    def delete_slot(self, timetable_id: str, slot_id: str) -> dict:
        return self._request("DELETE", f"/api/timetable/{timetable_id}/slots/{slot_id}")

    def export_timetable(self, timetable_id: str, fmt: str = "pdf") -> bytes:
        return self._download(f"/api/timetable/{timetable_id}/export", params={"format": fmt})

    # ------------------------------------------------------------------
    # Profile pictures
    # ------------------------------------------------------------------

    def profile_picture(self) -> dict:
        return self._request("GET", "/api/profile/picture")

    def upload_profile_picture(self, path: str | Path, user_id: str | None = None) -> dict:
        route = f"/api/profile/picture/user/{user_id}/upload" if user_id else "/api/profile/picture/upload"
        path = Path(path)
        with path.open("rb") as fh:
            result = self._request("POST", route, files={"profilePicture": (path.name, fh)})
        if not user_id and self.user:
            self.user["profilePicture"] = result["profilePicture"]["key"]
            self._save_session()
        return result

    def delete_profile_picture(self) -> dict:
        return self._request("DELETE", "/api/profile/picture")
