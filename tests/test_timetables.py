"""
Tests for timetables, their slots, and timetable export (/api/timetable).
"""

import io
import unittest

from openpyxl import load_workbook

from models.users import User, ROLES
from models.subject import Subject
from models.timetable import Timetable, Slot
from models.venue import Venue
from tests.base import ApiTestCase

TIMETABLE = {"title": "Semester 1", "description": "Weekday timetable", "groupName": "Y1.S1.WD.IT.01"}


class TestTimetables(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.lecturer = User("Alan", "Turing", "alan@example.com", "turing", ROLES["LECTURER"]).save()
        self.subject = Subject("Computability", "CS2020", 3, lecturer=self.lecturer["_id"]).save()
        self.venue = Venue("Computing", "CS", "Main", "A-101", "lecture", 100).save()

    def _create(self, **overrides):
        resp = self.client.post("/api/timetable/create", json=dict(TIMETABLE, **overrides),
                                headers=self.admin_headers)
        return self.assertEnvelope(resp, 201)

    def _slot(self, **overrides):
        slot = {
            "subject": str(self.subject["_id"]),
            "instructor": str(self.lecturer["_id"]),
            "venue": str(self.venue["_id"]),
            "day": "Monday",
            "startTime": "09:00",
            "endTime": "11:00",
        }
        slot.update(overrides)
        return slot

    def test_create_then_fetch(self) -> None:
        created = self._create()
        self.assertFalse(created["isPublished"])
        fetched = self.assertEnvelope(
            self.client.get(f"/api/timetable/get/{created['id']}", headers=self.admin_headers), 200)
        self.assertEqual(fetched["title"], "Semester 1")
        self.assertEqual(fetched["group"], "Y1.S1.WD.IT.01")
        self.assertEqual(fetched["slots"], [])

    def test_create_requires_fields(self) -> None:
        resp = self.client.post("/api/timetable/create", json={"title": "Only title"}, headers=self.admin_headers)
        self.assertEnvelope(resp, 400, success=False)

    def test_update_publish_and_filters(self) -> None:
        created = self._create()
        self._create(title="Weekend", groupName="Y1.S1.WE.IT.01")

        updated = self.assertEnvelope(self.client.put(
            f"/api/timetable/update/{created['id']}", json={"isPublished": True}, headers=self.admin_headers), 200)
        self.assertTrue(updated["isPublished"])
        self.assertEqual(updated["title"], "Semester 1")

        published = self.assertEnvelope(
            self.client.get("/api/timetable/get/all?published=true", headers=self.admin_headers), 200)
        self.assertEqual([t["id"] for t in published], [created["id"]])

        by_group = self.assertEnvelope(
            self.client.get("/api/timetable/get/all?group=Y1.S1.WE.IT.01", headers=self.admin_headers), 200)
        self.assertEqual([t["title"] for t in by_group], ["Weekend"])

    def test_delete_then_fetch_is_404(self) -> None:
        created = self._create()
        self.assertEnvelope(
            self.client.delete(f"/api/timetable/delete/{created['id']}", headers=self.admin_headers), 200)
        self.assertEnvelope(
            self.client.get(f"/api/timetable/get/{created['id']}", headers=self.admin_headers), 404, success=False)

    def test_slot_lifecycle(self) -> None:
        created = self._create()
        url = f"/api/timetable/{created['id']}/slots"

        timetable = self.assertEnvelope(self.client.post(url, json=self._slot(), headers=self.admin_headers), 201)
        # overlapping slots are stored as given
        timetable = self.assertEnvelope(
            self.client.post(url, json=self._slot(startTime="10:00", endTime="12:00"), headers=self.admin_headers), 201)
        self.assertEqual(len(timetable["slots"]), 2)

        slot_id = timetable["slots"][0]["id"]
        timetable = self.assertEnvelope(
            self.client.put(f"{url}/{slot_id}", json={"day": "Friday"}, headers=self.admin_headers), 200)
        slot = timetable["slots"][0]
        self.assertEqual(slot["day"], "Friday")
        self.assertEqual(slot["startTime"], "09:00")
        self.assertEqual(slot["venue"], str(self.venue["_id"]))

        timetable = self.assertEnvelope(self.client.delete(f"{url}/{slot_id}", headers=self.admin_headers), 200)
        self.assertEqual(len(timetable["slots"]), 1)
        self.assertEnvelope(self.client.delete(f"{url}/{slot_id}", headers=self.admin_headers), 404, success=False)

    def test_slot_validation(self) -> None:
        created = self._create()
        url = f"/api/timetable/{created['id']}/slots"
        for bad in (self._slot(day="Sunday"), self._slot(startTime="12:00", endTime="10:00"),
                    self._slot(venue="nope"), {"day": "Monday"}):
            resp = self.client.post(url, json=bad, headers=self.admin_headers)
            self.assertEnvelope(resp, 400, success=False)

    def test_slot_on_missing_timetable(self) -> None:
        resp = self.client.post("/api/timetable/65f000000000000000000000/slots", json=self._slot(),
                                headers=self.admin_headers)
        self.assertEnvelope(resp, 404, success=False)

    def test_slot_with_missing_reference(self) -> None:
        slot = Slot(self.subject["_id"], self.lecturer["_id"], None, "Monday", "09:00", "10:00").to_dict()
        timetable = Timetable("Legacy", "Imported", "Y1.S1.WD.IT.01", slots=[slot]).save()

        fetched = self.assertEnvelope(
            self.client.get(f"/api/timetable/get/{timetable['_id']}", headers=self.admin_headers), 200)
        self.assertIsNone(fetched["slots"][0]["venue"])
        self.assertEqual(fetched["slots"][0]["subject"], str(self.subject["_id"]))

        resp = self.client.get(f"/api/timetable/{timetable['_id']}/export?format=csv", headers=self.admin_headers)
        self.assertEqual(resp.status_code, 200)
        self.assertIn("1,Monday,09:00,10:00,CS2020 Computability,Alan Turing,", resp.data.decode("utf-8").splitlines())

    def test_student_cannot_edit(self) -> None:
        created = self._create()
        _, headers = self.login_as(ROLES["STUDENT"])
        resp = self.client.post(f"/api/timetable/{created['id']}/slots", json=self._slot(), headers=headers)
        self.assertEnvelope(resp, 403, success=False)
        self.assertEnvelope(self.client.get("/api/timetable/get/all", headers=headers), 200)


class TestTimetableExport(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        lecturer = User("Alan", "Turing", "alan@example.com", "turing", ROLES["LECTURER"]).save()
        subject = Subject("Computability", "CS2020", 3).save()
        venue = Venue("Computing", "CS", "Main", "A-101", "lecture", 100).save()

        created = self.client.post("/api/timetable/create", json=TIMETABLE, headers=self.admin_headers)
        self.timetable_id = created.get_json()["result"]["id"]
        for day, start, end in (("Wednesday", "13:00", "15:00"), ("Monday", "09:00", "10:00")):
            self.client.post(f"/api/timetable/{self.timetable_id}/slots", json={
                "subject": str(subject["_id"]), "instructor": str(lecturer["_id"]), "venue": str(venue["_id"]),
                "day": day, "startTime": start, "endTime": end,
            }, headers=self.admin_headers)

    def _export(self, fmt):
        return self.client.get(f"/api/timetable/{self.timetable_id}/export?format={fmt}",
                               headers=self.admin_headers)

    def test_csv_rows_sorted_and_resolved(self) -> None:
        resp = self._export("csv")
        self.assertEqual(resp.status_code, 200)
        self.assertIn(f"timetable_{self.timetable_id}.csv", resp.headers["Content-Disposition"])
        lines = resp.data.decode("utf-8").splitlines()
        body = lines[lines.index("#,Day,Start,End,Subject,Instructor,Venue") + 1:]
        self.assertEqual(body, [
            "1,Monday,09:00,10:00,CS2020 Computability,Alan Turing,A-101",
            "2,Wednesday,13:00,15:00,CS2020 Computability,Alan Turing,A-101",
        ])

    def test_xlsx(self) -> None:
        resp = self._export("xlsx")
        self.assertEqual(resp.status_code, 200)
        ws = load_workbook(io.BytesIO(resp.data)).active
        values = [row for row in ws.iter_rows(values_only=True)]
        self.assertEqual(values[0][:2], ("Timetable", "Semester 1"))
        self.assertEqual(values[-1][1], "Wednesday")

    def test_pdf(self) -> None:
        resp = self._export("pdf")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["Content-Type"], "application/pdf")
        self.assertTrue(resp.data.startswith(b"%PDF"))

    def test_unknown_format(self) -> None:
        resp = self._export("docx")
        self.assertEnvelope(resp, 400, success=False)


if __name__ == "__main__":
    unittest.main()
