from utils.db import mongo
from datetime import datetime
from bson import ObjectId
from utils.serializers import iso

DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


def _ref(value):
    return str(value) if value else None


class Slot:
    """One scheduled occurrence of a subject; embedded in a timetable's `slots` array."""

    def __init__(self, subject, instructor, venue, day, start_time, end_time, slot_id=None):
        self.id = slot_id or ObjectId()
        self.subject = subject
        self.instructor = instructor
        self.venue = venue
        self.day = day
        self.start_time = start_time
        self.end_time = end_time

    def to_dict(self):
        now = datetime.utcnow()
        return {
            "_id": self.id,
            "subject": self.subject,
            "instructor": self.instructor,
            "venue": self.venue,
            "day": self.day,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "created_at": now,
            "updated_at": now
        }

    @staticmethod
    def to_response(slot):
        return {
            "id": str(slot["_id"]),
            "subject": _ref(slot.get("subject")),
            "instructor": _ref(slot.get("instructor")),
            "venue": _ref(slot.get("venue")),
            "day": slot.get("day"),
            "startTime": slot.get("start_time"),
            "endTime": slot.get("end_time"),
        }


class Timetable:

    @staticmethod
    def collection():
        return mongo.db.timetables

    def __init__(self, title, description, group_name, is_published=False, slots=None,
                 created_at=None, updated_at=None):
        self.title = title
        self.description = description
        self.group_name = group_name  # only the group's name is stored
        self.is_published = is_published
        self.slots = slots or []
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "title": self.title,
            "description": self.description,
            "group_name": self.group_name,
            "is_published": self.is_published,
            "slots": self.slots,
            "created_at": self.created_at,
            "updated_at": self.updated_at
        }

    def save(self):
        doc = self.to_dict()
        doc["_id"] = self.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def find_by_id(timetable_id):
        return Timetable.collection().find_one({"_id": ObjectId(timetable_id)})

    # group_name is exposed as "group" to clients
    @staticmethod
    def to_response(timetable):
        return {
            "id": str(timetable["_id"]),
            "title": timetable.get("title"),
            "description": timetable.get("description"),
            "group": timetable.get("group_name"),
            "isPublished": timetable.get("is_published", False),
            "slots": [Slot.to_response(s) for s in timetable.get("slots", [])],
            "createdAt": iso(timetable.get("created_at")),
            "updatedAt": iso(timetable.get("updated_at")),
        }
