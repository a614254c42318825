from utils.db import mongo
from datetime import datetime
from bson import ObjectId
from utils.serializers import iso

VENUE_TYPES = ["lecture", "tutorial", "lab"]


class Venue:

    @staticmethod
    def collection():
        return mongo.db.venues

    def __init__(self, faculty, department, building, hall_name, type, capacity,
                 booked_slots=None, created_at=None, updated_at=None):
        self.faculty = faculty
        self.department = department
        self.building = building
        self.hall_name = hall_name
        self.type = type  # "lecture" | "tutorial" | "lab"
        self.capacity = capacity
        self.booked_slots = booked_slots or []
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "faculty": self.faculty,
            "department": self.department,
            "building": self.building,
            "hall_name": self.hall_name,
            "type": self.type,
            "capacity": self.capacity,
            "booked_slots": self.booked_slots,
            "created_at": self.created_at,
            "updated_at": self.updated_at
        }

    def save(self):
        doc = self.to_dict()
        doc["_id"] = self.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def find_by_id(venue_id):
        return Venue.collection().find_one({"_id": ObjectId(venue_id)})

    @staticmethod
    def booked_slot(date, start_time, end_time):
        return {
            "_id": ObjectId(),
            "date": date,
            "start_time": start_time,
            "end_time": end_time
        }

    @staticmethod
    def to_response(venue):
        return {
            "id": str(venue["_id"]),
            "faculty": venue.get("faculty"),
            "department": venue.get("department"),
            "building": venue.get("building"),
            "hallName": venue.get("hall_name"),
            "type": venue.get("type"),
            "capacity": venue.get("capacity"),
            "bookedSlots": [
                {
                    "id": str(s["_id"]) if s.get("_id") else None,
                    "date": iso(s.get("date")),
                    "startTime": s.get("start_time"),
                    "endTime": s.get("end_time"),
                }
                for s in venue.get("booked_slots", [])
            ],
            "createdAt": iso(venue.get("created_at")),
            "updatedAt": iso(venue.get("updated_at")),
        }

    # Trimmed shape used by dropdowns
    @staticmethod
    def to_option(venue):
        return {
            "id": str(venue["_id"]),
            "hallName": venue.get("hall_name"),
            "type": venue.get("type"),
            "capacity": venue.get("capacity"),
        }
