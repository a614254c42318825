from utils.db import mongo
from datetime import datetime
from bson import ObjectId
from utils.serializers import iso

SUBJECT_STATUSES = ["active", "inactive"]


class Subject:

    @staticmethod
    def collection():
        return mongo.db.subjects

    def __init__(self, name, code, credits, description=None, lecturer=None,
                 department=None, status="active", created_at=None, updated_at=None):
        self.name = name
        self.code = code
        self.credits = credits
        self.description = description
        self.lecturer = lecturer  # ObjectId of a User with role Lecturer
        self.department = department
        self.status = status
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "name": self.name,
            "code": self.code,
            "credits": self.credits,
            "description": self.description,
            "lecturer": self.lecturer,
            "department": self.department,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at
        }

    def save(self):
        doc = self.to_dict()
        doc["_id"] = self.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def find_by_id(subject_id):
        return Subject.collection().find_one({"_id": ObjectId(subject_id)})

    @staticmethod
    def find_by_code(code):
        return Subject.collection().find_one({"code": code})

    @staticmethod
    def to_response(subject, lecturer=None):
        """`lecturer` is the populated user summary when it could be resolved."""
        lecturer_id = subject.get("lecturer")
        return {
            "id": str(subject["_id"]),
            "name": subject.get("name"),
            "code": subject.get("code"),
            "description": subject.get("description"),
            "credits": subject.get("credits"),
            "department": subject.get("department"),
            "status": subject.get("status", "active"),
            "lecturer": lecturer if lecturer else (str(lecturer_id) if lecturer_id else None),
            "createdAt": iso(subject.get("created_at")),
            "updatedAt": iso(subject.get("updated_at")),
        }

    @staticmethod
    def to_option(subject):
        return {
            "id": str(subject["_id"]),
            "name": subject.get("name"),
            "code": subject.get("code"),
        }
