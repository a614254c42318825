from utils.db import mongo
from datetime import datetime
from bson import ObjectId
from utils.serializers import iso

GROUP_TYPES = ["weekday", "weekend"]


class Group:

    @staticmethod
    def collection():
        return mongo.db.groups

    def __init__(self, name, faculty, department, year, semester, group_type,
                 students=None, created_at=None, updated_at=None):
        self.name = name
        self.faculty = faculty
        self.department = department
        self.year = year
        self.semester = semester
        self.group_type = group_type  # "weekday" | "weekend"
        self.students = students or []
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "name": self.name,
            "faculty": self.faculty,
            "department": self.department,
            "year": self.year,
            "semester": self.semester,
            "group_type": self.group_type,
            "students": self.students,
            "created_at": self.created_at,
            "updated_at": self.updated_at
        }

    def save(self):
        doc = self.to_dict()
        doc["_id"] = self.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def find_by_id(group_id):
        return Group.collection().find_one({"_id": ObjectId(group_id)})

    @staticmethod
    def to_response(group):
        return {
            "id": str(group["_id"]),
            "name": group.get("name"),
            "faculty": group.get("faculty"),
            "department": group.get("department"),
            "year": group.get("year"),
            "semester": group.get("semester"),
            "groupType": group.get("group_type"),
            "students": list(group.get("students", [])),
            "createdAt": iso(group.get("created_at")),
            "updatedAt": iso(group.get("updated_at")),
        }
