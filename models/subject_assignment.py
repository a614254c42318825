from utils.db import mongo
from datetime import datetime
from bson import ObjectId
from utils.serializers import iso

SEMESTERS = [1, 2]


class SubjectAssignment:
    """Lecturer assigned to teach a subject in a given academic year and semester."""

    @staticmethod
    def collection():
        return mongo.db.subject_assignments

    def __init__(self, subject, lecturer, academic_year, semester, notes=None,
                 created_at=None, updated_at=None):
        self.subject = subject
        self.lecturer = lecturer
        self.academic_year = academic_year  # e.g. "2024/2025"
        self.semester = semester
        self.notes = notes or ""
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "subject": self.subject,
            "lecturer": self.lecturer,
            "academic_year": self.academic_year,
            "semester": self.semester,
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at
        }

    def save(self):
        doc = self.to_dict()
        doc["_id"] = self.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def find_by_id(assignment_id):
        return SubjectAssignment.collection().find_one({"_id": ObjectId(assignment_id)})

    @staticmethod
    def find_duplicate(subject, lecturer, academic_year, semester, exclude_id=None):
        query = {
            "subject": subject,
            "lecturer": lecturer,
            "academic_year": academic_year,
            "semester": semester
        }
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        return SubjectAssignment.collection().find_one(query)

    @staticmethod
    def to_response(doc, subject=None, lecturer=None):
        return {
            "id": str(doc["_id"]),
            "subject": subject or str(doc.get("subject")),
            "lecturer": lecturer or str(doc.get("lecturer")),
            "academicYear": doc.get("academic_year"),
            "semester": doc.get("semester"),
            "notes": doc.get("notes", ""),
            "createdAt": iso(doc.get("created_at")),
            "updatedAt": iso(doc.get("updated_at")),
        }
