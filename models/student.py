import secrets
import string
from utils.db import mongo
from datetime import datetime
from bson import ObjectId
from utils.serializers import iso

DEGREE_PROGRAMS = ["BSc IT", "BSc CS", "BSc SE", "BSc DS", "BSc IS", "Other"]
MINIMUM_AGE = 18


def generate_student_id():
    alphabet = string.ascii_uppercase + string.digits
    return "S" + "".join(secrets.choice(alphabet) for _ in range(5))


class Student:

    @staticmethod
    def collection():
        return mongo.db.students

    def __init__(self, first_name, last_name, email, phone_number, degree_program, group,
                 date_of_birth, subjects_enrolled=None, student_id=None, guardian_contact=None,
                 address=None, created_at=None, updated_at=None):
        self.student_id = student_id or generate_student_id()
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.phone_number = phone_number
        self.degree_program = degree_program
        self.group = group  # ObjectId of the Group
        self.subjects_enrolled = subjects_enrolled or []
        self.date_of_birth = date_of_birth
        self.guardian_contact = guardian_contact
        self.address = address
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "student_id": self.student_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "degree_program": self.degree_program,
            "group": self.group,
            "subjects_enrolled": self.subjects_enrolled,
            "date_of_birth": self.date_of_birth,
            "guardian_contact": self.guardian_contact,
            "address": self.address,
            "created_at": self.created_at,
            "updated_at": self.updated_at
        }

    def save(self):
        doc = self.to_dict()
        doc["_id"] = self.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def find_by_id(student_id):
        return Student.collection().find_one({"_id": ObjectId(student_id)})

    @staticmethod
    def to_response(student, group=None, subjects=None):
        """`group` and `subjects` are the populated references, when resolved."""
        return {
            "id": str(student["_id"]),
            "studentId": student.get("student_id"),
            "firstName": student.get("first_name"),
            "lastName": student.get("last_name"),
            "email": student.get("email"),
            "phoneNumber": student.get("phone_number"),
            "degreeProgram": student.get("degree_program"),
            "group": {"id": str(group["_id"]), "name": group.get("name")} if group else None,
            "subjects": [
                {"id": str(s["_id"]), "name": s.get("name"), "code": s.get("code")}
                for s in (subjects or [])
            ],
            "dateOfBirth": iso(student.get("date_of_birth")),
            "guardianContact": student.get("guardian_contact"),
            "address": student.get("address"),
            "createdAt": iso(student.get("created_at")),
            "updatedAt": iso(student.get("updated_at")),
        }
