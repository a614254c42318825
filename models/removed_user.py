from utils.db import mongo
from datetime import datetime
from utils.serializers import iso


class RemovedUser:

    @staticmethod
    def collection():
        return mongo.db.removed_users

    def __init__(self, first_name, last_name, email, role, removed_by=None,
                 reason=None, removed_at=None):
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.role = role
        self.removed_by = removed_by  # ObjectId of the admin, or None
        self.reason = reason or "Not specified"
        self.removed_at = removed_at or datetime.utcnow()

    @classmethod
    def from_user(cls, user, removed_by=None, reason=None):
        return cls(user.get("first_name"), user.get("last_name"), user.get("email"),
                   user.get("role"), removed_by=removed_by, reason=reason)

    def to_dict(self):
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role,
            "removed_by": self.removed_by,
            "reason": self.reason,
            "removed_at": self.removed_at,
            "created_at": self.removed_at,
            "updated_at": self.removed_at
        }

    def save(self):
        doc = self.to_dict()
        doc["_id"] = self.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def to_response(doc, removed_by=None):
        return {
            "id": str(doc["_id"]),
            "firstName": doc.get("first_name"),
            "lastName": doc.get("last_name"),
            "email": doc.get("email"),
            "role": doc.get("role"),
            "reason": doc.get("reason", "Not specified"),
            "removedAt": iso(doc.get("removed_at")),
            "removedBy": removed_by,
        }
