from utils.db import mongo
from datetime import datetime
from bson import ObjectId
from pymongo import ReturnDocument
from utils.serializers import iso

REQUEST_STATUS = {
    "PENDING": "Pending",
    "APPROVED": "Approved",
    "REJECTED": "Rejected",
}
STATUS_VALUES = list(REQUEST_STATUS.values())


class UserRequest:
    """A registration request submitted before an account exists."""

    @staticmethod
    def collection():
        return mongo.db.user_requests

    def __init__(self, first_name, last_name, email, role, additional_details=None,
                 status=None, created_at=None, updated_at=None):
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.role = role
        self.additional_details = additional_details
        self.status = status or REQUEST_STATUS["PENDING"]
        self.is_approved = self.status == REQUEST_STATUS["APPROVED"]
        self.is_email_sent = False
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role,
            "additional_details": self.additional_details,
            "status": self.status,
            "is_approved": self.is_approved,
            "is_email_sent": self.is_email_sent,
            "created_at": self.created_at,
            "updated_at": self.updated_at
        }

    def save(self):
        doc = self.to_dict()
        doc["_id"] = self.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def find_by_id(request_id):
        return UserRequest.collection().find_one({"_id": ObjectId(request_id)})

    @staticmethod
    def set_status(request_id, status, reason=None):
        update = {
            "status": status,
            "is_approved": status == REQUEST_STATUS["APPROVED"],
            "updated_at": datetime.utcnow()
        }
        if reason is not None:
            update["rejection_reason"] = reason
        return UserRequest.collection().find_one_and_update(
            {"_id": ObjectId(request_id)},
            {"$set": update},
            return_document=ReturnDocument.AFTER
        )

    @staticmethod
    def to_response(doc):
        return {
            "id": str(doc["_id"]),
            "firstName": doc.get("first_name"),
            "lastName": doc.get("last_name"),
            "email": doc.get("email"),
            "role": doc.get("role"),
            "additionalDetails": doc.get("additional_details"),
            "status": doc.get("status"),
            "isApproved": doc.get("is_approved", False),
            "isEmailSent": doc.get("is_email_sent", False),
            "rejectionReason": doc.get("rejection_reason"),
            "createdAt": iso(doc.get("created_at")),
            "updatedAt": iso(doc.get("updated_at")),
        }
