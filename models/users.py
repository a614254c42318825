from utils.db import mongo
from datetime import datetime
from bson import ObjectId
from utils.auth import hash_password, verify_password
from utils.serializers import iso

ROLES = {
    "LECTURER": "Lecturer",
    "STUDENT": "Student",
    "ADMIN": "Admin",
}
ROLE_VALUES = list(ROLES.values())
DEFAULT_PROFILE_PICTURE = "default-profile.jpg"


class User:

    @staticmethod
    def collection():
        return mongo.db.users

    def __init__(self, first_name, last_name, email, password, role,
                 profile_picture=None, is_first_login=True, password_change_required=True,
                 refresh_token="", created_at=None, updated_at=None):
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.password = hash_password(password)
        self.role = role
        self.profile_picture = profile_picture or DEFAULT_PROFILE_PICTURE
        self.is_first_login = is_first_login
        self.password_change_required = password_change_required
        self.refresh_token = refresh_token
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    # Convert to dictionary for MongoDB
    def to_dict(self):
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "password": self.password,
            "role": self.role,
            "profile_picture": self.profile_picture,
            "is_first_login": self.is_first_login,
            "password_change_required": self.password_change_required,
            "refresh_token": self.refresh_token,
            "created_at": self.created_at,
            "updated_at": self.updated_at
        }

    # Save new user, returns the stored document
    def save(self):
        doc = self.to_dict()
        result = self.collection().insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    # Find user by ID
    @staticmethod
    def find_by_id(user_id):
        return User.collection().find_one({"_id": ObjectId(user_id)})

    # Find user by email
    @staticmethod
    def find_by_email(email):
        return User.collection().find_one({"email": email})

    # Verify password
    @staticmethod
    def verify_password(email, password):
        user = User.find_by_email(email)
        if user and verify_password(password, user.get("password")):
            return user
        return None

    @staticmethod
    def set_password(user_id, password, change_required=False):
        return User.collection().update_one(
            {"_id": ObjectId(user_id)},
            {"$set": {
                "password": hash_password(password),
                "password_change_required": change_required,
                "is_first_login": change_required,
                "updated_at": datetime.utcnow()
            }}
        )

    # Public shape; never exposes the password hash or refresh token
    @staticmethod
    def to_response(user):
        return {
            "id": str(user["_id"]),
            "firstName": user.get("first_name"),
            "lastName": user.get("last_name"),
            "email": user.get("email"),
            "role": user.get("role"),
            "profilePicture": user.get("profile_picture", DEFAULT_PROFILE_PICTURE),
            "isFirstLogin": user.get("is_first_login", True),
            "passwordChangeRequired": user.get("password_change_required", True),
            "createdAt": iso(user.get("created_at")),
            "updatedAt": iso(user.get("updated_at")),
        }

    @staticmethod
    def to_summary(user):
        return {
            "id": str(user["_id"]),
            "firstName": user.get("first_name"),
            "lastName": user.get("last_name"),
            "email": user.get("email"),
        }
