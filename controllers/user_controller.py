import logging
from datetime import datetime

from flask import Blueprint
from pymongo.errors import PyMongoError

from models.users import User, ROLES, ROLE_VALUES
from models.removed_user import RemovedUser
from models.user_request import UserRequest, REQUEST_STATUS
from utils.auth import roles_required, current_user_id, generate_default_password
from utils.http import HTTP_STATUS, success_response, error_response, get_json_body
from utils.validators import parse_object_id, optional_object_id, is_valid_email, NAME_PATTERN

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/user")

# Shown when the admin who removed a user no longer exists
FORMER_ADMIN = {"id": None, "firstName": "Former", "lastName": "Admin", "email": "admin@system.com"}
SYSTEM_ADMIN = {"id": "unknown", "firstName": "System", "lastName": "Admin", "email": "admin@system.com"}


# -----------------------------
# VIEW USERS
# -----------------------------
@users_bp.route("", methods=["GET"])
@roles_required(ROLES["ADMIN"])
def view_users():
    try:
        users = list(User.collection().find().sort("created_at", 1))
    except PyMongoError:
        logger.exception("Error fetching users")
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    return success_response("Users fetched successfully", HTTP_STATUS.OK,
                            [User.to_response(u) for u in users])


@users_bp.route("/by-role/<role>", methods=["GET"])
@roles_required(ROLES["ADMIN"])
def users_by_role(role):
    if role not in ROLE_VALUES:
        return error_response("Invalid role specified", HTTP_STATUS.BAD_REQUEST)

    try:
        users = list(User.collection().find({"role": role}).sort("first_name", 1))
    except PyMongoError:
        logger.exception("Error getting users by role %s", role)
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    return success_response(f"{role}s retrieved successfully", HTTP_STATUS.OK,
                            [User.to_response(u) for u in users])


@users_bp.route("/removed", methods=["GET"])
@roles_required(ROLES["ADMIN"])
def removed_users():
    try:
        records = list(RemovedUser.collection().find().sort("removed_at", -1))
        result = []
        for record in records:
            removed_by = SYSTEM_ADMIN
            if record.get("removed_by"):
                admin = User.find_by_id(record["removed_by"])
                if admin:
                    removed_by = User.to_summary(admin)
                else:
                    removed_by = dict(FORMER_ADMIN, id=str(record["removed_by"]))
            result.append(RemovedUser.to_response(record, removed_by))
    except PyMongoError:
        logger.exception("Error getting removed users")
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    return success_response("Removed users retrieved successfully", HTTP_STATUS.OK, result)


@users_bp.route("/<user_id>", methods=["GET"])
@roles_required(ROLES["ADMIN"])
def view_user(user_id):
    oid = parse_object_id(user_id, "user id")
    try:
        user = User.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error fetching user %s", user_id)
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    if not user:
        return error_response("User not found", HTTP_STATUS.NOT_FOUND)
    return success_response("User fetched successfully", HTTP_STATUS.OK, User.to_response(user))


# -----------------------------
# ADD ADMIN
# -----------------------------
@users_bp.route("/register-admin", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def register_admin():
    data = get_json_body()
    first_name = data.get("firstName")
    last_name = data.get("lastName")
    email = data.get("email")
    password = data.get("password")

    if not first_name or not last_name or not email or not password:
        return error_response("First name, last name, email, and password are required.",
                              HTTP_STATUS.BAD_REQUEST)
    if not all(isinstance(v, str) for v in (first_name, last_name, email, password)):
        return error_response("First name, last name, email, and password must be text.",
                              HTTP_STATUS.BAD_REQUEST)
    if not is_valid_email(email):
        return error_response("Invalid email format", HTTP_STATUS.BAD_REQUEST)

    try:
        # Prevent duplicate users
        if User.find_by_email(email):
            return error_response("Email already exists", HTTP_STATUS.CONFLICT)

        admin = User(first_name, last_name, email, password, ROLES["ADMIN"]).save()
    except PyMongoError:
        logger.exception("Error registering admin")
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    logger.info("Admin %s registered by %s", admin["_id"], current_user_id())
    return success_response("Admin registered successfully", HTTP_STATUS.CREATED, User.to_response(admin))


# -----------------------------
# ADD USER FROM APPROVED REQUEST
# -----------------------------
@users_bp.route("/register-user/<request_id>", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def register_user(request_id):
    oid = parse_object_id(request_id, "request id")

    try:
        form_request = UserRequest.find_by_id(oid)
        if not form_request or form_request.get("status") != REQUEST_STATUS["APPROVED"]:
            return error_response("Invalid user request or not approved", HTTP_STATUS.BAD_REQUEST)

        if User.find_by_email(form_request["email"]):
            return error_response("Email already exists", HTTP_STATUS.CONFLICT)

        default_password = generate_default_password()
        user = User(form_request["first_name"], form_request["last_name"], form_request["email"],
                    default_password, form_request["role"]).save()
    except PyMongoError:
        logger.exception("Error registering user from request %s", request_id)
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    result = User.to_response(user)
    result["defaultPassword"] = default_password
    return success_response("User registered successfully", HTTP_STATUS.CREATED, result)


# -----------------------------
# EDIT USER
# -----------------------------
@users_bp.route("/<user_id>", methods=["PUT"])
@roles_required(ROLES["ADMIN"])
def edit_user(user_id):
    oid = parse_object_id(user_id, "user id")
    data = get_json_body()
    errors = {}
    values = {}
    for key, label in (("firstName", "First name"), ("lastName", "Last name"), ("email", "Email")):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            errors[key] = f"{label} must be text"
        else:
            values[key] = (value or "").strip()
    if errors:
        return error_response("Validation failed: Format errors", HTTP_STATUS.BAD_REQUEST,
                              {"validationErrors": errors})

    first_name = values["firstName"]
    last_name = values["lastName"]
    email = values["email"]
    if not first_name:
        errors["firstName"] = "First name is required"
    if not last_name:
        errors["lastName"] = "Last name is required"
    if not email:
        errors["email"] = "Email is required"
    if errors:
        return error_response("Validation failed: Missing required fields", HTTP_STATUS.BAD_REQUEST,
                              {"validationErrors": errors})

    if not NAME_PATTERN.match(first_name):
        errors["firstName"] = "First name can only contain letters and numbers"
    if not NAME_PATTERN.match(last_name):
        errors["lastName"] = "Last name can only contain letters and numbers"
    if not is_valid_email(email):
        errors["email"] = "Invalid email format"
    if errors:
        return error_response("Validation failed: Format errors", HTTP_STATUS.BAD_REQUEST,
                              {"validationErrors": errors})

    try:
        user = User.find_by_id(oid)
        if not user:
            return error_response("User not found", HTTP_STATUS.NOT_FOUND)

        # Check if email is changed and if it's already taken
        if email != user.get("email") and User.find_by_email(email):
            return error_response("Email is already in use", HTTP_STATUS.CONFLICT, {
                "validationErrors": {"email": "This email is already in use by another user"}
            })

        update_data = {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "updated_at": datetime.utcnow()
        }
        User.collection().update_one({"_id": oid}, {"$set": update_data})
        user.update(update_data)
    except PyMongoError:
        logger.exception("Error updating user %s", user_id)
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    return success_response("User updated successfully", HTTP_STATUS.OK, User.to_response(user))


# -----------------------------
# DELETE USER
# -----------------------------
@users_bp.route("/<user_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"])
def delete_user(user_id):
    oid = parse_object_id(user_id, "user id")
    reason = get_json_body().get("reason")

    try:
        user = User.find_by_id(oid)
        if not user:
            return error_response("User not found", HTTP_STATUS.NOT_FOUND)

        # Keep a record of who was removed and by whom, then delete
        RemovedUser.from_user(user, removed_by=optional_object_id(current_user_id()), reason=reason).save()
        User.collection().delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Error removing user %s", user_id)
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    logger.info("User %s removed by %s", user_id, current_user_id())
    return success_response("User removed successfully", HTTP_STATUS.OK, {"userId": user_id})
