import logging
from datetime import datetime

from flask import Blueprint, g
from pymongo.errors import PyMongoError

from models.users import User, ROLES
from utils.auth import (
    login_required, roles_required, current_user_id, decode_token,
    generate_access_token, generate_refresh_token, verify_password, generate_default_password
)
from utils.http import HTTP_STATUS, success_response, error_response, get_json_body
from utils.validators import parse_object_id, require_fields, ValidationError

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

MIN_PASSWORD_LENGTH = 6


def _login_result(user, access_token, refresh_token):
    return {
        "user": User.to_response(user),
        "accessToken": access_token,
        "refreshToken": refresh_token,
        "passwordChangeRequired": user.get("password_change_required", True),
    }


# Login
@auth_bp.route("/login", methods=["POST"])
def login():
    data = get_json_body()
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return error_response("Email and password are required", HTTP_STATUS.BAD_REQUEST)
    if not isinstance(email, str) or not isinstance(password, str):
        return error_response("Invalid email or password", HTTP_STATUS.BAD_REQUEST)

    try:
        user = User.verify_password(email, password)
        if not user:
            return error_response("Invalid email or password", HTTP_STATUS.BAD_REQUEST)

        access_token = generate_access_token(user)
        refresh_token = generate_refresh_token(user)
        User.collection().update_one({"_id": user["_id"]}, {"$set": {"refresh_token": refresh_token}})
    except PyMongoError:
        logger.exception("Error during login")
        return error_response("Internal Server Error", HTTP_STATUS.SERVER_ERROR)

    logger.info("User %s logged in", user["_id"])
    return success_response("Login Successful", HTTP_STATUS.OK, _login_result(user, access_token, refresh_token))


# Exchange a refresh token for a new access token
@auth_bp.route("/refresh-token", methods=["POST"])
def refresh_token():
    token = get_json_body().get("refreshToken")
    if not token or not isinstance(token, str):
        return error_response("Refresh token is required", HTTP_STATUS.UNAUTHORIZED)

    payload = decode_token(token, refresh=True)
    if not payload:
        return error_response("Invalid or expired refresh token", HTTP_STATUS.UNAUTHORIZED)

    try:
        user = User.find_by_id(payload["userId"])
    except PyMongoError:
        logger.exception("Error refreshing token")
        return error_response("Internal Server Error", HTTP_STATUS.SERVER_ERROR)

    # only the most recently issued refresh token is honoured
    if not user or user.get("refresh_token") != token:
        return error_response("Invalid or expired refresh token", HTTP_STATUS.UNAUTHORIZED)

    return success_response("Token refreshed", HTTP_STATUS.OK, {"accessToken": generate_access_token(user)})


# Change own password
@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    data = get_json_body()
    require_fields(data, ["currentPassword", "newPassword"])
    current_password = data["currentPassword"]
    new_password = data["newPassword"]

    if not isinstance(current_password, str) or not isinstance(new_password, str):
        raise ValidationError("Passwords must be text")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")

    try:
        user = User.find_by_id(current_user_id())
        if not user:
            return error_response("User not found", HTTP_STATUS.NOT_FOUND)

        if not verify_password(current_password, user.get("password")):
            return error_response("Current password is incorrect", HTTP_STATUS.BAD_REQUEST)

        User.set_password(user["_id"], new_password, change_required=False)
    except PyMongoError:
        logger.exception("Error changing password")
        return error_response("Internal Server Error", HTTP_STATUS.SERVER_ERROR)

    return success_response("Password changed successfully")


# Admin resets another user's password to a temporary one
@auth_bp.route("/reset-password", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def reset_password():
    data = get_json_body()
    require_fields(data, ["userId"])
    user_id = parse_object_id(data["userId"], "userId")

    try:
        user = User.find_by_id(user_id)
        if not user:
            return error_response("User not found", HTTP_STATUS.NOT_FOUND)

        temporary_password = generate_default_password()
        User.set_password(user_id, temporary_password, change_required=True)
    except PyMongoError:
        logger.exception("Error resetting password")
        return error_response("Internal Server Error", HTTP_STATUS.SERVER_ERROR)

    logger.info("Password for user %s reset by %s", user_id, current_user_id())
    return success_response("Password reset successfully", HTTP_STATUS.OK,
                            {"userId": str(user_id), "temporaryPassword": temporary_password})


# Current user details (used by clients to validate a stored token)
@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    try:
        user = User.find_by_id(g.current_user["userId"])
    except PyMongoError:
        logger.exception("Error fetching current user")
        return error_response("Internal Server Error", HTTP_STATUS.SERVER_ERROR)

    if not user:
        return error_response("User not found", HTTP_STATUS.NOT_FOUND)
    return success_response("User details fetched", HTTP_STATUS.OK, User.to_response(user))


# Logout
@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    try:
        User.collection().update_one(
            {"_id": parse_object_id(current_user_id())},
            {"$set": {"refresh_token": "", "updated_at": datetime.utcnow()}}
        )
    except PyMongoError:
        logger.exception("Error during logout")
        return error_response("Internal Server Error", HTTP_STATUS.SERVER_ERROR)

    return success_response("You have been logged out successfully.")
