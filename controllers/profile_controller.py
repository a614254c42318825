import logging
import os
import uuid
from datetime import datetime

from flask import Blueprint, current_app, request
from pymongo.errors import PyMongoError

from models.users import User, ROLES, DEFAULT_PROFILE_PICTURE
from utils.auth import login_required, roles_required, current_user_id
from utils.http import HTTP_STATUS, success_response, error_response
from utils.validators import parse_object_id

logger = logging.getLogger(__name__)

profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")

PICTURE_DIR = "profile-pictures"
FILE_FIELD = "profilePicture"


def _allowed_file(filename):
    return "." in filename and \
        filename.rsplit(".", 1)[1].lower() in current_app.config["ALLOWED_IMAGE_EXTENSIONS"]


def _picture_result(key):
    return {
        "profilePicture": {
            "url": f"/uploads/{key}",
            "filename": os.path.basename(key),
            "key": key,
        }
    }


def _remove_file(key):
    if not key or key == DEFAULT_PROFILE_PICTURE:
        return
    path = os.path.join(current_app.config["UPLOAD_FOLDER"], key)
    if os.path.isfile(path):
        try:
            os.remove(path)
        except OSError:
            logger.warning("Could not remove old profile picture %s", path)


def _store_upload(user_oid):
    """Save the uploaded image for a user and swap it in; returns (key, None) or (None, error)."""
    file = request.files.get(FILE_FIELD)
    if not file or not file.filename:
        return None, error_response("No file uploaded", HTTP_STATUS.BAD_REQUEST)
    if not _allowed_file(file.filename):
        return None, error_response("Only image files are allowed (png, jpg, jpeg, gif, webp)",
                                    HTTP_STATUS.BAD_REQUEST)

    user = User.find_by_id(user_oid)
    if not user:
        return None, error_response("User not found", HTTP_STATUS.NOT_FOUND)

    # extension already checked by _allowed_file
    ext = file.filename.rsplit(".", 1)[1].lower()
    key = f"{PICTURE_DIR}/{user_oid}-{uuid.uuid4().hex}.{ext}"
    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], PICTURE_DIR)
    os.makedirs(folder, exist_ok=True)
    file.save(os.path.join(current_app.config["UPLOAD_FOLDER"], key))

    try:
        User.collection().update_one(
            {"_id": user_oid},
            {"$set": {"profile_picture": key, "updated_at": datetime.utcnow()}}
        )
    except PyMongoError:
        _remove_file(key)
        raise
    _remove_file(user.get("profile_picture"))
    return key, None


@profile_bp.route("/picture", methods=["GET"])
@login_required
def get_picture():
    try:
        user = User.find_by_id(parse_object_id(current_user_id(), "user id"))
    except PyMongoError:
        logger.exception("Error fetching profile picture")
        return error_response("Server error occurred while fetching profile picture", HTTP_STATUS.SERVER_ERROR)

    if not user:
        return error_response("User not found", HTTP_STATUS.NOT_FOUND)
    key = user.get("profile_picture") or DEFAULT_PROFILE_PICTURE
    return success_response("Profile picture fetched successfully", HTTP_STATUS.OK, _picture_result(key))


@profile_bp.route("/picture/upload", methods=["POST"])
@login_required
def upload_picture():
    try:
        key, failed = _store_upload(parse_object_id(current_user_id(), "user id"))
    except PyMongoError:
        logger.exception("Error uploading profile picture")
        return error_response("Server error occurred while uploading profile picture", HTTP_STATUS.SERVER_ERROR)

    if failed:
        return failed
    return success_response("Profile picture uploaded successfully", HTTP_STATUS.OK, _picture_result(key))


@profile_bp.route("/picture", methods=["DELETE"])
@login_required
def delete_picture():
    oid = parse_object_id(current_user_id(), "user id")
    try:
        user = User.find_by_id(oid)
        if not user:
            return error_response("User not found", HTTP_STATUS.NOT_FOUND)

        User.collection().update_one(
            {"_id": oid},
            {"$set": {"profile_picture": DEFAULT_PROFILE_PICTURE, "updated_at": datetime.utcnow()}}
        )
        _remove_file(user.get("profile_picture"))
    except PyMongoError:
        logger.exception("Error deleting profile picture")
        return error_response("Server error occurred while deleting profile picture", HTTP_STATUS.SERVER_ERROR)

    return success_response("Profile picture removed successfully", HTTP_STATUS.OK,
                            _picture_result(DEFAULT_PROFILE_PICTURE))


# Admin uploads a picture on behalf of another user
@profile_bp.route("/picture/user/<user_id>/upload", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def upload_picture_for_user(user_id):
    oid = parse_object_id(user_id, "user id")
    try:
        key, failed = _store_upload(oid)
    except PyMongoError:
        logger.exception("Error uploading profile picture for user %s", user_id)
        return error_response("Server error occurred while uploading profile picture", HTTP_STATUS.SERVER_ERROR)

    if failed:
        return failed
    return success_response("Profile picture uploaded successfully", HTTP_STATUS.OK, _picture_result(key))
