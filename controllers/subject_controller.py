import logging
from datetime import datetime

from flask import Blueprint, request
from pymongo.errors import PyMongoError

from models.users import User, ROLES
from models.subject import Subject, SUBJECT_STATUSES
from utils.auth import roles_required, current_user_id
from utils.http import HTTP_STATUS, success_response, error_response, get_json_body
from utils.validators import (
    ValidationError, parse_object_id, optional_object_id, require_fields, to_int, check_choice
)

logger = logging.getLogger(__name__)

subjects_bp = Blueprint("subjects", __name__, url_prefix="/api/subject")

FIELDS = {
    "name": "name",
    "code": "code",
    "description": "description",
    "lecturer": "lecturer",
    "credits": "credits",
    "department": "department",
    "status": "status",
}


def _subject_fields(data, partial=False):
    if not partial:
        require_fields(data, ["name", "code", "credits"])

    fields = {}
    for key, stored in FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if key == "lecturer":
            value = optional_object_id(value, "lecturer")
        elif value is None:
            continue
        elif key == "credits":
            value = to_int(value, "credits", minimum=0)
        elif key == "status":
            value = check_choice(value, SUBJECT_STATUSES, "status")
        elif key == "code":
            value = str(value).strip().upper()
        if key in ("name", "code") and not value:
            raise ValidationError(f"{key} cannot be empty")
        fields[stored] = value
    return fields


def _check_lecturer(lecturer_id):
    if lecturer_id is None:
        return
    lecturer = User.find_by_id(lecturer_id)
    if not lecturer or lecturer.get("role") != ROLES["LECTURER"]:
        raise ValidationError("lecturer must reference an existing lecturer")


def _response(subject):
    lecturer = None
    if subject.get("lecturer"):
        user = User.find_by_id(subject["lecturer"])
        if user:
            lecturer = User.to_summary(user)
    return Subject.to_response(subject, lecturer)


# Add a new subject
@subjects_bp.route("/add", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def add_subject():
    fields = _subject_fields(get_json_body())

    try:
        _check_lecturer(fields.get("lecturer"))
        if Subject.find_by_code(fields["code"]):
            return error_response("Subject code already exists", HTTP_STATUS.CONFLICT)

        subject = Subject(**fields).save()
        result = _response(subject)
    except PyMongoError:
        logger.exception("Error adding subject")
        return error_response("Server error occurred while adding subject", HTTP_STATUS.SERVER_ERROR)

    return success_response("Subject added", HTTP_STATUS.CREATED, result)


# Get all subjects
@subjects_bp.route("/get/all", methods=["GET"])
def view_subjects():
    query = {}
    for key in ("department", "status"):
        if request.args.get(key):
            query[key] = request.args[key]
    if request.args.get("lecturer"):
        query["lecturer"] = parse_object_id(request.args["lecturer"], "lecturer")

    try:
        subjects = list(Subject.collection().find(query).sort("code", 1))
        result = [_response(s) for s in subjects]
    except PyMongoError:
        logger.exception("Error fetching subjects")
        return error_response("Server error occurred while fetching subjects", HTTP_STATUS.SERVER_ERROR)

    return success_response("Subjects fetched successfully", HTTP_STATUS.OK, result)


@subjects_bp.route("/get/options", methods=["GET"])
def subject_options():
    try:
        subjects = list(Subject.collection().find({}, {"name": 1, "code": 1}).sort("code", 1))
    except PyMongoError:
        logger.exception("Error fetching subject options")
        return error_response("Server error occurred while fetching subjects", HTTP_STATUS.SERVER_ERROR)

    return success_response("Subjects fetched successfully", HTTP_STATUS.OK, [Subject.to_option(s) for s in subjects])


@subjects_bp.route("/get/<subject_id>", methods=["GET"])
def view_subject(subject_id):
    oid = parse_object_id(subject_id, "subject id")
    try:
        subject = Subject.find_by_id(oid)
        if not subject:
            return error_response("Subject not found", HTTP_STATUS.NOT_FOUND)
        result = _response(subject)
    except PyMongoError:
        logger.exception("Error fetching subject %s", subject_id)
        return error_response("Server error occurred while fetching subject", HTTP_STATUS.SERVER_ERROR)

    return success_response("Subject fetched successfully", HTTP_STATUS.OK, result)


# Subjects taught by the requesting lecturer
@subjects_bp.route("/lecturer", methods=["GET"])
@roles_required(ROLES["LECTURER"], ROLES["ADMIN"])
def lecturer_subjects():
    lecturer_id = parse_object_id(current_user_id())
    try:
        subjects = list(Subject.collection().find({"lecturer": lecturer_id}).sort("code", 1))
        result = [_response(s) for s in subjects]
    except PyMongoError:
        logger.exception("Error fetching lecturer subjects")
        return error_response("Server error occurred while fetching subjects", HTTP_STATUS.SERVER_ERROR)

    return success_response("Subjects fetched successfully", HTTP_STATUS.OK, result)


# Update subject
@subjects_bp.route("/update/<subject_id>", methods=["PUT"])
@roles_required(ROLES["ADMIN"])
def edit_subject(subject_id):
    oid = parse_object_id(subject_id, "subject id")
    fields = _subject_fields(get_json_body(), partial=True)

    try:
        _check_lecturer(fields.get("lecturer"))
        if "code" in fields and Subject.collection().find_one({"code": fields["code"], "_id": {"$ne": oid}}):
            return error_response("Subject code already exists", HTTP_STATUS.CONFLICT)

        fields["updated_at"] = datetime.utcnow()
        result = Subject.collection().update_one({"_id": oid}, {"$set": fields})
        if not result.matched_count:
            return error_response("Subject not found", HTTP_STATUS.NOT_FOUND)
        subject = _response(Subject.find_by_id(oid))
    except PyMongoError:
        logger.exception("Error updating subject %s", subject_id)
        return error_response("Server error occurred while updating subject", HTTP_STATUS.SERVER_ERROR)

    return success_response("Subject updated", HTTP_STATUS.OK, subject)


# Delete subject
@subjects_bp.route("/delete/<subject_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"])
def delete_subject(subject_id):
    oid = parse_object_id(subject_id, "subject id")
    try:
        result = Subject.collection().delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Error deleting subject %s", subject_id)
        return error_response("Server error occurred while deleting subject", HTTP_STATUS.SERVER_ERROR)

    if not result.deleted_count:
        return error_response("Subject not found", HTTP_STATUS.NOT_FOUND)
    return success_response("Subject deleted")
