import logging
from datetime import datetime

from flask import Blueprint, current_app, request
from pymongo.errors import PyMongoError

from models.users import ROLES
from models.group import Group, GROUP_TYPES
from utils.auth import roles_required
from utils.http import HTTP_STATUS, success_response, error_response, get_json_body
from utils.validators import ValidationError, parse_object_id, require_fields, to_int, check_choice

logger = logging.getLogger(__name__)

groups_bp = Blueprint("groups", __name__, url_prefix="/api/group")

FIELDS = {
    "name": "name",
    "faculty": "faculty",
    "department": "department",
    "year": "year",
    "semester": "semester",
    "groupType": "group_type",
    "students": "students",
}
REQUIRED = ["name", "faculty", "department", "year", "semester", "groupType"]


def _check_students(students):
    if not isinstance(students, list) or not all(isinstance(s, str) and s.strip() for s in students):
        raise ValidationError("students must be a list of student identifiers")
    limit = current_app.config["MAX_GROUP_SIZE"]
    if len(students) > limit:
        raise ValidationError(f"A group cannot have more than {limit} students!")
    return students


def _group_fields(data, partial=False):
    if not partial:
        try:
            require_fields(data, REQUIRED)
        except ValidationError:
            raise ValidationError("All fields are required!")

    fields = {}
    for key, stored in FIELDS.items():
        if key not in data or data[key] is None:
            continue
        value = data[key]
        if key in ("year", "semester"):
            value = to_int(value, key, minimum=1)
        elif key == "groupType":
            value = check_choice(value, GROUP_TYPES, "groupType")
        elif key == "students":
            value = _check_students(value)
        elif not str(value).strip():
            raise ValidationError(f"{key} cannot be empty")
        fields[stored] = value
    return fields


# -----------------------------
# VIEW GROUPS
# -----------------------------
@groups_bp.route("", methods=["GET"])
def view_groups():
    query = {}
    for key in ("faculty", "department"):
        if request.args.get(key):
            query[key] = request.args[key]
    for key in ("year", "semester"):
        if request.args.get(key):
            query[key] = to_int(request.args[key], key)

    try:
        groups = list(Group.collection().find(query).sort("name", 1))
    except PyMongoError:
        logger.exception("Error fetching groups")
        return error_response("Server error occurred while fetching groups", HTTP_STATUS.SERVER_ERROR)

    return success_response("Groups fetched successfully", HTTP_STATUS.OK, [Group.to_response(g) for g in groups])


@groups_bp.route("/<group_id>", methods=["GET"])
def view_group(group_id):
    oid = parse_object_id(group_id, "group id")
    try:
        group = Group.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error fetching group %s", group_id)
        return error_response("Server error occurred while fetching group", HTTP_STATUS.SERVER_ERROR)

    if not group:
        return error_response("Group not found!", HTTP_STATUS.NOT_FOUND)
    return success_response("Group fetched successfully", HTTP_STATUS.OK, Group.to_response(group))


# -----------------------------
# ADD GROUP
# -----------------------------
# Names are not unique here; clients check for duplicates before submitting.
@groups_bp.route("", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def add_group():
    fields = _group_fields(get_json_body())

    try:
        group = Group(**fields).save()
    except PyMongoError:
        logger.exception("Error creating group")
        return error_response("Server error occurred while creating group", HTTP_STATUS.SERVER_ERROR)

    return success_response("Group created successfully!", HTTP_STATUS.CREATED, Group.to_response(group))


# -----------------------------
# EDIT GROUP
# -----------------------------
@groups_bp.route("/<group_id>", methods=["PUT", "PATCH"])
@roles_required(ROLES["ADMIN"])
def edit_group(group_id):
    oid = parse_object_id(group_id, "group id")
    fields = _group_fields(get_json_body(), partial=True)
    fields["updated_at"] = datetime.utcnow()

    try:
        result = Group.collection().update_one({"_id": oid}, {"$set": fields})
        if not result.matched_count:
            return error_response("Group not found!", HTTP_STATUS.NOT_FOUND)
        group = Group.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error updating group %s", group_id)
        return error_response("Server error occurred while updating group", HTTP_STATUS.SERVER_ERROR)

    return success_response("Group updated successfully!", HTTP_STATUS.OK, Group.to_response(group))


# -----------------------------
# DELETE GROUP
# -----------------------------
@groups_bp.route("/<group_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"])
def delete_group(group_id):
    oid = parse_object_id(group_id, "group id")
    try:
        result = Group.collection().delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Error deleting group %s", group_id)
        return error_response("Server error occurred while deleting group", HTTP_STATUS.SERVER_ERROR)

    if not result.deleted_count:
        return error_response("Group not found!", HTTP_STATUS.NOT_FOUND)
    return success_response("Group deleted successfully!")


# -----------------------------
# GROUP MEMBERSHIP
# -----------------------------
# Only the group document changes; student records are left untouched.
@groups_bp.route("/<group_id>/students", methods=["POST"])
@roles_required(ROLES["ADMIN"], ROLES["LECTURER"])
def add_student_to_group(group_id):
    oid = parse_object_id(group_id, "group id")
    data = get_json_body()
    require_fields(data, ["studentId"])
    student_id = str(data["studentId"]).strip()

    try:
        group = Group.find_by_id(oid)
        if not group:
            return error_response("Group not found!", HTTP_STATUS.NOT_FOUND)

        students = group.get("students", [])
        if student_id in students:
            return error_response("Student is already in this group", HTTP_STATUS.CONFLICT)
        _check_students(students + [student_id])

        Group.collection().update_one(
            {"_id": oid},
            {"$push": {"students": student_id}, "$set": {"updated_at": datetime.utcnow()}}
        )
        group = Group.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error adding student to group %s", group_id)
        return error_response("Server error occurred while updating group", HTTP_STATUS.SERVER_ERROR)

    return success_response("Student added to group", HTTP_STATUS.OK, Group.to_response(group))


@groups_bp.route("/<group_id>/students/<student_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"], ROLES["LECTURER"])
def remove_student_from_group(group_id, student_id):
    oid = parse_object_id(group_id, "group id")

    try:
        group = Group.find_by_id(oid)
        if not group:
            return error_response("Group not found!", HTTP_STATUS.NOT_FOUND)
        if student_id not in group.get("students", []):
            return error_response("Student is not in this group", HTTP_STATUS.NOT_FOUND)

        Group.collection().update_one(
            {"_id": oid},
            {"$pull": {"students": student_id}, "$set": {"updated_at": datetime.utcnow()}}
        )
        group = Group.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error removing student from group %s", group_id)
        return error_response("Server error occurred while updating group", HTTP_STATUS.SERVER_ERROR)

    return success_response("Student removed from group", HTTP_STATUS.OK, Group.to_response(group))
