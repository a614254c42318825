import logging
from datetime import datetime

from flask import Blueprint, request
from pymongo.errors import PyMongoError

from models.users import User, ROLES
from models.subject import Subject
from models.subject_assignment import SubjectAssignment, SEMESTERS
from utils.auth import roles_required
from utils.http import HTTP_STATUS, success_response, error_response, get_json_body
from utils.validators import ValidationError, parse_object_id, require_fields, to_int, check_choice

logger = logging.getLogger(__name__)

assignments_bp = Blueprint("assignments", __name__, url_prefix="/api/subject-assignment")


def _semester(value):
    return check_choice(to_int(value, "semester"), SEMESTERS, "semester")


def _response(doc):
    subject = Subject.find_by_id(doc["subject"])
    lecturer = User.find_by_id(doc["lecturer"])
    return SubjectAssignment.to_response(
        doc,
        subject=Subject.to_option(subject) if subject else None,
        lecturer=User.to_summary(lecturer) if lecturer else None,
    )


def _list(query, message):
    try:
        docs = list(SubjectAssignment.collection().find(query).sort("created_at", -1))
        result = [_response(d) for d in docs]
    except PyMongoError:
        logger.exception("Error fetching subject assignments")
        return error_response("Server error occurred while fetching assignments", HTTP_STATUS.SERVER_ERROR)
    return success_response(message, HTTP_STATUS.OK, result)


def _check_references(subject_id, lecturer_id):
    if not Subject.find_by_id(subject_id):
        return error_response("Subject not found", HTTP_STATUS.NOT_FOUND)
    lecturer = User.find_by_id(lecturer_id)
    if not lecturer or lecturer.get("role") != ROLES["LECTURER"]:
        return error_response("Lecturer not found", HTTP_STATUS.NOT_FOUND)
    return None


@assignments_bp.route("", methods=["GET"])
def view_assignments():
    return _list({}, "Assignments fetched successfully")


# Assignments for a given academic year and semester
@assignments_bp.route("/current", methods=["GET"])
def current_assignments():
    academic_year = request.args.get("academicYear")
    semester = request.args.get("semester")
    if not academic_year or not semester:
        raise ValidationError("Academic year and semester are required")
    return _list({"academic_year": academic_year, "semester": _semester(semester)},
                 "Assignments fetched successfully")


@assignments_bp.route("/lecturer/<lecturer_id>", methods=["GET"])
def lecturer_assignments(lecturer_id):
    return _list({"lecturer": parse_object_id(lecturer_id, "lecturer id")}, "Assignments fetched successfully")


@assignments_bp.route("/subject/<subject_id>", methods=["GET"])
def subject_assignments(subject_id):
    return _list({"subject": parse_object_id(subject_id, "subject id")}, "Assignments fetched successfully")


# Lecturers not yet assigned to the subject for that year and semester
@assignments_bp.route("/available-lecturers", methods=["GET"])
def available_lecturers():
    subject_id = request.args.get("subjectId")
    academic_year = request.args.get("academicYear")
    semester = request.args.get("semester")
    if not subject_id or not academic_year or not semester:
        raise ValidationError("Subject ID, academic year, and semester are required")

    query = {
        "subject": parse_object_id(subject_id, "subjectId"),
        "academic_year": academic_year,
        "semester": _semester(semester)
    }
    try:
        assigned = [a["lecturer"] for a in SubjectAssignment.collection().find(query, {"lecturer": 1})]
        lecturers = list(User.collection().find(
            {"role": ROLES["LECTURER"], "_id": {"$nin": assigned}}
        ).sort("first_name", 1))
    except PyMongoError:
        logger.exception("Error fetching available lecturers")
        return error_response("Server error occurred while fetching lecturers", HTTP_STATUS.SERVER_ERROR)

    return success_response("Available lecturers fetched successfully", HTTP_STATUS.OK,
                            [User.to_summary(u) for u in lecturers])


@assignments_bp.route("/<assignment_id>", methods=["GET"])
def view_assignment(assignment_id):
    oid = parse_object_id(assignment_id, "assignment id")
    try:
        doc = SubjectAssignment.find_by_id(oid)
        if not doc:
            return error_response("Assignment not found", HTTP_STATUS.NOT_FOUND)
        result = _response(doc)
    except PyMongoError:
        logger.exception("Error fetching assignment %s", assignment_id)
        return error_response("Server error occurred while fetching assignment", HTTP_STATUS.SERVER_ERROR)

    return success_response("Assignment fetched successfully", HTTP_STATUS.OK, result)


@assignments_bp.route("", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def add_assignment():
    data = get_json_body()
    require_fields(data, ["subjectId", "lecturerId", "academicYear", "semester"])
    subject_id = parse_object_id(data["subjectId"], "subjectId")
    lecturer_id = parse_object_id(data["lecturerId"], "lecturerId")
    academic_year = str(data["academicYear"]).strip()
    semester = _semester(data["semester"])

    try:
        missing = _check_references(subject_id, lecturer_id)
        if missing:
            return missing

        if SubjectAssignment.find_duplicate(subject_id, lecturer_id, academic_year, semester):
            return error_response("This lecturer is already assigned to this subject for the given period",
                                  HTTP_STATUS.CONFLICT)

        doc = SubjectAssignment(subject_id, lecturer_id, academic_year, semester, data.get("notes")).save()
        result = _response(doc)
    except PyMongoError:
        logger.exception("Error creating assignment")
        return error_response("Server error occurred while creating assignment", HTTP_STATUS.SERVER_ERROR)

    return success_response("Assignment created successfully", HTTP_STATUS.CREATED, result)


@assignments_bp.route("/<assignment_id>", methods=["PUT"])
@roles_required(ROLES["ADMIN"])
def edit_assignment(assignment_id):
    oid = parse_object_id(assignment_id, "assignment id")
    data = get_json_body()

    try:
        current = SubjectAssignment.find_by_id(oid)
        if not current:
            return error_response("Assignment not found", HTTP_STATUS.NOT_FOUND)

        # unspecified fields keep their current values
        subject_id = parse_object_id(data["subjectId"], "subjectId") if data.get("subjectId") else current["subject"]
        lecturer_id = parse_object_id(data["lecturerId"], "lecturerId") if data.get("lecturerId") else current["lecturer"]
        academic_year = str(data["academicYear"]).strip() if data.get("academicYear") else current["academic_year"]
        semester = _semester(data["semester"]) if data.get("semester") else current["semester"]

        missing = _check_references(subject_id, lecturer_id)
        if missing:
            return missing

        if SubjectAssignment.find_duplicate(subject_id, lecturer_id, academic_year, semester, exclude_id=oid):
            return error_response("This lecturer is already assigned to this subject for the given period",
                                  HTTP_STATUS.CONFLICT)

        update_data = {
            "subject": subject_id,
            "lecturer": lecturer_id,
            "academic_year": academic_year,
            "semester": semester,
            "updated_at": datetime.utcnow()
        }
        if "notes" in data:
            update_data["notes"] = data.get("notes") or ""
        SubjectAssignment.collection().update_one({"_id": oid}, {"$set": update_data})
        result = _response(SubjectAssignment.find_by_id(oid))
    except PyMongoError:
        logger.exception("Error updating assignment %s", assignment_id)
        return error_response("Server error occurred while updating assignment", HTTP_STATUS.SERVER_ERROR)

    return success_response("Assignment updated successfully", HTTP_STATUS.OK, result)


@assignments_bp.route("/<assignment_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"])
def delete_assignment(assignment_id):
    oid = parse_object_id(assignment_id, "assignment id")
    try:
        result = SubjectAssignment.collection().delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Error deleting assignment %s", assignment_id)
        return error_response("Server error occurred while deleting assignment", HTTP_STATUS.SERVER_ERROR)

    if not result.deleted_count:
        return error_response("Assignment not found", HTTP_STATUS.NOT_FOUND)
    return success_response("Assignment deleted successfully")
