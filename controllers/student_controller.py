import logging
import re
from datetime import datetime

from flask import Blueprint, request
from pymongo.errors import PyMongoError

from models.users import ROLES
from models.group import Group
from models.subject import Subject
from models.student import Student, DEGREE_PROGRAMS, MINIMUM_AGE
from utils.auth import roles_required
from utils.http import HTTP_STATUS, success_response, error_response, get_json_body
from utils.validators import (
    ValidationError, parse_object_id, require_fields, check_choice, parse_date, is_valid_email
)

logger = logging.getLogger(__name__)

students_bp = Blueprint("students", __name__, url_prefix="/api/student")

STUDENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
PERSON_NAME_PATTERN = re.compile(r"^[A-Za-z ]{2,50}$")
PHONE_PATTERN = re.compile(r"^\d{10,15}$")

REQUIRED = ["firstName", "lastName", "email", "phoneNumber", "degreeProgram", "groupNumber", "dateOfBirth"]


def _age(born, today=None):
    today = today or datetime.utcnow()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def _student_fields(data, partial=False):
    """Validate the payload; returns stored-field dict. Field errors are collected."""
    if not partial:
        require_fields(data, REQUIRED)

    errors = {}
    fields = {}

    def present(key):
        return key in data and data[key] not in (None, "")

    if present("studentId"):
        if STUDENT_ID_PATTERN.match(str(data["studentId"])):
            fields["student_id"] = str(data["studentId"])
        else:
            errors["studentId"] = "Student ID must be alphanumeric"
    for key, stored, label in (("firstName", "first_name", "First name"), ("lastName", "last_name", "Last name")):
        if present(key):
            if PERSON_NAME_PATTERN.match(str(data[key])):
                fields[stored] = data[key]
            else:
                errors[key] = f"{label} must be 2-50 characters and contain only letters"
    if present("email"):
        if is_valid_email(data["email"]):
            fields["email"] = data["email"]
        else:
            errors["email"] = "Please provide a valid email"
    if present("phoneNumber"):
        if PHONE_PATTERN.match(str(data["phoneNumber"])):
            fields["phone_number"] = str(data["phoneNumber"])
        else:
            errors["phoneNumber"] = "Phone number must be between 10-15 digits"
    if present("guardianContact"):
        if PHONE_PATTERN.match(str(data["guardianContact"])):
            fields["guardian_contact"] = str(data["guardianContact"])
        else:
            errors["guardianContact"] = "Guardian phone number must be between 10-15 digits"
    if present("degreeProgram"):
        try:
            fields["degree_program"] = check_choice(data["degreeProgram"], DEGREE_PROGRAMS, "degreeProgram")
        except ValidationError as e:
            errors["degreeProgram"] = e.message
    if present("address"):
        if 10 <= len(str(data["address"])) <= 255:
            fields["address"] = data["address"]
        else:
            errors["address"] = "Address must be between 10 and 255 characters"
    if present("dateOfBirth"):
        try:
            born = parse_date(data["dateOfBirth"], "dateOfBirth")
            if _age(born) < MINIMUM_AGE:
                errors["dateOfBirth"] = f"Student must be at least {MINIMUM_AGE} years old"
            else:
                fields["date_of_birth"] = born
        except ValidationError as e:
            errors["dateOfBirth"] = e.message
    if present("groupNumber"):
        try:
            fields["group"] = parse_object_id(data["groupNumber"], "groupNumber")
        except ValidationError as e:
            errors["groupNumber"] = e.message
    if "subjectsEnrolled" in data:
        subjects = data["subjectsEnrolled"] or []
        try:
            if not isinstance(subjects, list):
                raise ValidationError("subjectsEnrolled must be a list")
            fields["subjects_enrolled"] = [parse_object_id(s, "subject id") for s in subjects]
        except ValidationError as e:
            errors["subjectsEnrolled"] = e.message

    if errors:
        raise ValidationError("Validation failed", errors)
    return fields


def _check_references(fields):
    if "group" in fields and not Group.find_by_id(fields["group"]):
        raise ValidationError("Validation failed", {"groupNumber": "Group not found"})
    subjects = fields.get("subjects_enrolled") or []
    if subjects and Subject.collection().count_documents({"_id": {"$in": subjects}}) != len(set(subjects)):
        raise ValidationError("Validation failed", {"subjectsEnrolled": "Unknown subject in list"})


def _check_unique(fields, exclude_id=None):
    for stored, label in (("student_id", "Student ID"), ("email", "Email")):
        if stored not in fields:
            continue
        query = {stored: fields[stored]}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if Student.collection().find_one(query):
            return error_response(f"{label} already exists", HTTP_STATUS.CONFLICT)
    return None


def _response(student):
    group = Group.find_by_id(student["group"]) if student.get("group") else None
    subject_ids = student.get("subjects_enrolled") or []
    subjects = list(Subject.collection().find({"_id": {"$in": subject_ids}})) if subject_ids else []
    return Student.to_response(student, group, subjects)


# -----------------------------
# ADD STUDENT
# -----------------------------
@students_bp.route("/add", methods=["POST"])
@roles_required(ROLES["ADMIN"], ROLES["LECTURER"])
def add_student():
    fields = _student_fields(get_json_body())

    try:
        _check_references(fields)
        conflict = _check_unique(fields)
        if conflict:
            return conflict

        student = Student(**fields).save()
        result = _response(student)
    except PyMongoError:
        logger.exception("Error adding student")
        return error_response("Server error occurred while adding student", HTTP_STATUS.SERVER_ERROR)

    return success_response("Student added successfully", HTTP_STATUS.CREATED, result)


# -----------------------------
# VIEW STUDENTS
# -----------------------------
@students_bp.route("/get/all", methods=["GET"])
def view_students():
    query = {}
    if request.args.get("group"):
        query["group"] = parse_object_id(request.args["group"], "group")
    if request.args.get("degreeProgram"):
        query["degree_program"] = request.args["degreeProgram"]

    try:
        students = list(Student.collection().find(query).sort("student_id", 1))
        result = [_response(s) for s in students]
    except PyMongoError:
        logger.exception("Error fetching students")
        return error_response("Server error occurred while fetching students", HTTP_STATUS.SERVER_ERROR)

    return success_response("Students fetched successfully", HTTP_STATUS.OK, result)


@students_bp.route("/get/<student_id>", methods=["GET"])
def view_student(student_id):
    oid = parse_object_id(student_id, "student id")
    try:
        student = Student.find_by_id(oid)
        if not student:
            return error_response("Student not found", HTTP_STATUS.NOT_FOUND)
        result = _response(student)
    except PyMongoError:
        logger.exception("Error fetching student %s", student_id)
        return error_response("Server error occurred while fetching student", HTTP_STATUS.SERVER_ERROR)

    return success_response("Student fetched successfully", HTTP_STATUS.OK, result)


# -----------------------------
# EDIT STUDENT
# -----------------------------
@students_bp.route("/update/<student_id>", methods=["PUT"])
@roles_required(ROLES["ADMIN"], ROLES["LECTURER"])
def edit_student(student_id):
    oid = parse_object_id(student_id, "student id")
    fields = _student_fields(get_json_body(), partial=True)

    try:
        if not Student.find_by_id(oid):
            return error_response("Student not found", HTTP_STATUS.NOT_FOUND)

        _check_references(fields)
        conflict = _check_unique(fields, exclude_id=oid)
        if conflict:
            return conflict

        fields["updated_at"] = datetime.utcnow()
        Student.collection().update_one({"_id": oid}, {"$set": fields})
        result = _response(Student.find_by_id(oid))
    except PyMongoError:
        logger.exception("Error updating student %s", student_id)
        return error_response("Server error occurred while updating student", HTTP_STATUS.SERVER_ERROR)

    return success_response("Student updated successfully", HTTP_STATUS.OK, result)


# -----------------------------
# DELETE STUDENT
# -----------------------------
@students_bp.route("/delete/<student_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"])
def delete_student(student_id):
    oid = parse_object_id(student_id, "student id")
    try:
        result = Student.collection().delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Error deleting student %s", student_id)
        return error_response("Server error occurred while deleting student", HTTP_STATUS.SERVER_ERROR)

    if not result.deleted_count:
        return error_response("Student not found", HTTP_STATUS.NOT_FOUND)
    return success_response("Student deleted successfully")
