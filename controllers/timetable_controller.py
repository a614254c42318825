import logging
from datetime import datetime

from flask import Blueprint, request
from pymongo.errors import PyMongoError

from models.users import User, ROLES
from models.subject import Subject
from models.venue import Venue
from models.timetable import Timetable, Slot, DAYS
from utils.auth import roles_required
from utils.exports import export_timetable, EXPORT_FORMATS
from utils.http import HTTP_STATUS, success_response, error_response, get_json_body
from utils.validators import (
    ValidationError, parse_object_id, require_fields, check_choice, check_time_range
)

logger = logging.getLogger(__name__)

timetables_bp = Blueprint("timetables", __name__, url_prefix="/api/timetable")

SLOT_FIELDS = {
    "subject": "subject",
    "instructor": "instructor",
    "venue": "venue",
    "day": "day",
    "startTime": "start_time",
    "endTime": "end_time",
}


def _as_bool(value, field):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValidationError(f"{field} must be true or false")


def _timetable_fields(data, partial=False):
    if not partial:
        try:
            require_fields(data, ["title", "description", "groupName"])
        except ValidationError:
            raise ValidationError("All fields are required")

    fields = {}
    for key, stored in (("title", "title"), ("description", "description"), ("groupName", "group_name")):
        if key in data and data[key] is not None:
            if not str(data[key]).strip():
                raise ValidationError(f"{key} cannot be empty")
            fields[stored] = data[key]
    if data.get("isPublished") is not None:
        fields["is_published"] = _as_bool(data["isPublished"], "isPublished")
    return fields


def _slot_fields(data, current=None):
    """Validated slot values; `current` supplies the values a partial update leaves unchanged."""
    if current is None:
        require_fields(data, list(SLOT_FIELDS))
        current = {}

    values = dict(current)
    for key, stored in SLOT_FIELDS.items():
        if data.get(key) is None:
            continue
        if key in ("subject", "instructor", "venue"):
            values[stored] = parse_object_id(data[key], key)
        elif key == "day":
            values[stored] = check_choice(data[key], DAYS, "day")
        else:
            values[stored] = data[key]

    check_time_range(values["start_time"], values["end_time"])
    return values


def _find_or_404(oid):
    timetable = Timetable.find_by_id(oid)
    if not timetable:
        return None, error_response("Timetable not found", HTTP_STATUS.NOT_FOUND)
    return timetable, None


# -----------------------------
# VIEW TIMETABLES
# -----------------------------
@timetables_bp.route("/get/all", methods=["GET"])
def view_timetables():
    query = {}
    if request.args.get("group"):
        query["group_name"] = request.args["group"]
    if request.args.get("published"):
        query["is_published"] = _as_bool(request.args["published"], "published")

    try:
        timetables = list(Timetable.collection().find(query).sort("title", 1))
    except PyMongoError:
        logger.exception("Error fetching timetables")
        return error_response("Server error occurred while fetching timetables", HTTP_STATUS.SERVER_ERROR)

    return success_response("Timetables fetched successfully", HTTP_STATUS.OK,
                            [Timetable.to_response(t) for t in timetables])


@timetables_bp.route("/get/<timetable_id>", methods=["GET"])
def view_timetable(timetable_id):
    oid = parse_object_id(timetable_id, "timetable id")
    try:
        timetable, missing = _find_or_404(oid)
    except PyMongoError:
        logger.exception("Error fetching timetable %s", timetable_id)
        return error_response("Server error occurred while fetching timetable", HTTP_STATUS.SERVER_ERROR)

    if missing:
        return missing
    return success_response("Timetable fetched successfully", HTTP_STATUS.OK, Timetable.to_response(timetable))


# -----------------------------
# ADD TIMETABLE
# -----------------------------
@timetables_bp.route("/create", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def add_timetable():
    fields = _timetable_fields(get_json_body())

    try:
        timetable = Timetable(**fields).save()
    except PyMongoError:
        logger.exception("Error creating timetable")
        return error_response("Server error occurred while creating timetable", HTTP_STATUS.SERVER_ERROR)

    return success_response("Timetable created successfully", HTTP_STATUS.CREATED, Timetable.to_response(timetable))


# -----------------------------
# EDIT TIMETABLE
# -----------------------------
@timetables_bp.route("/update/<timetable_id>", methods=["PUT"])
@roles_required(ROLES["ADMIN"])
def edit_timetable(timetable_id):
    oid = parse_object_id(timetable_id, "timetable id")
    fields = _timetable_fields(get_json_body(), partial=True)
    fields["updated_at"] = datetime.utcnow()

    try:
        result = Timetable.collection().update_one({"_id": oid}, {"$set": fields})
        if not result.matched_count:
            return error_response("Timetable not found", HTTP_STATUS.NOT_FOUND)
        timetable = Timetable.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error updating timetable %s", timetable_id)
        return error_response("Server error occurred while updating timetable", HTTP_STATUS.SERVER_ERROR)

    return success_response("Timetable updated successfully", HTTP_STATUS.OK, Timetable.to_response(timetable))


# -----------------------------
# DELETE TIMETABLE
# -----------------------------
@timetables_bp.route("/delete/<timetable_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"])
def delete_timetable(timetable_id):
    oid = parse_object_id(timetable_id, "timetable id")
    try:
        result = Timetable.collection().delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Error deleting timetable %s", timetable_id)
        return error_response("Server error occurred while deleting timetable", HTTP_STATUS.SERVER_ERROR)

    if not result.deleted_count:
        return error_response("Timetable not found", HTTP_STATUS.NOT_FOUND)
    return success_response("Timetable deleted successfully")


# -----------------------------
# SLOTS
# -----------------------------
# Slots are stored as given: no venue, instructor or group clash checks.
@timetables_bp.route("/<timetable_id>/slots", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def add_slot(timetable_id):
    oid = parse_object_id(timetable_id, "timetable id")
    values = _slot_fields(get_json_body())
    slot = Slot(**values).to_dict()

    try:
        result = Timetable.collection().update_one(
            {"_id": oid},
            {"$push": {"slots": slot}, "$set": {"updated_at": datetime.utcnow()}}
        )
        if not result.matched_count:
            return error_response("Timetable not found", HTTP_STATUS.NOT_FOUND)
        timetable = Timetable.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error adding slot to timetable %s", timetable_id)
        return error_response("Server error occurred while adding slot", HTTP_STATUS.SERVER_ERROR)

    return success_response("Slot added successfully", HTTP_STATUS.CREATED, Timetable.to_response(timetable))


@timetables_bp.route("/<timetable_id>/slots/<slot_id>", methods=["PUT"])
@roles_required(ROLES["ADMIN"])
def edit_slot(timetable_id, slot_id):
    oid = parse_object_id(timetable_id, "timetable id")
    slot_oid = parse_object_id(slot_id, "slot id")
    data = get_json_body()

    try:
        timetable, missing = _find_or_404(oid)
        if missing:
            return missing

        slots = timetable.get("slots", [])
        index = next((i for i, s in enumerate(slots) if s.get("_id") == slot_oid), None)
        if index is None:
            return error_response("Slot not found", HTTP_STATUS.NOT_FOUND)

        current = {stored: slots[index].get(stored) for stored in SLOT_FIELDS.values()}
        slots[index].update(_slot_fields(data, current))
        slots[index]["updated_at"] = datetime.utcnow()

        Timetable.collection().update_one(
            {"_id": oid},
            {"$set": {"slots": slots, "updated_at": datetime.utcnow()}}
        )
        timetable["slots"] = slots
    except PyMongoError:
        logger.exception("Error updating slot %s of timetable %s", slot_id, timetable_id)
        return error_response("Server error occurred while updating slot", HTTP_STATUS.SERVER_ERROR)

    return success_response("Slot updated successfully", HTTP_STATUS.OK, Timetable.to_response(timetable))


@timetables_bp.route("/<timetable_id>/slots/<slot_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"])
def delete_slot(timetable_id, slot_id):
    oid = parse_object_id(timetable_id, "timetable id")
    slot_oid = parse_object_id(slot_id, "slot id")

    try:
        timetable, missing = _find_or_404(oid)
        if missing:
            return missing

        slots = [s for s in timetable.get("slots", []) if s.get("_id") != slot_oid]
        if len(slots) == len(timetable.get("slots", [])):
            return error_response("Slot not found", HTTP_STATUS.NOT_FOUND)

        Timetable.collection().update_one(
            {"_id": oid},
            {"$set": {"slots": slots, "updated_at": datetime.utcnow()}}
        )
        timetable["slots"] = slots
    except PyMongoError:
        logger.exception("Error deleting slot %s of timetable %s", slot_id, timetable_id)
        return error_response("Server error occurred while deleting slot", HTTP_STATUS.SERVER_ERROR)

    return success_response("Slot deleted successfully", HTTP_STATUS.OK, Timetable.to_response(timetable))


# -----------------------------
# EXPORT
# -----------------------------
def _display_rows(timetable):
    """Slots sorted by weekday and start time, references resolved to names."""
    rows = []
    for slot in timetable.get("slots", []):
        subject = Subject.find_by_id(slot["subject"]) if slot.get("subject") else None
        instructor = User.find_by_id(slot["instructor"]) if slot.get("instructor") else None
        venue = Venue.find_by_id(slot["venue"]) if slot.get("venue") else None
        rows.append({
            "day": slot.get("day"),
            "start_time": slot.get("start_time"),
            "end_time": slot.get("end_time"),
            "subject": f"{subject['code']} {subject['name']}" if subject else str(slot.get("subject") or ""),
            "instructor": (f"{instructor.get('first_name', '')} {instructor.get('last_name', '')}".strip()
                           if instructor else str(slot.get("instructor") or "")),
            "venue": venue.get("hall_name") if venue else str(slot.get("venue") or ""),
        })
    rows.sort(key=lambda r: (DAYS.index(r["day"]) if r["day"] in DAYS else len(DAYS), r["start_time"] or ""))
    return rows


@timetables_bp.route("/<timetable_id>/export", methods=["GET"])
def export(timetable_id):
    oid = parse_object_id(timetable_id, "timetable id")
    fmt = check_choice(request.args.get("format", "pdf").lower(), EXPORT_FORMATS, "format")

    try:
        timetable, missing = _find_or_404(oid)
        if missing:
            return missing
        rows = _display_rows(timetable)
    except PyMongoError:
        logger.exception("Error exporting timetable %s", timetable_id)
        return error_response("Server error occurred while exporting timetable", HTTP_STATUS.SERVER_ERROR)

    return export_timetable(fmt, timetable, rows)
