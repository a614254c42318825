import logging
from datetime import datetime

from flask import Blueprint, request
from pymongo.errors import PyMongoError

from models.users import ROLES
from models.venue import Venue, VENUE_TYPES
from utils.auth import roles_required
from utils.http import HTTP_STATUS, success_response, error_response, get_json_body
from utils.validators import (
    ValidationError, parse_object_id, require_fields, to_int, check_choice,
    check_time_range, parse_date
)

logger = logging.getLogger(__name__)

venues_bp = Blueprint("venues", __name__, url_prefix="/api/venue")

# request field -> stored field
FIELDS = {
    "faculty": "faculty",
    "department": "department",
    "building": "building",
    "hallName": "hall_name",
    "type": "type",
    "capacity": "capacity",
}


def _venue_fields(data, partial=False):
    """Validated subset of the payload, keyed by stored field name."""
    if not partial:
        require_fields(data, list(FIELDS))

    fields = {}
    for key, stored in FIELDS.items():
        if key not in data or data[key] is None:
            continue
        value = data[key]
        if key == "type":
            value = check_choice(value, VENUE_TYPES, "type")
        elif key == "capacity":
            value = to_int(value, "Capacity", minimum=1)
        elif not str(value).strip():
            raise ValidationError(f"{key} cannot be empty")
        fields[stored] = value
    return fields


# -----------------------------
# VIEW VENUES
# -----------------------------
@venues_bp.route("", methods=["GET"])
def view_venues():
    query = {}
    for key in ("faculty", "department", "building", "type"):
        if request.args.get(key):
            query[key] = request.args[key]
    if request.args.get("minCapacity"):
        query["capacity"] = {"$gte": to_int(request.args["minCapacity"], "minCapacity")}

    try:
        venues = list(Venue.collection().find(query).sort("hall_name", 1))
    except PyMongoError:
        logger.exception("Error fetching venues")
        return error_response("Server error occurred while fetching venues", HTTP_STATUS.SERVER_ERROR)

    return success_response("Venues fetched successfully", HTTP_STATUS.OK,
                            [Venue.to_response(v) for v in venues])


@venues_bp.route("/options", methods=["GET"])
def venue_options():
    try:
        venues = list(Venue.collection().find({}, {"hall_name": 1, "type": 1, "capacity": 1}).sort("hall_name", 1))
    except PyMongoError:
        logger.exception("Error fetching venue options")
        return error_response("Server error occurred while fetching venue options", HTTP_STATUS.SERVER_ERROR)

    return success_response("Venues fetched successfully", HTTP_STATUS.OK, [Venue.to_option(v) for v in venues])


@venues_bp.route("/<venue_id>", methods=["GET"])
def view_venue(venue_id):
    oid = parse_object_id(venue_id, "venue id")
    try:
        venue = Venue.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error fetching venue %s", venue_id)
        return error_response("Server error occurred while fetching venue", HTTP_STATUS.SERVER_ERROR)

    if not venue:
        return error_response("Venue not found", HTTP_STATUS.NOT_FOUND)
    return success_response("Venue fetched successfully", HTTP_STATUS.OK, Venue.to_response(venue))


# -----------------------------
# ADD VENUE
# -----------------------------
@venues_bp.route("", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def add_venue():
    fields = _venue_fields(get_json_body())

    try:
        venue = Venue(**fields).save()
    except PyMongoError:
        logger.exception("Error creating venue")
        return error_response("Server error occurred while creating venue", HTTP_STATUS.SERVER_ERROR)

    return success_response("Venue created successfully", HTTP_STATUS.CREATED, Venue.to_response(venue))


# -----------------------------
# EDIT VENUE
# -----------------------------
@venues_bp.route("/<venue_id>", methods=["PUT", "PATCH"])
@roles_required(ROLES["ADMIN"])
def edit_venue(venue_id):
    oid = parse_object_id(venue_id, "venue id")
    fields = _venue_fields(get_json_body(), partial=True)
    fields["updated_at"] = datetime.utcnow()

    try:
        result = Venue.collection().update_one({"_id": oid}, {"$set": fields})
        if not result.matched_count:
            return error_response("Venue not found", HTTP_STATUS.NOT_FOUND)
        venue = Venue.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error updating venue %s", venue_id)
        return error_response("Server error occurred while updating venue", HTTP_STATUS.SERVER_ERROR)

    return success_response("Venue updated successfully", HTTP_STATUS.OK, Venue.to_response(venue))


# -----------------------------
# DELETE VENUE
# -----------------------------
@venues_bp.route("/<venue_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"])
def delete_venue(venue_id):
    oid = parse_object_id(venue_id, "venue id")
    try:
        result = Venue.collection().delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Error deleting venue %s", venue_id)
        return error_response("Server error occurred while deleting venue", HTTP_STATUS.SERVER_ERROR)

    if not result.deleted_count:
        return error_response("Venue not found", HTTP_STATUS.NOT_FOUND)
    return success_response("Venue deleted successfully")


# -----------------------------
# BOOKED SLOTS
# -----------------------------
@venues_bp.route("/<venue_id>/booked-slots", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def add_booked_slot(venue_id):
    oid = parse_object_id(venue_id, "venue id")
    data = get_json_body()
    require_fields(data, ["date", "startTime", "endTime"])
    check_time_range(data["startTime"], data["endTime"])
    slot = Venue.booked_slot(parse_date(data["date"], "date"), data["startTime"], data["endTime"])

    # appended as-is; overlapping bookings are not rejected
    try:
        result = Venue.collection().update_one(
            {"_id": oid},
            {"$push": {"booked_slots": slot}, "$set": {"updated_at": datetime.utcnow()}}
        )
        if not result.matched_count:
            return error_response("Venue not found", HTTP_STATUS.NOT_FOUND)
        venue = Venue.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error booking venue %s", venue_id)
        return error_response("Server error occurred while booking venue", HTTP_STATUS.SERVER_ERROR)

    return success_response("Slot booked successfully", HTTP_STATUS.CREATED, Venue.to_response(venue))


@venues_bp.route("/<venue_id>/booked-slots/<slot_id>", methods=["DELETE"])
@roles_required(ROLES["ADMIN"])
def delete_booked_slot(venue_id, slot_id):
    oid = parse_object_id(venue_id, "venue id")
    slot_oid = parse_object_id(slot_id, "slot id")

    try:
        venue = Venue.find_by_id(oid)
        if not venue:
            return error_response("Venue not found", HTTP_STATUS.NOT_FOUND)
        if not any(s.get("_id") == slot_oid for s in venue.get("booked_slots", [])):
            return error_response("Booked slot not found", HTTP_STATUS.NOT_FOUND)

        Venue.collection().update_one(
            {"_id": oid},
            {"$pull": {"booked_slots": {"_id": slot_oid}}, "$set": {"updated_at": datetime.utcnow()}}
        )
        venue = Venue.find_by_id(oid)
    except PyMongoError:
        logger.exception("Error releasing slot %s of venue %s", slot_id, venue_id)
        return error_response("Server error occurred while releasing slot", HTTP_STATUS.SERVER_ERROR)

    return success_response("Booked slot removed successfully", HTTP_STATUS.OK, Venue.to_response(venue))
