import logging

from flask import Blueprint
from pymongo.errors import PyMongoError

from models.users import ROLES, ROLE_VALUES
from models.user_request import UserRequest, REQUEST_STATUS, STATUS_VALUES
from utils.auth import roles_required
from utils.http import HTTP_STATUS, success_response, error_response, get_json_body
from utils.validators import parse_object_id, require_fields, check_choice, is_valid_email

logger = logging.getLogger(__name__)

requests_bp = Blueprint("requests", __name__, url_prefix="/api/request")


def _list(query, message):
    try:
        docs = list(UserRequest.collection().find(query).sort("created_at", -1))
    except PyMongoError:
        logger.exception("Error fetching registration requests")
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)
    return success_response(message, HTTP_STATUS.OK, [UserRequest.to_response(d) for d in docs])


# Public: submit a registration request
@requests_bp.route("/submit", methods=["POST"])
def submit_request():
    data = get_json_body()
    require_fields(data, ["firstName", "lastName", "email", "role"])
    # role names are accepted case-insensitively ("student" -> "Student")
    role = check_choice(str(data["role"]).capitalize(), ROLE_VALUES, "role")
    if not is_valid_email(data["email"]):
        return error_response("Invalid email format", HTTP_STATUS.BAD_REQUEST)

    try:
        if UserRequest.collection().find_one({"email": data["email"]}):
            return error_response("Request already submitted.", HTTP_STATUS.CONFLICT)

        doc = UserRequest(data["firstName"], data["lastName"], data["email"], role,
                          additional_details=data.get("additionalDetails")).save()
    except PyMongoError:
        logger.exception("Error submitting registration request")
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    return success_response("Request submitted successfully.", HTTP_STATUS.CREATED,
                            {"requestId": str(doc["_id"])})


# Public: check request status by email
@requests_bp.route("/status-by-email/<email>", methods=["GET"])
def status_by_email(email):
    try:
        doc = UserRequest.collection().find_one({"email": email})
    except PyMongoError:
        logger.exception("Error checking request status")
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    if not doc:
        return error_response("No request found for this email", HTTP_STATUS.NOT_FOUND)
    return success_response("Request status fetched", HTTP_STATUS.OK,
                            {"status": doc.get("status"), "requestId": str(doc["_id"])})


@requests_bp.route("/all", methods=["GET"])
@roles_required(ROLES["ADMIN"])
def all_requests():
    return _list({}, "Requests fetched successfully")


@requests_bp.route("/status/<status>", methods=["GET"])
@roles_required(ROLES["ADMIN"])
def requests_by_status(status):
    check_choice(status, STATUS_VALUES, "status")
    return _list({"status": status}, f"{status} requests fetched successfully")


@requests_bp.route("/role/<role>", methods=["GET"])
@roles_required(ROLES["ADMIN"])
def requests_by_role(role):
    check_choice(role, ROLE_VALUES, "role")
    return _list({"role": role}, f"{role} requests fetched successfully")


def _set_status(request_id, status, reason=None):
    oid = parse_object_id(request_id, "request id")
    try:
        doc = UserRequest.collection().find_one({"_id": oid})
        if not doc:
            return error_response("Request not found", HTTP_STATUS.NOT_FOUND)
        if doc.get("status") != REQUEST_STATUS["PENDING"]:
            return error_response(f"Request is already {doc.get('status')}", HTTP_STATUS.BAD_REQUEST)

        doc = UserRequest.set_status(oid, status, reason)
    except PyMongoError:
        logger.exception("Error updating request %s", request_id)
        return error_response("Server error", HTTP_STATUS.SERVER_ERROR)

    logger.info("Request %s marked %s", request_id, status)
    return success_response(f"Request {status} successfully.", HTTP_STATUS.OK, UserRequest.to_response(doc))


@requests_bp.route("/approve/<request_id>", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def approve_request(request_id):
    return _set_status(request_id, REQUEST_STATUS["APPROVED"])


@requests_bp.route("/reject/<request_id>", methods=["POST"])
@roles_required(ROLES["ADMIN"])
def reject_request(request_id):
    reason = get_json_body().get("reason") or "Not specified"
    return _set_status(request_id, REQUEST_STATUS["REJECTED"], reason)
