"""
utils/http.py
-----------------
Status codes and the JSON envelope every endpoint answers with:

    {"success": true|false, "message": "...", "result": ...}
"""

from flask import jsonify


class HTTP_STATUS:
    OK = 200
    CREATED = 201
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    SERVER_ERROR = 500


def success_response(message, status=HTTP_STATUS.OK, result=None):
    return jsonify({"success": True, "message": message, "result": result}), status


def error_response(message, status, result=None):
    return jsonify({"success": False, "message": message, "result": result}), status


def get_json_body():
    """Request body as a dict; empty dict for missing or non-object payloads."""
    from flask import request
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
