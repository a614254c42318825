"""
utils/validators.py
-----------------
Small input checks shared by the controllers.
"""

import re
from datetime import datetime

from bson import ObjectId
from bson.errors import InvalidId

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_PATTERN = re.compile(r"^[A-Za-z0-9\s]+$")


class ValidationError(Exception):
    """Raised for bad client input; rendered as a 400 response."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors


def parse_object_id(value, field="id"):
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {field} format")


def optional_object_id(value, field="id"):
    if value in (None, ""):
        return None
    return parse_object_id(value, field)


def require_fields(data, fields):
    """Raise if any field is missing or blank. Zero and False count as present."""
    missing = [f for f in fields if data.get(f) is None or (isinstance(data.get(f), str) and not data[f].strip())]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def to_int(value, field, minimum=None):
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} must be a whole number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return number


def check_choice(value, choices, field):
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(str(c) for c in choices)}")
    return value


def check_time(value, field):
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValidationError(f"{field} must be in HH:MM format")
    return value


def check_time_range(start, end):
    check_time(start, "startTime")
    check_time(end, "endTime")
    # zero-padded HH:MM compares correctly as text
    if start >= end:
        raise ValidationError("startTime must be before endTime")


def parse_date(value, field):
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")
    for fmt in ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%S.%fZ"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


def is_valid_email(value):
    return isinstance(value, str) and bool(EMAIL_PATTERN.match(value))
