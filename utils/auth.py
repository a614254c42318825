import secrets
import string
from functools import wraps

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from utils.http import HTTP_STATUS, error_response

ACCESS_SALT = "access-token"
REFRESH_SALT = "refresh-token"


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"])


# Token helpers
def generate_access_token(user):
    return _serializer().dumps({"userId": str(user["_id"]), "role": user["role"]}, salt=ACCESS_SALT)


def generate_refresh_token(user):
    return _serializer().dumps({"userId": str(user["_id"])}, salt=REFRESH_SALT)


def decode_token(token, refresh=False):
    """Return the token payload, or None when the token is invalid or expired."""
    if refresh:
        salt, max_age = REFRESH_SALT, current_app.config["REFRESH_TOKEN_MAX_AGE"]
    else:
        salt, max_age = ACCESS_SALT, current_app.config["ACCESS_TOKEN_MAX_AGE"]
    try:
        return _serializer().loads(token, salt=salt, max_age=max_age)
    except SignatureExpired:
        return None
    except BadSignature:
        return None


def bearer_token():
    header = request.headers.get("Authorization", "")
    parts = header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def authenticate_request():
    """
    Verify the bearer token and attach {userId, role} to g.current_user.
    Returns an error response when the request must be rejected.
    """
    token = bearer_token()
    if not token:
        return error_response("Access Denied - No token provided", HTTP_STATUS.UNAUTHORIZED)

    payload = decode_token(token)
    if not payload:
        return error_response("Access Denied - Invalid token", HTTP_STATUS.UNAUTHORIZED)

    g.current_user = payload
    return None


# This decorator makes sure only authenticated callers reach the view
def login_required(view_function):
    @wraps(view_function)
    def decorated_function(*args, **kwargs):
        if not g.get("current_user"):
            return error_response("Unauthorized - User not authenticated", HTTP_STATUS.UNAUTHORIZED)
        return view_function(*args, **kwargs)
    return decorated_function


# Role-based authorization
def roles_required(*roles):
    def decorator(view_function):
        @wraps(view_function)
        def decorated_function(*args, **kwargs):
            user = g.get("current_user")
            if not user:
                return error_response("Unauthorized - User not authenticated", HTTP_STATUS.UNAUTHORIZED)
            if user.get("role") not in roles:
                return error_response("Forbidden - Insufficient permissions", HTTP_STATUS.FORBIDDEN)
            return view_function(*args, **kwargs)
        return decorated_function
    return decorator


def current_user_id():
    user = g.get("current_user")
    return user.get("userId") if user else None


# Passwords
def hash_password(password):
    return generate_password_hash(password)


def verify_password(password, password_hash):
    if not password or not password_hash:
        return False
    return check_password_hash(password_hash, password)


def generate_default_password(length=8):
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))
