import logging

from flask import Flask, request, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from config import Config
from utils.auth import authenticate_request
from utils.db import init_db_connection
from utils.http import HTTP_STATUS, success_response, error_response
from utils.validators import ValidationError

# Import controllers
from controllers.auth_controller import auth_bp
from controllers.user_controller import users_bp
from controllers.request_controller import requests_bp
from controllers.venue_controller import venues_bp
from controllers.group_controller import groups_bp
from controllers.subject_controller import subjects_bp
from controllers.assignment_controller import assignments_bp
from controllers.student_controller import students_bp
from controllers.timetable_controller import timetables_bp
from controllers.profile_controller import profile_bp

logger = logging.getLogger(__name__)

# Endpoints reachable without a bearer token
PUBLIC_ENDPOINTS = {
    "hello",
    "uploads",
    "static",
    "auth.login",
    "auth.refresh_token",
    "requests.submit_request",
    "requests.status_by_email",
}

BLUEPRINTS = (
    auth_bp,
    users_bp,
    requests_bp,
    venues_bp,
    groups_bp,
    subjects_bp,
    assignments_bp,
    students_bp,
    timetables_bp,
    profile_bp,
)


def create_app(config_object=Config):
    app = Flask(__name__)                   # Initialize Flask app
    app.config.from_object(config_object)   # Load configuration from Config class

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    CORS(app, origins=app.config["CORS_ORIGINS"], supports_credentials=True)
    init_db_connection(app)                 # Initialize MongoDB connection

    # Register Blueprints
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    @app.route("/hello", methods=["GET"])
    def hello():
        return success_response("Academic Scheduler API is running")

    @app.route("/uploads/<path:filename>", methods=["GET"])
    def uploads(filename):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    # Global before_request: every route except the public ones needs a valid token
    @app.before_request
    def require_token():
        if request.method == "OPTIONS" or request.endpoint is None:
            return None
        if request.endpoint in PUBLIC_ENDPOINTS:
            return None
        return authenticate_request()

    register_error_handlers(app)
    logger.info("Academic Scheduler API initialised")
    return app


def register_error_handlers(app):

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        result = {"validationErrors": error.errors} if error.errors else None
        return error_response(error.message, HTTP_STATUS.BAD_REQUEST, result)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(error):
        return error_response("File size too large. Maximum size is 5MB", HTTP_STATUS.BAD_REQUEST)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return error_response(error.description or error.name, error.code)


# Run the app
if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=application.config["BACKEND_PORT"], debug=True)
