"""
config.py
-----------------
Application settings. Values are read from the environment
(a local .env file is loaded first when present).
"""

import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _env_int(name, default):
    value = os.getenv(name)
    return int(value) if value else default


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "change-this-secret")
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/AcademicScheduler")

    BACKEND_PORT = _env_int("BACKEND_PORT", 5000)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    # Tokens
    ACCESS_TOKEN_MAX_AGE = _env_int("ACCESS_TOKEN_MAX_AGE", 60 * 60)
    REFRESH_TOKEN_MAX_AGE = _env_int("REFRESH_TOKEN_MAX_AGE", 7 * 24 * 60 * 60)

    # Uploads (profile pictures)
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(BASE_DIR, "uploads"))
    MAX_CONTENT_LENGTH = _env_int("MAX_CONTENT_LENGTH", 5 * 1024 * 1024)
    ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}

    MAX_GROUP_SIZE = _env_int("MAX_GROUP_SIZE", 60)


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    MONGO_URI = "mongodb://localhost:27017/AcademicSchedulerTest"
    LOG_LEVEL = "WARNING"
