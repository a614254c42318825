"""Python client for the Academic Scheduler REST API."""

from .api_client import ApiClient, ApiError

__all__ = ["ApiClient", "ApiError"]
