"""
Standardized error responses.

Every error body looks like:
    {"success": false, "error": "<message>", "error_code": "<CODE>", "details": {...}}
"""

import logging
from typing import Any, Optional

from flask import Flask, jsonify
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from providers.base import ProviderError
from repositories.base import JobNotFoundError, StoreError

logger = logging.getLogger(__name__)


class ErrorCode:
    """Machine-readable error codes."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(message: str, error_code: str, status: int, details: Optional[dict[str, Any]] = None):
    body = {"success": False, "error": message, "error_code": error_code}
    if details:
        body["details"] = details
    return jsonify(body), status


def validation_message(error: ValidationError) -> str:
    """Caller-facing text for the first validation problem."""
    first = error.errors()[0]
    original = (first.get("ctx") or {}).get("error")
    if original is not None:
        return str(original)
    field = ".".join(str(p) for p in first.get("loc", ()))
    return f"{field}: {first['msg']}" if field else first["msg"]


def register_error_handlers(app: Flask) -> None:

    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return error_response(validation_message(e), ErrorCode.VALIDATION_ERROR, 400)

    @app.errorhandler(JobNotFoundError)
    def handle_not_found(e: JobNotFoundError):
        return error_response(str(e), ErrorCode.NOT_FOUND, 404)

    @app.errorhandler(StoreError)
    def handle_store(e: StoreError):
        logger.error("Store unavailable: %s", e)
        return error_response("Storage is unavailable, try again later", ErrorCode.SERVICE_UNAVAILABLE, 503)

    @app.errorhandler(ProviderError)
    def handle_provider(e: ProviderError):
        logger.error("Upstream provider failed: %s", e)
        return error_response(str(e), ErrorCode.EXTERNAL_API_ERROR, 502)

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        return error_response(e.description or e.name, e.name.upper().replace(" ", "_"), e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error")
        return error_response("Internal server error", ErrorCode.INTERNAL_ERROR, 500)
