"""
Search API routes - query text to profiles, plus cached profile detail.
"""

import logging

from flask import jsonify, request
from pydantic import ValidationError

from models import normalize_identifier
from providers.base import ProviderError
from . import search_bp
from .context import get_services
from .errors import ErrorCode, error_response, validation_message

logger = logging.getLogger(__name__)


@search_bp.route("/api/search", methods=["POST"])
def search():
    """Run a profile search. Body: {"query": "..."}."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Request body must be a JSON object", ErrorCode.VALIDATION_ERROR, 400)

    try:
        response = get_services().search.search(data.get("query"))
    except ValidationError as e:
        return error_response(validation_message(e), ErrorCode.VALIDATION_ERROR, 400)
    except ProviderError as e:
        logger.error("Search API upstream error: %s", e)
        return error_response(str(e), ErrorCode.EXTERNAL_API_ERROR, 502)
    except Exception:
        logger.exception("Search API error")
        return error_response("Search failed", ErrorCode.INTERNAL_ERROR, 500)

    return jsonify(response.to_api())


@search_bp.route("/api/profiles/<path:reference>")
def get_profile(reference):
    """Cached profile by identifier (or profile URL)."""
    identifier = normalize_identifier(reference) or reference.strip().lower()
    record = get_services().repository.profiles.get(identifier)
    if record is None:
        return error_response(f"Profile not cached: {identifier}", ErrorCode.NOT_FOUND, 404)
    return jsonify(record.to_api())
