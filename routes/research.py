"""
Research API routes - start a research job and poll it.
"""

from flask import jsonify, request

from models import ResearchRequest
from . import research_bp
from .context import get_services
from .errors import ErrorCode, error_response


@research_bp.route("/api/research", methods=["POST"])
def create_research():
    """Queue a research job. Body: {"identifier" or "url", "subjectName"}."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Request body must be a JSON object", ErrorCode.VALIDATION_ERROR, 400)
    if not data.get("identifier") and data.get("url"):
        data = {**data, "identifier": data["url"]}

    body = ResearchRequest.model_validate(data)  # ValidationError -> 400 via handler
    identifier = body.normalized_identifier
    if identifier is None:
        return error_response(
            "identifier must be a profile URL or profile id", ErrorCode.VALIDATION_ERROR, 400
        )

    research = get_services().research
    job_id = research.create(identifier, body.subject_name, reference=body.reference)
    return jsonify({"success": True, "jobId": job_id, "status": "queued"}), 202


@research_bp.route("/api/research/<job_id>")
def get_research(job_id):
    """Current snapshot of a research job."""
    job = get_services().research.get(job_id)  # JobNotFoundError -> 404 via handler
    return jsonify(job.to_api())
