"""
Health API routes.
"""

from flask import jsonify

from . import health_bp
from .context import get_services


@health_bp.route("/api/health")
def health():
    """Liveness plus store reachability."""
    services = get_services()
    store_ok = services.repository.ping()
    body = {
        "status": "ok" if store_ok else "degraded",
        "store": "up" if store_ok else "down",
        "workers": services.pool.get_stats() if services.pool else None,
    }
    return jsonify(body), 200 if store_ok else 503


@health_bp.route("/api/health/store")
def store_info():
    """Backend diagnostics (Redis INFO, file counts)."""
    return jsonify(get_services().repository.info())
