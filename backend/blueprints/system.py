import logging
import os

from flask import Blueprint, jsonify

from backend.utils.services import get_database

logger = logging.getLogger(__name__)
system_bp = Blueprint("system", __name__)


@system_bp.route("/api/health")
def api_health():
    """Health check endpoint."""
    try:
        with get_database().get_cursor() as cur:
            cur.execute("SELECT 1")
        db_status = "healthy"
    except Exception as e:
        logger.warning(f"Health check database query failed: {e}")
        db_status = "unhealthy"

    response = {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
        "environment": os.getenv("ENVIRONMENT", "development"),
    }
    return jsonify(response), 200 if db_status == "healthy" else 503


@system_bp.route("/api/<path:path>")
def api_not_found(path: str):
    """Unknown API routes return JSON instead of an HTML 404 page."""
    return jsonify({"error": "API endpoint not found"}), 404
