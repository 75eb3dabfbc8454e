import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from marketplace.geo import GeoPoint

from backend.utils.errors import error_response
from backend.utils.services import get_matching_service

logger = logging.getLogger(__name__)
providers_bp = Blueprint("providers", __name__, url_prefix="/api/providers")


@providers_bp.route("/prioritized", methods=["GET"])
@jwt_required()
def api_prioritized_providers():
    """Providers for a service category, best first.

    Query params: serviceCategory (required), lat/lng and radius (optional).
    """
    try:
        category = request.args.get("serviceCategory")
        if not category:
            return jsonify({"error": "serviceCategory is required"}), 400

        location = GeoPoint.from_query(request.args.get("lat"), request.args.get("lng"))
        providers = get_matching_service().find_providers(
            category, location=location, radius_km=request.args.get("radius")
        )
        return jsonify({"providers": providers}), 200
    except Exception as e:
        return error_response(e, "ranking providers")
