import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from marketplace.geo import GeoPoint

from backend.utils.decorators import current_actor
from backend.utils.errors import error_response
from backend.utils.services import get_matching_service, get_review_service, get_user_service

logger = logging.getLogger(__name__)
users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _search_args():
    """Category and optional location of a provider search request."""
    category = request.args.get("category") or request.args.get("serviceCategory")
    location = GeoPoint.from_query(request.args.get("lat"), request.args.get("lng"))
    return category, location


@users_bp.route("/profile", methods=["GET"])
@jwt_required()
def api_get_profile():
    """Get the current user's profile."""
    try:
        actor = current_actor()
        user = get_user_service().get_profile(actor.user_id)
        return jsonify({"user": user}), 200
    except Exception as e:
        return error_response(e, "fetching profile")


@users_bp.route("/profile", methods=["PATCH"])
@jwt_required()
def api_update_profile():
    """Update name, email, location or skills of the current user."""
    try:
        actor = current_actor()
        updates = request.get_json(silent=True)
        if not updates:
            return jsonify({"error": "No data provided"}), 400

        user = get_user_service().update_profile(actor.user_id, updates)
        return jsonify({"message": "Profile updated successfully", "user": user}), 200
    except Exception as e:
        return error_response(e, "updating profile")


@users_bp.route("/providers", methods=["GET"])
@jwt_required()
def api_find_providers():
    """Providers offering a category, ranked by priority."""
    try:
        category, location = _search_args()
        providers = get_matching_service().find_providers(
            category, location=location, radius_km=request.args.get("radius")
        )
        return jsonify({"providers": providers}), 200
    except Exception as e:
        return error_response(e, "searching providers")


@users_bp.route("/farmers", methods=["GET"])
@jwt_required()
def api_find_farmers():
    """Provider search over the wider farmer radius."""
    try:
        category, location = _search_args()
        farmers = get_matching_service().find_farmers(category, location=location)
        return jsonify({"farmers": farmers}), 200
    except Exception as e:
        return error_response(e, "searching farmers")


@users_bp.route("/workers", methods=["GET"])
@jwt_required()
def api_find_workers():
    """Provider search over the general radius."""
    try:
        category, location = _search_args()
        workers = get_matching_service().find_workers(category, location=location)
        return jsonify({"workers": workers}), 200
    except Exception as e:
        return error_response(e, "searching workers")


@users_bp.route("/<int:user_id>/reviews", methods=["GET"])
@jwt_required()
def api_user_reviews(user_id: int):
    """Reviews received by a user."""
    try:
        reviews = get_review_service().get_reviews_for_user(user_id)
        return jsonify({"reviews": reviews}), 200
    except Exception as e:
        return error_response(e, f"fetching reviews for user {user_id}")
