import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from marketplace.auth import Role

from backend.utils.decorators import current_actor, rate_limit, role_required
from backend.utils.errors import error_response
from backend.utils.services import get_review_service

logger = logging.getLogger(__name__)
reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


@reviews_bp.route("", methods=["POST"])
@role_required(Role.CLIENT)
@rate_limit(max_calls=10, window_seconds=60)
def api_create_review():
    """Review the provider of one of the client's completed tasks."""
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        review = get_review_service().create_review(
            reviewer_id=current_actor().user_id,
            task_id=data.get("task_id", data.get("taskId")),
            rating=data.get("rating"),
            comment=data.get("comment"),
        )
        return jsonify({"message": "Review created successfully", "review": review}), 201
    except Exception as e:
        return error_response(e, "creating review")


@reviews_bp.route("/<int:user_id>", methods=["GET"])
@jwt_required()
def api_get_reviews(user_id: int):
    """Reviews received by a user, newest first."""
    try:
        reviews = get_review_service().get_reviews_for_user(user_id)
        return jsonify({"reviews": reviews}), 200
    except Exception as e:
        return error_response(e, f"fetching reviews for user {user_id}")
