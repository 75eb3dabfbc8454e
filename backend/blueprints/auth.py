import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import create_access_token

from backend.utils.errors import error_response
from backend.utils.services import get_auth_service

logger = logging.getLogger(__name__)
auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _issue_token(user: dict) -> str:
    return create_access_token(identity=str(user["user_id"]), additional_claims={"role": user["role"]})


@auth_bp.route("/register", methods=["POST"])
def api_register():
    """Register a new client or provider and log them in."""
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        email = data.get("email")
        password = data.get("password")
        name = data.get("name")
        if not all([email, password, name]):
            return jsonify({"error": "Name, email, and password are required"}), 400

        auth_service = get_auth_service()
        user = auth_service.register_user(
            email=email,
            password=password,
            name=name,
            role=data.get("role"),
            skills=data.get("skills", data.get("services")),
            location=data.get("location"),
        )

        return (
            jsonify(
                {
                    "message": "User registered successfully",
                    "access_token": _issue_token(user),
                    "user": user,
                }
            ),
            201,
        )
    except Exception as e:
        return error_response(e, "registering user")


@auth_bp.route("/login", methods=["POST"])
def api_login():
    """Login with email and password."""
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        email = data.get("email")
        password = data.get("password")
        if not all([email, password]):
            return jsonify({"error": "Email and password are required"}), 400

        auth_service = get_auth_service()
        user = auth_service.authenticate_user(email, password)
        if not user:
            return jsonify({"error": "Invalid email or password"}), 401

        return (
            jsonify(
                {
                    "message": "Login successful",
                    "access_token": _issue_token(user),
                    "user": user,
                }
            ),
            200,
        )
    except Exception as e:
        return error_response(e, "logging in")
