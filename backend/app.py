import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from marketplace.shared.structured_logging import configure_logging

from backend.blueprints.auth import auth_bp
from backend.blueprints.providers import providers_bp
from backend.blueprints.reviews import reviews_bp
from backend.blueprints.system import system_bp
from backend.blueprints.tasks import tasks_bp
from backend.blueprints.users import users_bp
from backend.config import Config

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    """Application factory function."""
    configure_logging(getattr(config_object, "LOG_LEVEL", logging.INFO))

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize JWT
    jwt = JWTManager(app)

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"msg": "Token has expired"}), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        logger.error(f"Invalid token error: {str(error)}")
        return jsonify({"msg": f"Invalid token: {str(error)}"}), 422

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({"msg": "Missing authorization header"}), 401

    # Initialize CORS
    CORS(
        app,
        origins=app.config["CORS_ORIGINS"],
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
    )

    # Register Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(providers_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(reviews_bp)
    app.register_blueprint(system_bp)

    return app


if __name__ == "__main__":
    debug = os.getenv("ENVIRONMENT", "development") == "development"
    create_app().run(host="0.0.0.0", port=5000, debug=debug, use_reloader=debug)
