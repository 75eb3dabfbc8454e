import logging
import time

from flask import current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from marketplace.shared.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STORAGE_UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again."


def _sanitize_error_message(error: Exception) -> str:
    """Sanitize error messages to avoid leaking sensitive information.

    Args:
        error: Exception object

    Returns:
        Sanitized error message safe for client display
    """
    error_str = str(error).lower()

    # Database connection strings, SQL and driver details
    if any(word in error_str for word in ("password", "connection", "database", "sql")):
        return "Database operation failed. Please try again."

    # API keys for the sentiment model
    if "api" in error_str and ("key" in error_str or "token" in error_str):
        return "API authentication failed. Please check configuration."

    return "An unexpected error occurred. Please try again later."


def _client_key() -> str:
    """JWT identity of the caller, or its address when unauthenticated."""
    try:
        verify_jwt_in_request(optional=True)
        identity = get_jwt_identity()
    except Exception:
        identity = None
    return f"user:{identity}" if identity else f"addr:{request.remote_addr}"


def _is_repeated(status: int, message: str) -> bool:
    """Record an error for the current client and report whether it repeats the last one.

    History is kept per app and per client, so one client's errors never
    flag another's.
    """
    history = current_app.extensions.setdefault("error_history", {})
    window = current_app.config.get("ERROR_REPEAT_WINDOW_SECONDS", 30)
    key = _client_key()
    now = time.monotonic()

    # Entries past the window can no longer match; drop them
    for stale in [k for k, (_, _, seen) in history.items() if now - seen > window]:
        del history[stale]

    previous = history.get(key)
    history[key] = (status, message, now)
    if not previous:
        return False

    last_status, last_message, last_seen = previous
    return last_status == status and last_message == message and now - last_seen <= window


def error_response(error: Exception, action: str):
    """Map a service error to a JSON error response.

    Args:
        error: Exception raised while handling the request
        action: Short description for the server log (e.g. "accepting task 5")

    Returns:
        Tuple of (response, status code)
    """
    if isinstance(error, ValidationError):
        status, message = 400, str(error)
    elif isinstance(error, (AuthorizationError, NotFoundError)):
        status, message = 404, str(error) or "Not found"
    elif isinstance(error, ConflictError):
        status, message = 409, str(error)
    elif isinstance(error, StorageError):
        logger.error(f"Storage error while {action}: {error}", exc_info=True)
        status, message = 503, STORAGE_UNAVAILABLE_MESSAGE
    else:
        logger.error(f"Error while {action}: {error}", exc_info=True)
        status, message = 500, _sanitize_error_message(error)

    payload = {"error": message}
    if _is_repeated(status, message):
        logger.warning(f"Repeated error for {_client_key()} while {action}: {message}")
        payload["repeated"] = True
    return jsonify(payload), status
