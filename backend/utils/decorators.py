import logging
from datetime import datetime
from functools import wraps

from flask import current_app, jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required

from marketplace.auth import Actor, Role
from marketplace.shared.errors import AuthorizationError, ValidationError

from .errors import error_response

logger = logging.getLogger(__name__)


def current_actor() -> Actor:
    """Build the acting user from the verified JWT (identity plus role claim).

    Raises:
        ValidationError: If the token carries no usable identity or role
    """
    identity = get_jwt_identity()
    if identity is None:
        raise ValidationError("Invalid user identity in token")
    try:
        user_id = int(identity)
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid user identity in token") from e
    return Actor(user_id=user_id, role=Role.parse(get_jwt().get("role")))


def role_required(*roles: Role):
    """Decorator to require a JWT whose role claim is one of `roles`.

    A caller with another role gets the same 404 as for a missing record.
    """

    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            try:
                actor = current_actor()
                if actor.role not in roles:
                    allowed = " or ".join(role.value.lower() for role in roles)
                    raise AuthorizationError(f"Only {allowed}s can do this")
            except Exception as e:
                return error_response(e, f"authorizing {f.__name__}")
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def rate_limit(max_calls: int = 5, window_seconds: int = 60):
    """Simple per-user rate limiting decorator.

    Call history is stored on the app, so separate app instances (and
    tests) do not share limits.

    Args:
        max_calls: Maximum number of calls allowed
        window_seconds: Time window in seconds
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = get_jwt_identity()
            if not user_id:
                return jsonify({"error": "Authentication required"}), 401

            limits = current_app.extensions.setdefault("rate_limits", {})
            storage: dict[str, list[float]] = limits.setdefault(f.__name__, {})
            key = str(user_id)
            now = datetime.now().timestamp()

            # Clean old entries, dropping callers with none left
            for stored_key in list(storage):
                recent = [t for t in storage[stored_key] if now - t < window_seconds]
                if recent:
                    storage[stored_key] = recent
                else:
                    del storage[stored_key]
            storage.setdefault(key, [])

            if len(storage[key]) >= max_calls:
                logger.warning(f"Rate limit exceeded for user {user_id} on {f.__name__}")
                return jsonify(
                    {
                        "error": f"Rate limit exceeded. Maximum {max_calls} requests per {window_seconds} seconds."
                    }
                ), 429

            storage[key].append(now)
            return f(*args, **kwargs)

        return decorated_function

    return decorator
