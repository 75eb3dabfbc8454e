"""User registration, authentication and profiles."""

from .auth_service import AuthService
from .roles import Actor, Role
from .user_service import UserService, normalize_skills, parse_location, public_user

__all__ = [
    "Actor",
    "AuthService",
    "Role",
    "UserService",
    "normalize_skills",
    "parse_location",
    "public_user",
]
