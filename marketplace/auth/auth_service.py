"""Authentication service for login and registration."""

import logging
from typing import Any

from .user_service import UserService, public_user

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, user_service: UserService):
        """Initialize the auth service.

        Args:
            user_service: UserService instance for user operations
        """
        if not user_service:
            raise ValueError("UserService is required")
        self.user_service = user_service

    def authenticate_user(self, email: str, password: str) -> dict[str, Any] | None:
        """Authenticate a user by email and password.

        Args:
            email: Email address
            password: Plain text password

        Returns:
            Public user dictionary if authentication succeeds, None otherwise
        """
        if not email or not password:
            return None

        user = self.user_service.get_user_by_email(email.strip())
        if not user:
            logger.warning(f"Authentication failed: user not found: {email}")
            return None

        if not self.user_service.verify_password(password, user["password_hash"]):
            logger.warning(f"Authentication failed: invalid password for user: {email}")
            return None

        logger.info(f"User authenticated: {user['email']} (ID: {user['user_id']})")
        return public_user(user)

    def register_user(
        self,
        email: str,
        password: str,
        name: str,
        role: str,
        skills: Any = None,
        location: Any = None,
    ) -> dict[str, Any]:
        """Register a new user and return its public profile.

        Raises:
            ValidationError: If validation fails
            ConflictError: If the email already exists
        """
        user_id = self.user_service.create_user(
            email=email,
            password=password,
            name=name,
            role=role,
            skills=skills,
            location=location,
        )
        return self.user_service.get_profile(user_id)
