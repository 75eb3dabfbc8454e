"""User management service for registration and profiles."""

import logging
from typing import Any

import bcrypt
from psycopg2 import errors as pg_errors

from marketplace.geo import GeoPoint
from marketplace.shared.database import Database, fetch_one_dict
from marketplace.shared.errors import ConflictError, NotFoundError, ValidationError

from .queries import GET_USER_BY_EMAIL, GET_USER_BY_ID, INSERT_USER, UPDATE_USER_PROFILE
from .roles import Role

logger = logging.getLogger(__name__)

PROFILE_UPDATABLE_FIELDS = {"name", "email", "location", "skills"}
MIN_PASSWORD_LENGTH = 6


def normalize_skills(skills: Any) -> list[str]:
    """Canonicalise skill/category tags to unique uppercase strings, order kept."""
    if skills is None:
        return []
    if isinstance(skills, str):
        skills = skills.split(",")
    if not isinstance(skills, (list, tuple, set)):
        raise ValidationError("Skills must be a list of category names")

    normalized = []
    for skill in skills:
        tag = str(skill).strip().upper()
        if tag and tag not in normalized:
            normalized.append(tag)
    return normalized


def parse_location(location: Any) -> GeoPoint:
    """Parse a location payload.

    Accepts {"latitude": .., "longitude": ..}, a GeoJSON-like
    {"coordinates": [lng, lat]} or a bare [lng, lat] pair.

    Raises:
        ValidationError: If the payload is malformed or out of range
    """
    if isinstance(location, dict):
        if "coordinates" in location:
            return GeoPoint.from_coordinates(location["coordinates"])
        latitude = location.get("latitude")
        longitude = location.get("longitude")
        if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
            raise ValidationError("Location latitude and longitude must be numbers")
        return GeoPoint(longitude=float(longitude), latitude=float(latitude))
    return GeoPoint.from_coordinates(location)


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    """Strip the password hash and expose the point as [lng, lat]."""
    clean = {k: v for k, v in user.items() if k != "password_hash"}
    for field in ("rating", "response_rate"):
        if clean.get(field) is not None:
            clean[field] = float(clean[field])
    if "longitude" in clean and "latitude" in clean:
        clean["location"] = {
            "type": "Point",
            "coordinates": [clean.pop("longitude"), clean.pop("latitude")],
        }
    return clean


class UserService:
    """Service for user management."""

    def __init__(self, database: Database):
        """Initialize the user service.

        Args:
            database: Database connection interface
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database

    def create_user(
        self,
        email: str,
        password: str,
        name: str,
        role: str,
        skills: Any = None,
        location: Any = None,
    ) -> int:
        """Create a new user account.

        A missing or malformed location is stored as the unset point [0, 0]
        rather than rejecting the registration.

        Args:
            email: Unique email address
            password: Plain text password (will be hashed)
            name: Display name
            role: CLIENT or PROVIDER
            skills: Category tags the user offers (providers) or is interested in
            location: Optional location payload

        Returns:
            User ID of the created user

        Raises:
            ValidationError: If a required field is missing or invalid
            ConflictError: If the email is already registered
        """
        if not email or not email.strip():
            raise ValidationError("Email is required")
        if not name or not name.strip():
            raise ValidationError("Name is required")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        role = Role.parse(role)
        skills = normalize_skills(skills)

        email = email.strip().lower()
        if self.get_user_by_email(email):
            raise ConflictError("Email is already registered")

        point = GeoPoint(longitude=0.0, latitude=0.0)
        if location is None:
            logger.info(f"No location supplied for {email}, using default location")
        else:
            try:
                point = parse_location(location)
            except ValidationError as e:
                logger.info(f"Invalid location for {email} ({e}), using default location")

        password_hash = self._hash_password(password)

        try:
            with self.db.get_cursor() as cur:
                cur.execute(
                    INSERT_USER,
                    (
                        email,
                        password_hash,
                        name.strip(),
                        role.value,
                        skills,
                        point.longitude,
                        point.latitude,
                    ),
                )
                result = cur.fetchone()
                if not result:
                    raise ValueError("Failed to create user")
                user_id = result[0]
                logger.info(f"Created {role.value} user {email} (ID: {user_id})")
                return user_id
        except pg_errors.UniqueViolation as e:
            raise ConflictError("Email is already registered") from e
        except Exception as e:
            logger.error(f"Error creating user {email}: {e}", exc_info=True)
            raise

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Get user by email.

        Args:
            email: Email address to lookup

        Returns:
            User dictionary or None if not found
        """
        with self.db.get_cursor() as cur:
            cur.execute(GET_USER_BY_EMAIL, (email.strip().lower(),))
            return fetch_one_dict(cur)

    def get_user_by_id(self, user_id: int) -> dict[str, Any] | None:
        """Get user by ID.

        Args:
            user_id: User ID to lookup

        Returns:
            User dictionary or None if not found
        """
        with self.db.get_cursor() as cur:
            cur.execute(GET_USER_BY_ID, (user_id,))
            return fetch_one_dict(cur)

    def get_profile(self, user_id: int) -> dict[str, Any]:
        """Get a user's public profile.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return public_user(user)

    def update_profile(self, user_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        """Update editable profile fields.

        Only name, email, location and skills may be changed.

        Args:
            user_id: User to update
            updates: Field -> new value

        Returns:
            Updated public profile

        Raises:
            ValidationError: If an unknown field is present or a value is invalid
            NotFoundError: If the user does not exist
        """
        if not updates:
            raise ValidationError("No updates provided")
        invalid = set(updates) - PROFILE_UPDATABLE_FIELDS
        if invalid:
            raise ValidationError(f"Invalid updates: {', '.join(sorted(invalid))}")

        name = updates.get("name")
        if "name" in updates and (not name or not str(name).strip()):
            raise ValidationError("Name cannot be empty")
        email = updates.get("email")
        if "email" in updates and (not email or not str(email).strip()):
            raise ValidationError("Email cannot be empty")

        skills = normalize_skills(updates["skills"]) if "skills" in updates else None
        point = parse_location(updates["location"]) if "location" in updates else None

        try:
            with self.db.get_cursor() as cur:
                cur.execute(
                    UPDATE_USER_PROFILE,
                    (
                        str(name).strip() if name else None,
                        str(email).strip().lower() if email else None,
                        skills,
                        point.longitude if point else None,
                        point.latitude if point else None,
                        user_id,
                    ),
                )
                user = fetch_one_dict(cur)
        except pg_errors.UniqueViolation as e:
            raise ConflictError("Email is already registered") from e

        if not user:
            raise NotFoundError("User not found")
        logger.info(f"Updated profile fields {sorted(updates)} for user {user_id}")
        return public_user(user)

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash.

        Args:
            password: Plain text password
            password_hash: Bcrypt password hash

        Returns:
            True if password matches, False otherwise
        """
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except Exception as e:
            logger.error(f"Error verifying password: {e}", exc_info=True)
            return False

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
