"""Unit tests for UserService and its payload helpers."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import Mock

import bcrypt
import pytest
from psycopg2 import errors as pg_errors

from marketplace.auth import UserService, normalize_skills, parse_location, public_user
from marketplace.shared.errors import ConflictError, NotFoundError, ValidationError

USER_DESCRIPTION = [
    ("user_id",),
    ("email",),
    ("password_hash",),
    ("name",),
    ("role",),
    ("skills",),
    ("longitude",),
    ("latitude",),
    ("rating",),
    ("response_rate",),
    ("created_at",),
    ("updated_at",),
]


def _user_row(**overrides):
    user = {
        "user_id": 7,
        "email": "asha@example.com",
        "password_hash": "$2b$12$hash",
        "name": "Asha",
        "role": "PROVIDER",
        "skills": ["PLUMBING"],
        "longitude": 77.6,
        "latitude": 12.9,
        "rating": Decimal("4.50"),
        "response_rate": Decimal("90.00"),
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
        "updated_at": datetime(2024, 1, 1, tzinfo=UTC),
    }
    user.update(overrides)
    return tuple(user[column] for (column,) in USER_DESCRIPTION)


@pytest.fixture
def user_service(mock_database):
    """Create a UserService instance with mocked database."""
    return UserService(database=mock_database)


class TestHelpers:
    """Test skill, location and public user helpers."""

    def test_normalize_skills_uppercases_and_dedupes(self):
        assert normalize_skills(["plumbing", " Electrical ", "PLUMBING", ""]) == [
            "PLUMBING",
            "ELECTRICAL",
        ]

    def test_normalize_skills_accepts_comma_separated_string(self):
        assert normalize_skills("harvesting, tilling") == ["HARVESTING", "TILLING"]

    def test_normalize_skills_rejects_other_types(self):
        with pytest.raises(ValidationError, match="Skills must be a list"):
            normalize_skills(42)

    def test_parse_location_latitude_longitude_dict(self):
        point = parse_location({"latitude": 12.9, "longitude": 77.6})

        assert point.to_coordinates() == [77.6, 12.9]

    def test_parse_location_geojson_dict(self):
        point = parse_location({"type": "Point", "coordinates": [77.6, 12.9]})

        assert point.latitude == 12.9

    def test_parse_location_rejects_strings(self):
        with pytest.raises(ValidationError):
            parse_location({"latitude": "12.9", "longitude": "77.6"})

    def test_public_user_hides_password_and_exposes_point(self):
        user = dict(zip([c for (c,) in USER_DESCRIPTION], _user_row()))

        result = public_user(user)

        assert "password_hash" not in result
        assert result["location"] == {"type": "Point", "coordinates": [77.6, 12.9]}
        assert result["rating"] == 4.5
        assert isinstance(result["response_rate"], float)


class TestUserService:
    """Test cases for UserService."""

    def test_init_requires_database(self):
        """Test that UserService requires a database."""
        with pytest.raises(ValueError, match="Database is required"):
            UserService(database=None)

    def test_hash_password(self, user_service):
        """Test password hashing."""
        hash_result = user_service._hash_password("testpassword123")

        assert hash_result.startswith("$2b$")

    def test_verify_password(self, user_service):
        """Test password verification with correct and incorrect passwords."""
        password_hash = bcrypt.hashpw(b"testpassword123", bcrypt.gensalt()).decode("utf-8")

        assert user_service.verify_password("testpassword123", password_hash) is True
        assert user_service.verify_password("wrongpassword", password_hash) is False

    def test_verify_password_malformed_hash(self, user_service):
        """A corrupt hash fails verification instead of raising."""
        assert user_service.verify_password("testpassword123", "not-a-hash") is False

    def test_create_user_validation_short_password(self, user_service):
        """Test create_user validates password length."""
        with pytest.raises(ValidationError, match="Password must be at least 6 characters"):
            user_service.create_user(
                email="test@example.com", password="short", name="Test", role="CLIENT"
            )

    def test_create_user_validation_invalid_role(self, user_service):
        """Test create_user validates role."""
        with pytest.raises(ValidationError, match="Role must be 'CLIENT' or 'PROVIDER'"):
            user_service.create_user(
                email="test@example.com", password="password123", name="Test", role="admin"
            )

    def test_create_user_checks_email_exists(self, user_service):
        """Test create_user rejects an already registered email."""
        user_service.get_user_by_email = Mock(return_value={"user_id": 1})

        with pytest.raises(ConflictError, match="already registered"):
            user_service.create_user(
                email="Existing@Example.com", password="password123", name="Test", role="CLIENT"
            )

        user_service.get_user_by_email.assert_called_once_with("existing@example.com")

    def test_create_user_success(self, user_service, mock_cursor):
        """Test successful user creation stores normalized values."""
        mock_cursor.fetchone.side_effect = [None, (7,)]

        user_id = user_service.create_user(
            email=" Asha@Example.com ",
            password="password123",
            name=" Asha ",
            role="provider",
            skills=["plumbing"],
            location={"latitude": 12.9, "longitude": 77.6},
        )

        assert user_id == 7
        insert_params = mock_cursor.execute.call_args_list[-1][0][1]
        assert insert_params[0] == "asha@example.com"
        assert insert_params[1].startswith("$2b$")
        assert insert_params[2:] == ("Asha", "PROVIDER", ["PLUMBING"], 77.6, 12.9)

    def test_create_user_invalid_location_defaults_to_unset(self, user_service, mock_cursor):
        """A malformed location is stored as [0, 0] instead of failing registration."""
        mock_cursor.fetchone.side_effect = [None, (8,)]

        user_service.create_user(
            email="client@example.com",
            password="password123",
            name="Client",
            role="CLIENT",
            location={"latitude": 200, "longitude": 77.6},
        )

        insert_params = mock_cursor.execute.call_args_list[-1][0][1]
        assert insert_params[-2:] == (0.0, 0.0)

    def test_create_user_unique_violation_is_conflict(self, user_service, mock_cursor):
        """A concurrent registration with the same email maps to ConflictError."""
        mock_cursor.fetchone.return_value = None
        mock_cursor.execute.side_effect = [None, pg_errors.UniqueViolation("duplicate key")]

        with pytest.raises(ConflictError):
            user_service.create_user(
                email="race@example.com", password="password123", name="Race", role="CLIENT"
            )

    def test_get_profile_not_found(self, user_service, mock_cursor):
        """Missing users raise NotFoundError."""
        mock_cursor.fetchone.return_value = None

        with pytest.raises(NotFoundError):
            user_service.get_profile(99)

    def test_get_profile(self, user_service, mock_cursor):
        """Profiles are returned without the password hash."""
        mock_cursor.description = USER_DESCRIPTION
        mock_cursor.fetchone.return_value = _user_row()

        profile = user_service.get_profile(7)

        assert profile["email"] == "asha@example.com"
        assert "password_hash" not in profile

    def test_update_profile_rejects_other_fields(self, user_service, mock_cursor):
        """Only name, email, location and skills may change."""
        with pytest.raises(ValidationError, match="Invalid updates: rating, role"):
            user_service.update_profile(7, {"name": "New", "role": "CLIENT", "rating": 5})

        mock_cursor.execute.assert_not_called()

    def test_update_profile(self, user_service, mock_cursor):
        """Updates pass NULL for untouched columns."""
        mock_cursor.description = USER_DESCRIPTION
        mock_cursor.fetchone.return_value = _user_row(skills=["PLUMBING", "ELECTRICAL"])

        profile = user_service.update_profile(7, {"skills": ["plumbing", "electrical"]})

        params = mock_cursor.execute.call_args[0][1]
        assert params == (None, None, ["PLUMBING", "ELECTRICAL"], None, None, 7)
        assert profile["skills"] == ["PLUMBING", "ELECTRICAL"]

    def test_update_profile_rejects_empty_name(self, user_service):
        with pytest.raises(ValidationError, match="Name cannot be empty"):
            user_service.update_profile(7, {"name": "  "})
