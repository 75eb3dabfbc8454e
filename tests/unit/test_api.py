"""Unit tests for the Flask API with service factories patched out."""

from unittest.mock import Mock, patch

import pytest
from flask_jwt_extended import create_access_token

from backend.app import create_app
from backend.config import Config
from marketplace.geo import GeoPoint
from marketplace.shared.errors import ConflictError, NotFoundError, StorageError, ValidationError


class ApiTestConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    ERROR_REPEAT_WINDOW_SECONDS = 30


@pytest.fixture
def app():
    """Flask app built from the test config."""
    return create_app(ApiTestConfig)


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Build Authorization headers for a user id and role."""

    def _headers(user_id, role):
        with app.app_context():
            token = create_access_token(identity=str(user_id), additional_claims={"role": role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def task_service():
    with patch("backend.blueprints.tasks.get_task_service") as factory:
        service = Mock()
        factory.return_value = service
        yield service


class TestAuthEndpoints:
    """Test registration and login."""

    def test_register_returns_token_with_role(self, client):
        auth_service = Mock()
        auth_service.register_user.return_value = {"user_id": 3, "role": "PROVIDER"}
        with patch("backend.blueprints.auth.get_auth_service", return_value=auth_service):
            response = client.post(
                "/api/auth/register",
                json={
                    "email": "p@example.com",
                    "password": "password123",
                    "name": "P",
                    "role": "PROVIDER",
                    "services": ["plumbing"],
                },
            )

        assert response.status_code == 201
        data = response.get_json()
        assert data["user"]["user_id"] == 3
        assert data["access_token"]
        assert auth_service.register_user.call_args.kwargs["skills"] == ["plumbing"]

    def test_register_missing_fields(self, client):
        response = client.post("/api/auth/register", json={"email": "p@example.com"})

        assert response.status_code == 400

    def test_register_duplicate_email(self, client):
        auth_service = Mock()
        auth_service.register_user.side_effect = ConflictError("Email is already registered")
        with patch("backend.blueprints.auth.get_auth_service", return_value=auth_service):
            response = client.post(
                "/api/auth/register",
                json={"email": "p@example.com", "password": "password123", "name": "P"},
            )

        assert response.status_code == 409
        assert response.get_json()["error"] == "Email is already registered"

    def test_login_invalid_credentials(self, client):
        auth_service = Mock()
        auth_service.authenticate_user.return_value = None
        with patch("backend.blueprints.auth.get_auth_service", return_value=auth_service):
            response = client.post(
                "/api/auth/login", json={"email": "p@example.com", "password": "wrong"}
            )

        assert response.status_code == 401


class TestTaskEndpoints:
    """Test task routes, role checks and error mapping."""

    def test_missing_token(self, client):
        response = client.get("/api/tasks")

        assert response.status_code == 401

    def test_create_task_as_client(self, client, auth_headers, task_service):
        task_service.create_task.return_value = {"task_id": 10, "status": "PENDING"}

        response = client.post(
            "/api/tasks", json={"title": "Fix sink"}, headers=auth_headers(1, "CLIENT")
        )

        assert response.status_code == 201
        actor = task_service.create_task.call_args[0][0]
        assert actor.user_id == 1
        assert actor.is_client

    def test_create_task_as_provider_is_not_found(self, client, auth_headers, task_service):
        """Role failures look like missing records, never 403."""
        response = client.post(
            "/api/tasks", json={"title": "Fix sink"}, headers=auth_headers(2, "PROVIDER")
        )

        assert response.status_code == 404
        task_service.create_task.assert_not_called()

    def test_list_tasks_for_client(self, client, auth_headers, task_service):
        task_service.get_tasks_for_client.return_value = [{"task_id": 10}]

        response = client.get("/api/tasks", headers=auth_headers(1, "CLIENT"))

        assert response.status_code == 200
        assert response.get_json()["tasks"] == [{"task_id": 10}]
        task_service.get_tasks_for_client.assert_called_once_with(1)

    def test_list_tasks_for_provider_is_the_feed(self, client, auth_headers):
        user_service = Mock()
        user_service.get_user_by_id.return_value = {"user_id": 2, "skills": ["PLUMBING"]}
        matching_service = Mock()
        matching_service.find_open_tasks.return_value = [{"task_id": 10, "distance": 7.8}]

        with (
            patch("backend.blueprints.tasks.get_user_service", return_value=user_service),
            patch("backend.blueprints.tasks.get_matching_service", return_value=matching_service),
        ):
            response = client.get(
                "/api/tasks?lat=12.95&lng=77.65&category=plumbing",
                headers=auth_headers(2, "PROVIDER"),
            )

        assert response.status_code == 200
        args, kwargs = matching_service.find_open_tasks.call_args
        assert args[0]["user_id"] == 2
        assert kwargs["location"] == GeoPoint(longitude=77.65, latitude=12.95)
        assert kwargs["category"] == "plumbing"

    def test_accept_conflict(self, client, auth_headers, task_service):
        task_service.accept_task.side_effect = ConflictError("Task has already been taken")

        response = client.post("/api/tasks/10/accept", headers=auth_headers(2, "PROVIDER"))

        assert response.status_code == 409
        assert response.get_json() == {"error": "Task has already been taken"}

    def test_repeated_error_is_flagged_per_client(self, client, auth_headers, task_service):
        """The same error to the same client is flagged; another client starts fresh."""
        task_service.accept_task.side_effect = ConflictError("Task has already been taken")

        first = client.post("/api/tasks/10/accept", headers=auth_headers(2, "PROVIDER"))
        other = client.post("/api/tasks/10/accept", headers=auth_headers(3, "PROVIDER"))
        second = client.post("/api/tasks/10/accept", headers=auth_headers(2, "PROVIDER"))

        assert "repeated" not in first.get_json()
        assert "repeated" not in other.get_json()
        assert second.get_json()["repeated"] is True

    def test_error_history_drops_clients_outside_window(
        self, app, client, auth_headers, task_service
    ):
        task_service.accept_task.side_effect = ConflictError("Task has already been taken")

        with patch("backend.utils.errors.time") as clock:
            clock.monotonic.side_effect = [0.0, 1.0, 100.0]
            client.post("/api/tasks/10/accept", headers=auth_headers(2, "PROVIDER"))
            client.post("/api/tasks/10/accept", headers=auth_headers(3, "PROVIDER"))
            late = client.post("/api/tasks/10/accept", headers=auth_headers(2, "PROVIDER"))

        assert "repeated" not in late.get_json()
        assert list(app.extensions["error_history"]) == ["user:2"]

    def test_rate_limit_history_drops_idle_callers(
        self, app, client, auth_headers, task_service
    ):
        task_service.create_task.return_value = {"task_id": 1}

        with patch("backend.utils.decorators.datetime") as clock:
            clock.now.return_value.timestamp.side_effect = [0.0, 1.0, 100.0]
            for user_id in (1, 5, 1):
                response = client.post(
                    "/api/tasks", json={"title": "Fix sink"}, headers=auth_headers(user_id, "CLIENT")
                )
                assert response.status_code == 201

        assert app.extensions["rate_limits"]["api_create_task"] == {"1": [100.0]}

    def test_rate_limit_rejects_calls_over_the_limit(self, client, auth_headers, task_service):
        task_service.create_task.return_value = {"task_id": 1}
        headers = auth_headers(1, "CLIENT")

        statuses = [
            client.post("/api/tasks", json={"title": "Fix sink"}, headers=headers).status_code
            for _ in range(31)
        ]

        assert statuses[:30] == [201] * 30
        assert statuses[30] == 429

    def test_reject_task(self, client, auth_headers, task_service):
        task_service.reject_task.return_value = None

        response = client.delete("/api/tasks/10", headers=auth_headers(2, "PROVIDER"))

        assert response.status_code == 200
        assert task_service.reject_task.call_args[0][0] == 10

    def test_update_invalid_fields(self, client, auth_headers, task_service):
        task_service.update_task.side_effect = ValidationError("Invalid updates!")

        response = client.patch(
            "/api/tasks/10", json={"title": "New"}, headers=auth_headers(1, "CLIENT")
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid updates!"

    def test_complete_passes_rating(self, client, auth_headers, task_service):
        task_service.complete_task.return_value = {"task_id": 10, "status": "COMPLETED"}

        response = client.post(
            "/api/tasks/10/complete",
            json={"rating": 5, "feedback": "Great"},
            headers=auth_headers(1, "CLIENT"),
        )

        assert response.status_code == 200
        assert task_service.complete_task.call_args.kwargs == {"rating": 5, "feedback": "Great"}

    def test_get_task_not_found(self, client, auth_headers, task_service):
        task_service.get_task.side_effect = NotFoundError("Task not found")

        response = client.get("/api/tasks/99", headers=auth_headers(1, "CLIENT"))

        assert response.status_code == 404

    def test_storage_error_is_503_with_generic_message(self, client, auth_headers, task_service):
        task_service.start_task.side_effect = StorageError("could not connect to 10.0.0.5")

        response = client.post("/api/tasks/10/start", headers=auth_headers(1, "CLIENT"))

        assert response.status_code == 503
        assert "10.0.0.5" not in response.get_json()["error"]

    def test_unexpected_error_is_sanitized(self, client, auth_headers, task_service):
        task_service.cancel_task.side_effect = RuntimeError("password authentication failed")

        response = client.post("/api/tasks/10/cancel", headers=auth_headers(1, "CLIENT"))

        assert response.status_code == 500
        assert response.get_json()["error"] == "Database operation failed. Please try again."


class TestSearchAndReviewEndpoints:
    """Test provider search, reviews and health."""

    def test_prioritized_requires_category(self, client, auth_headers):
        response = client.get("/api/providers/prioritized", headers=auth_headers(1, "CLIENT"))

        assert response.status_code == 400

    def test_prioritized_providers(self, client, auth_headers):
        matching_service = Mock()
        matching_service.find_providers.return_value = [{"user_id": 2, "priority_score": 1.6}]
        with patch(
            "backend.blueprints.providers.get_matching_service", return_value=matching_service
        ):
            response = client.get(
                "/api/providers/prioritized?serviceCategory=PLUMBING",
                headers=auth_headers(1, "CLIENT"),
            )

        assert response.status_code == 200
        assert response.get_json()["providers"][0]["user_id"] == 2
        assert matching_service.find_providers.call_args.kwargs["location"] is None

    def test_invalid_coordinates_are_400(self, client, auth_headers):
        with patch("backend.blueprints.users.get_matching_service"):
            response = client.get(
                "/api/users/farmers?category=MAIZE&lat=abc&lng=77.6",
                headers=auth_headers(1, "CLIENT"),
            )

        assert response.status_code == 400

    def test_create_review(self, client, auth_headers):
        review_service = Mock()
        review_service.create_review.return_value = {"review_id": 5, "sentiment": "positive"}
        with patch("backend.blueprints.reviews.get_review_service", return_value=review_service):
            response = client.post(
                "/api/reviews",
                json={"task_id": 10, "rating": 5, "comment": "Great"},
                headers=auth_headers(1, "CLIENT"),
            )

        assert response.status_code == 201
        assert review_service.create_review.call_args.kwargs == {
            "reviewer_id": 1,
            "task_id": 10,
            "rating": 5,
            "comment": "Great",
        }

    def test_profile_update(self, client, auth_headers):
        user_service = Mock()
        user_service.update_profile.return_value = {"user_id": 1, "name": "New"}
        with patch("backend.blueprints.users.get_user_service", return_value=user_service):
            response = client.patch(
                "/api/users/profile", json={"name": "New"}, headers=auth_headers(1, "CLIENT")
            )

        assert response.status_code == 200
        user_service.update_profile.assert_called_once_with(1, {"name": "New"})

    def test_health_degraded_when_database_is_down(self, client):
        database = Mock()
        database.get_cursor.side_effect = StorageError("Database is unavailable")
        with patch("backend.blueprints.system.get_database", return_value=database):
            response = client.get("/api/health")

        assert response.status_code == 503
        assert response.get_json()["database"] == "unhealthy"
