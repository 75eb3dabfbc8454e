"""
Pytest configuration and fixtures for unit tests.

Unit tests are fast, isolated tests that don't require external dependencies.
"""

from datetime import UTC, datetime
from unittest.mock import Mock

import pytest

from marketplace.tasks.queries import _TASK_FIELDS


@pytest.fixture
def mock_cursor():
    """Cursor handed out by the mock database."""
    return Mock()


@pytest.fixture
def mock_database(mock_cursor):
    """Create a mock database whose get_cursor() and transaction() yield mock_cursor."""
    db = Mock()
    db.get_cursor.return_value.__enter__ = Mock(return_value=mock_cursor)
    db.get_cursor.return_value.__exit__ = Mock(return_value=False)
    db.transaction.return_value.__enter__ = Mock(return_value=mock_cursor)
    db.transaction.return_value.__exit__ = Mock(return_value=False)
    return db


@pytest.fixture
def task_row():
    """Build a (description, row) pair for a task as returned by the tasks queries."""

    def _build(**overrides):
        task = {
            "task_id": 10,
            "title": "Fix kitchen sink",
            "description": "Leaking pipe under the sink",
            "status": "PENDING",
            "quantity": 2,
            "price_per_unit": 25,
            "unit": "HOUR",
            "longitude": 77.6,
            "latitude": 12.9,
            "category": "PLUMBING",
            "subcategory": None,
            "task_type": "SERVICE",
            "quality": "STANDARD",
            "priority": "MEDIUM",
            "skills": ["PLUMBING"],
            "start_date": None,
            "end_date": None,
            "client_id": 1,
            "provider_id": None,
            "rejected_by_provider": False,
            "rating": None,
            "feedback": None,
            "created_at": datetime(2024, 5, 1, tzinfo=UTC),
            "updated_at": datetime(2024, 5, 1, tzinfo=UTC),
        }
        task.update(overrides)
        description = [(field,) for field in _TASK_FIELDS]
        return description, tuple(task[field] for field in _TASK_FIELDS)

    return _build
