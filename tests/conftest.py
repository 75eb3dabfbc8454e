"""
Root pytest configuration and shared fixtures.

This file contains configuration and fixtures shared across all test types.
Directory-specific conftest.py files can override or extend these fixtures.
"""

from datetime import UTC, datetime

import pytest

from marketplace.auth import Actor, Role


@pytest.fixture
def now():
    """Fixed reference time for recency-sensitive tests."""
    return datetime(2024, 5, 31, 12, 0, tzinfo=UTC)


@pytest.fixture
def client_actor():
    """A client acting on its own tasks."""
    return Actor(user_id=1, role=Role.CLIENT)


@pytest.fixture
def provider_actor():
    """A provider acting from the task feed."""
    return Actor(user_id=2, role=Role.PROVIDER)
