"""
Shared infrastructure for services.

This package contains shared building blocks used across multiple services,
such as database abstractions and the error taxonomy.
"""

from .database import Database, PostgreSQLDatabase
from .errors import (
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
    MarketplaceError,
    NotFoundError,
    StorageError,
    ValidationError,
)

__all__ = [
    "Database",
    "PostgreSQLDatabase",
    "MarketplaceError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "ExternalServiceError",
    "StorageError",
]
