"""Provider search and task feed."""

from .matching_service import MatchingService

__all__ = ["MatchingService"]
