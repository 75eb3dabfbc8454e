"""
Matching Query Service

Provider search for clients and the open-task feed for providers. Both run
the same pipeline: category filter in SQL (with a bounding-box prefilter when
a location is given), exact haversine radius check, then ordering.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from marketplace.auth.user_service import normalize_skills, public_user
from marketplace.geo import (
    DEFAULT_SEARCH_RADIUS_KM,
    FARMER_SEARCH_RADIUS_KM,
    GeoPoint,
    bounding_box,
    display_distance,
    within_radius,
)
from marketplace.ranking import PriorityScorer
from marketplace.reviews import ReviewService
from marketplace.shared.database import Database, fetch_all_dicts
from marketplace.shared.errors import ValidationError
from marketplace.tasks.models import TaskStatus, normalize_category, serialize_task

from .queries import FIND_PROVIDERS_BY_SKILL, FIND_TASKS_FOR_PROVIDER

logger = logging.getLogger(__name__)

DEFAULT_RESULT_LIMIT = 20
_NO_BOX = {"min_lat": None, "max_lat": None, "min_lng": None, "max_lng": None}


def _positive_radius(radius_km: Any, default: float) -> float:
    if radius_km in (None, ""):
        return default
    try:
        radius = float(radius_km)
    except (TypeError, ValueError) as e:
        raise ValidationError("Radius must be a number") from e
    if radius <= 0:
        raise ValidationError("Radius must be greater than 0")
    return radius


def _box_params(location: GeoPoint | None, radius_km: float) -> dict[str, float | None]:
    if location is None or not location.is_set:
        return dict(_NO_BOX)
    return bounding_box(location, radius_km)


def _present_provider(provider: dict[str, Any]) -> dict[str, Any]:
    reviews = provider.pop("reviews", [])
    provider["review_count"] = len(reviews)
    provider["distance"] = display_distance(provider.pop("distance_km", None))
    return public_user(provider)


class MatchingService:
    """Service answering "who can do this near me" and "what work is near me"."""

    def __init__(
        self,
        database: Database,
        scorer: PriorityScorer,
        review_service: ReviewService,
        default_radius_km: float = DEFAULT_SEARCH_RADIUS_KM,
        farmer_radius_km: float = FARMER_SEARCH_RADIUS_KM,
        limit: int = DEFAULT_RESULT_LIMIT,
    ):
        """Initialize the matching service.

        Args:
            database: Database connection interface
            scorer: Provider priority scorer
            review_service: Source of per-provider review stats
            default_radius_km: Radius for provider, worker and task searches
            farmer_radius_km: Radius for the farmer search
            limit: Maximum number of providers returned
        """
        if not database:
            raise ValueError("Database is required")
        if not scorer:
            raise ValueError("PriorityScorer is required")
        if not review_service:
            raise ValueError("ReviewService is required")
        self.db = database
        self.scorer = scorer
        self.review_service = review_service
        self.default_radius_km = default_radius_km
        self.farmer_radius_km = farmer_radius_km
        self.limit = limit

    def find_providers(
        self,
        category: Any,
        location: GeoPoint | None = None,
        radius_km: Any = None,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """
        Providers offering a category, best first.

        Args:
            category: Service category (case-insensitive)
            location: Optional search point; without it there is no distance filter
            radius_km: Search radius (defaults to the general search radius)
            limit: Maximum number of results (defaults to the configured limit)
            now: Reference time for review recency

        Returns:
            Providers ordered by descending ranking score, ties by user_id

        Raises:
            ValidationError: If the category is missing or the radius is invalid
        """
        category = normalize_category(category)
        radius = _positive_radius(radius_km, self.default_radius_km)
        limit = self.limit if limit is None else limit

        params = {"category": category, **_box_params(location, radius)}
        with self.db.get_cursor() as cur:
            cur.execute(FIND_PROVIDERS_BY_SKILL, params)
            candidates = fetch_all_dicts(cur)

        if location is not None:
            candidates = within_radius(candidates, location, radius)

        stats = self.review_service.get_provider_stats(c["user_id"] for c in candidates)
        enriched = [{**candidate, **stats.get(candidate["user_id"], {})} for candidate in candidates]

        ranked = self.scorer.rank(enriched, now=now, radius_km=radius if location else None)
        results = [_present_provider(provider) for provider in ranked[:limit]]

        logger.info(
            f"Provider search category={category} radius={radius}km "
            f"located={location is not None}: {len(results)} of {len(candidates)} match(es)"
        )
        return results

    def find_farmers(self, category: Any, location: GeoPoint | None = None) -> list[dict[str, Any]]:
        """Provider search over the wider farmer radius."""
        return self.find_providers(category, location=location, radius_km=self.farmer_radius_km)

    def find_workers(self, category: Any, location: GeoPoint | None = None) -> list[dict[str, Any]]:
        """Provider search over the general radius."""
        return self.find_providers(category, location=location, radius_km=self.default_radius_km)

    def find_open_tasks(
        self,
        provider: dict[str, Any],
        location: GeoPoint | None = None,
        radius_km: Any = None,
        category: Any = None,
        status: Any = TaskStatus.PENDING,
    ) -> list[dict[str, Any]]:
        """
        Task feed for a provider, newest first.

        An explicit category wins; otherwise the provider's own skills are
        used, and with no skills there is no category filter. The display
        distance is attached to each task but never affects ordering.

        Args:
            provider: The provider's user row (user_id, skills)
            location: Optional search point
            radius_km: Search radius (defaults to the general search radius)
            category: Optional category filter
            status: Status to list (defaults to PENDING, the unassigned feed)

        Returns:
            Serialized tasks with a `distance` field
        """
        status = TaskStatus.parse(status)
        radius = _positive_radius(radius_km, self.default_radius_km)

        if category not in (None, ""):
            categories = [normalize_category(category)]
        else:
            categories = normalize_skills(provider.get("skills")) or None

        params = {
            "status": status.value,
            "provider_id": provider["user_id"],
            "categories": categories,
            **_box_params(location, radius),
        }
        with self.db.get_cursor() as cur:
            cur.execute(FIND_TASKS_FOR_PROVIDER, params)
            tasks = fetch_all_dicts(cur)

        if location is not None:
            tasks = within_radius(tasks, location, radius)

        results = []
        for task in tasks:
            distance = display_distance(task.pop("distance_km", None))
            results.append({**serialize_task(task), "distance": distance})

        logger.info(
            f"Task feed for provider {provider['user_id']} status={status.value} "
            f"categories={categories or 'any'}: {len(results)} task(s)"
        )
        return results
