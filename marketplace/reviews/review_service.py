"""Service for reviews and the provider reputation they feed."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from marketplace.sentiment import Sentiment, SentimentClassifier
from marketplace.shared.database import Database, fetch_all_dicts, fetch_one_dict
from marketplace.shared.errors import ConflictError, NotFoundError, ValidationError
from marketplace.shared.structured_logging import get_structured_logger

from .queries import (
    GET_COMPLETED_TASK_COUNTS,
    GET_REVIEWABLE_TASK,
    GET_REVIEWS_FOR_PROVIDERS,
    GET_REVIEWS_FOR_USER,
    INSERT_REVIEW,
    LOCK_PROVIDER_ROW,
    RECOMPUTE_PROVIDER_RATING,
)

logger = logging.getLogger(__name__)


def _validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, (int, float)) or int(rating) != rating:
        raise ValidationError("Rating must be a whole number between 1 and 5")
    if not 1 <= rating <= 5:
        raise ValidationError("Rating must be a whole number between 1 and 5")
    return int(rating)


def _serialize_review(review: dict[str, Any]) -> dict[str, Any]:
    result = dict(review)
    if isinstance(result.get("sentiment"), Sentiment):
        result["sentiment"] = result["sentiment"].value
    return result


class ReviewService:
    """Service for creating and reading provider reviews.

    Reviews are immutable once written. The sentiment of the comment is
    classified exactly once, at creation.
    """

    def __init__(self, database: Database, classifier: SentimentClassifier):
        """Initialize the review service.

        Args:
            database: Database connection interface
            classifier: Sentiment classifier for review comments
        """
        if not database:
            raise ValueError("Database is required")
        if not classifier:
            raise ValueError("Sentiment classifier is required")
        self.db = database
        self.classifier = classifier

    def create_review(
        self, reviewer_id: int, task_id: Any, rating: Any, comment: str | None = None
    ) -> dict[str, Any]:
        """Review the provider of a completed task.

        Args:
            reviewer_id: Client who owns the task
            task_id: Completed task being reviewed
            rating: Whole number 1-5
            comment: Optional free text, classified for sentiment

        Returns:
            The created review, including its sentiment and the provider's new rating

        Raises:
            ValidationError: If the rating is invalid or the task is not completed
            NotFoundError: If the task does not exist or is not the reviewer's
            ConflictError: If the reviewer already reviewed this task
        """
        log = get_structured_logger(__name__, task_id=task_id, actor_id=reviewer_id)
        rating = _validate_rating(rating)
        try:
            task_id = int(task_id)
        except (TypeError, ValueError) as e:
            raise ValidationError("Task id is required") from e
        comment = comment.strip() if isinstance(comment, str) and comment.strip() else None

        with self.db.get_cursor() as cur:
            cur.execute(GET_REVIEWABLE_TASK, (task_id, reviewer_id))
            task = fetch_one_dict(cur)

        if not task:
            raise NotFoundError("Task not found")
        if task["status"] != "COMPLETED":
            raise ValidationError("Only completed tasks can be reviewed")
        if task.get("provider_id") is None:
            raise ValidationError("Task has no provider to review")

        provider_id = task["provider_id"]
        sentiment = Sentiment(self.classifier.classify(comment))

        try:
            # Insert and recompute commit together
            with self.db.transaction() as cur:
                cur.execute(LOCK_PROVIDER_ROW, (provider_id,))
                cur.execute(
                    INSERT_REVIEW,
                    (reviewer_id, provider_id, task_id, rating, comment, sentiment.value),
                )
                review = fetch_one_dict(cur)
                if not review:
                    raise ConflictError("You have already reviewed this task")

                cur.execute(RECOMPUTE_PROVIDER_RATING, (provider_id, provider_id))
                updated = cur.fetchone()
        except ConflictError:
            log.info("Duplicate review rejected")
            raise
        except Exception as e:
            log.error(f"Error creating review: {e}", exc_info=True)
            raise

        provider_rating = float(updated[0]) if updated else None
        log.info(
            f"Review {review['review_id']} stored for provider {provider_id} "
            f"(rating={rating}, sentiment={sentiment.value}, provider_rating={provider_rating})"
        )
        result = _serialize_review(review)
        result["provider_rating"] = provider_rating
        return result

    def get_reviews_for_user(self, user_id: int) -> list[dict[str, Any]]:
        """Reviews received by a user, newest first, with the reviewer's name."""
        with self.db.get_cursor() as cur:
            cur.execute(GET_REVIEWS_FOR_USER, (user_id,))
            reviews = fetch_all_dicts(cur)
        return [_serialize_review(review) for review in reviews]

    def get_provider_stats(self, provider_ids: Iterable[int]) -> dict[int, dict[str, Any]]:
        """Review and completion stats for a batch of providers.

        The result is keyed by provider id and holds `reviews` (sentiment and
        created_at of each review) and `completed_tasks`. Rating and response
        rate live on the provider row itself and are merged by the caller.

        Args:
            provider_ids: Providers to load stats for

        Returns:
            Stats per provider; every requested id is present
        """
        ids = sorted({int(provider_id) for provider_id in provider_ids})
        stats: dict[int, dict[str, Any]] = {
            provider_id: {"reviews": [], "completed_tasks": 0} for provider_id in ids
        }
        if not ids:
            return stats

        reviews_by_provider: dict[int, list[dict[str, Any]]] = defaultdict(list)
        with self.db.get_cursor() as cur:
            cur.execute(GET_REVIEWS_FOR_PROVIDERS, (ids,))
            for review in fetch_all_dicts(cur):
                reviews_by_provider[review["provider_id"]].append(
                    {"sentiment": review["sentiment"], "created_at": review["created_at"]}
                )

            cur.execute(GET_COMPLETED_TASK_COUNTS, (ids,))
            for row in fetch_all_dicts(cur):
                stats[row["provider_id"]]["completed_tasks"] = int(row["completed_tasks"])

        for provider_id, reviews in reviews_by_provider.items():
            stats[provider_id]["reviews"] = reviews

        logger.debug(f"Loaded stats for {len(ids)} provider(s)")
        return stats
