"""
Provider Priority Scorer

Scores providers from their aggregate stats (rating, review sentiment,
review recency, response rate and completed task volume) and orders them for
the provider search.
"""

from __future__ import annotations

import calendar
import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Rating is used on its raw 0-5 scale, so the weighted sum is a relative
# signal rather than a 0-1 probability.
DEFAULT_SCORING_WEIGHTS = {
    "rating": 0.35,
    "sentiment": 0.30,
    "recency": 0.20,
    "response_rate": 0.10,
    "completed_tasks": 0.05,
}

RECENT_REVIEW_MONTHS = 3
WEIGHT_SUM_TOLERANCE = 0.001


def _as_number(value: Any) -> float:
    """Coerce a stat to float, treating missing or malformed values as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _review_list(value: Any) -> list[dict[str, Any]]:
    """Reviews usable for scoring; a non-list value or non-dict entry is ignored."""
    if not isinstance(value, (list, tuple)):
        return []
    return [review for review in value if isinstance(review, dict)]


def _as_utc(moment: Any) -> datetime | None:
    if isinstance(moment, str):
        try:
            moment = datetime.fromisoformat(moment.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(moment, datetime):
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def months_before(moment: datetime, months: int) -> datetime:
    """Same wall-clock time `months` calendar months earlier.

    The day of month is clamped to the length of the target month
    (May 31 minus 3 months is Feb 28/29).
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month_zero = divmod(month_index, 12)
    month = month_zero + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class PriorityScorer:
    """
    Pure scorer for provider priority.

    priority = 0.35*rating + 0.30*sentiment + 0.20*recency
               + 0.10*(response_rate/100) + 0.05*(completed_tasks/100)

    where sentiment = (positive - negative) / max(1, reviews) and
    recency = reviews in the last 3 calendar months / max(1, reviews).
    """

    def __init__(self, config_path: str | None = None, distance_weight: float | None = None):
        """
        Initialize the scorer.

        Args:
            config_path: Optional path to a ranking config JSON file. If not provided,
                        ranking_config.json next to this module is used when present.
            distance_weight: Optional proximity blending weight. Overrides the config
                        file value; 0 means distance is only a hard filter.
        """
        config = self._load_config(config_path)
        self._scoring_weights = self._resolve_weights(config)
        if distance_weight is None:
            distance_weight = _as_number(config.get("distance_weight"))
        self.distance_weight = distance_weight

    @property
    def weights(self) -> dict[str, float]:
        return dict(self._scoring_weights)

    def score(self, provider: dict[str, Any], now: datetime | None = None) -> float:
        """
        Calculate the priority score for a provider.

        Never raises; missing fields count as 0.

        Args:
            provider: Dictionary with rating, reviews, completed_tasks, response_rate
            now: Reference time for the recency window (defaults to current UTC time)

        Returns:
            Priority score (may be negative)
        """
        return self.explain(provider, now=now)["total_score"]

    def explain(self, provider: dict[str, Any], now: datetime | None = None) -> dict[str, float]:
        """
        Score a provider and return the per-factor breakdown.

        Args:
            provider: Provider stats dictionary
            now: Reference time for the recency window

        Returns:
            Dictionary of weighted factor contributions plus total_score
        """
        weights = self._scoring_weights
        if not isinstance(provider, dict):
            provider = {}
        reviews = _review_list(provider.get("reviews"))

        rating = _as_number(provider.get("rating"))
        sentiment_score = self._score_sentiment(reviews)
        recent_score = self._score_recency(reviews, now)
        response_rate = _as_number(provider.get("response_rate"))
        completed_tasks = _as_number(provider.get("completed_tasks"))

        explanation = {
            "rating": rating * weights["rating"],
            "sentiment": sentiment_score * weights["sentiment"],
            "recency": recent_score * weights["recency"],
            "response_rate": (response_rate / 100) * weights["response_rate"],
            "completed_tasks": (completed_tasks / 100) * weights["completed_tasks"],
        }
        explanation["total_score"] = sum(explanation.values())
        return explanation

    def rank(
        self,
        providers: Iterable[dict[str, Any]],
        now: datetime | None = None,
        radius_km: float | None = None,
    ) -> list[dict[str, Any]]:
        """
        Order providers by descending score.

        Each provider is copied and annotated with `priority_score` and
        `ranking_score`. The two are equal unless a distance weight is set and
        the provider carries a `distance_km` from the geo filter, in which case
        a proximity bonus of distance_weight * (1 - distance/radius) is added.
        Ties are broken by ascending user_id.

        Args:
            providers: Provider stats dictionaries
            now: Reference time for the recency window
            radius_km: Search radius used to normalise distances

        Returns:
            New list of annotated providers, best first
        """
        ranked = []
        for provider in providers:
            priority = self.score(provider, now=now)
            ranked.append(
                {
                    **provider,
                    "priority_score": priority,
                    "ranking_score": priority + self._proximity_bonus(provider, radius_km),
                }
            )

        ranked.sort(key=lambda p: (-p["ranking_score"], _as_number(p.get("user_id"))))
        return ranked

    def _proximity_bonus(self, provider: dict[str, Any], radius_km: float | None) -> float:
        distance = provider.get("distance_km")
        if not self.distance_weight or distance is None or not radius_km:
            return 0.0
        proximity = max(0.0, 1.0 - _as_number(distance) / radius_km)
        return self.distance_weight * proximity

    def _score_sentiment(self, reviews: list[dict[str, Any]]) -> float:
        """Net positive share of reviews (-1..1)."""
        net = 0
        for review in reviews:
            sentiment = review.get("sentiment") or ""
            sentiment = str(getattr(sentiment, "value", sentiment)).lower()
            if sentiment == "positive":
                net += 1
            elif sentiment == "negative":
                net -= 1
        return net / max(1, len(reviews))

    def _score_recency(self, reviews: list[dict[str, Any]], now: datetime | None) -> float:
        """Share of reviews created within the last three calendar months (0..1)."""
        reference = _as_utc(now) or datetime.now(UTC)
        cutoff = months_before(reference, RECENT_REVIEW_MONTHS)

        recent = 0
        for review in reviews:
            created_at = _as_utc(review.get("created_at"))
            if created_at is not None and created_at >= cutoff:
                recent += 1
        return recent / max(1, len(reviews))

    def _resolve_weights(self, config: dict[str, Any]) -> dict[str, float]:
        weights = dict(DEFAULT_SCORING_WEIGHTS)
        loaded = config.get("scoring_weights") or {}
        for name, value in loaded.items():
            if name not in weights:
                logger.warning(f"Ignoring unknown scoring weight '{name}'")
                continue
            weights[name] = _as_number(value)

        total = sum(weights.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            logger.warning(f"Scoring weights sum to {total}, expected 1.0. Using them anyway.")
        return weights

    def _load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """
        Load ranking configuration from a JSON file.

        Args:
            config_path: Optional explicit path to the config file

        Returns:
            Parsed config dictionary, empty when no file is found
        """
        possible_paths = [
            config_path,
            Path(__file__).parent / "ranking_config.json",
        ]

        for path in possible_paths:
            if not path:
                continue

            path_obj = Path(path) if isinstance(path, str) else path
            if path_obj.exists():
                try:
                    with open(path_obj, encoding="utf-8") as f:
                        data = json.load(f)
                    logger.info(f"Loaded ranking config from {path_obj}")
                    return data if isinstance(data, dict) else {}
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Failed to load ranking config from {path_obj}: {e}")

        logger.info("Using default scoring weights")
        return {}
