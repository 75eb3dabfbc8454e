"""Sentiment classifier client for review comments.

Comments are classified with a star-rating model hosted on the Hugging Face
inference API. The model is a black box: the service only maps its top label
("1 star" .. "5 stars") onto positive / neutral / negative. Classification is
best-effort: any failure or timeout yields NEUTRAL so review creation is never
blocked or rejected because of the model.
"""

import logging
from enum import Enum
from typing import Any, Protocol

import requests

from marketplace.shared.errors import ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "nlptown/bert-base-multilingual-uncased-sentiment"
DEFAULT_API_URL = "https://api-inference.huggingface.co/models"
DEFAULT_TIMEOUT_SECONDS = 5.0


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class SentimentClassifier(Protocol):
    """Anything that can turn free text into a Sentiment without raising."""

    def classify(self, text: str | None) -> Sentiment: ...


def label_to_sentiment(label: str) -> Sentiment:
    """Map a star label such as "4 stars" to a sentiment.

    4-5 stars are positive, 1-2 negative, 3 neutral.

    Raises:
        ExternalServiceError: If the label does not start with a star count
    """
    try:
        stars = int(str(label).strip()[0])
    except (IndexError, ValueError) as e:
        raise ExternalServiceError(f"Unexpected sentiment label: {label!r}") from e

    if stars >= 4:
        return Sentiment.POSITIVE
    if stars <= 2:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


class HuggingFaceSentimentClassifier:
    """Client for the Hugging Face text-classification inference endpoint."""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        """Initialize the classifier.

        Args:
            api_key: Hugging Face API token. Without one every comment is neutral.
            model: Model identifier on the inference API
            api_url: Base URL of the inference API
            timeout: Request timeout in seconds (bounds review creation latency)
            session: Optional requests session (useful for tests)
        """
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def classify(self, text: str | None) -> Sentiment:
        """Classify a comment, falling back to NEUTRAL on any failure.

        Args:
            text: Review comment

        Returns:
            Sentiment of the comment
        """
        if not text or not text.strip():
            return Sentiment.NEUTRAL

        if not self.api_key:
            logger.debug("No Hugging Face API key configured, using neutral sentiment")
            return Sentiment.NEUTRAL

        try:
            return self._classify_remote(text)
        except ExternalServiceError as e:
            logger.warning(f"Sentiment classification failed, using neutral: {e}")
            return Sentiment.NEUTRAL

    def _classify_remote(self, text: str) -> Sentiment:
        url = f"{self.api_url}/{self.model}"
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            response = self.session.post(
                url, json={"inputs": text}, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.Timeout as e:
            raise ExternalServiceError(
                f"Sentiment model timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.RequestException as e:
            raise ExternalServiceError(f"Sentiment model request failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"Invalid JSON from sentiment model: {e}") from e

        return label_to_sentiment(self._top_label(payload))

    def _top_label(self, payload: Any) -> str:
        """Pick the highest-scoring label from the inference response.

        The API answers either [{label, score}, ...] or [[{label, score}, ...]].
        """
        predictions = payload
        if isinstance(predictions, list) and predictions and isinstance(predictions[0], list):
            predictions = predictions[0]

        if not isinstance(predictions, list) or not predictions:
            raise ExternalServiceError(f"Unexpected sentiment response: {payload!r}")

        try:
            best = max(predictions, key=lambda p: float(p.get("score", 0)))
            return best["label"]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ExternalServiceError(f"Unexpected sentiment response: {payload!r}") from e
