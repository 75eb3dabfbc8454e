"""Review comment sentiment classification."""

from .classifier import (
    HuggingFaceSentimentClassifier,
    Sentiment,
    SentimentClassifier,
    label_to_sentiment,
)

__all__ = [
    "HuggingFaceSentimentClassifier",
    "Sentiment",
    "SentimentClassifier",
    "label_to_sentiment",
]
