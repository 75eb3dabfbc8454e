"""Unit tests for the Hugging Face sentiment classifier client."""

from unittest.mock import Mock

import pytest
import requests

from marketplace.sentiment import HuggingFaceSentimentClassifier, Sentiment, label_to_sentiment
from marketplace.shared.errors import ExternalServiceError


@pytest.fixture
def mock_session():
    """requests.Session stand-in returning a successful response."""
    session = Mock()
    response = Mock()
    response.raise_for_status.return_value = None
    session.post.return_value = response
    return session


@pytest.fixture
def classifier(mock_session):
    """Classifier with an API key and the mocked session."""
    return HuggingFaceSentimentClassifier(api_key="hf_test", timeout=2.5, session=mock_session)


class TestLabelMapping:
    """Test star label to sentiment mapping."""

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("5 stars", Sentiment.POSITIVE),
            ("4 stars", Sentiment.POSITIVE),
            ("3 stars", Sentiment.NEUTRAL),
            ("2 stars", Sentiment.NEGATIVE),
            ("1 star", Sentiment.NEGATIVE),
        ],
    )
    def test_star_labels(self, label, expected):
        assert label_to_sentiment(label) is expected

    def test_unknown_label_raises(self):
        with pytest.raises(ExternalServiceError):
            label_to_sentiment("LABEL_0")


class TestClassify:
    """Test classification requests and fallbacks."""

    def test_nested_response_uses_top_label(self, classifier, mock_session):
        mock_session.post.return_value.json.return_value = [
            [
                {"label": "1 star", "score": 0.05},
                {"label": "5 stars", "score": 0.80},
                {"label": "4 stars", "score": 0.15},
            ]
        ]

        result = classifier.classify("Great work, very tidy")

        assert result is Sentiment.POSITIVE
        args, kwargs = mock_session.post.call_args
        assert args[0].endswith("/nlptown/bert-base-multilingual-uncased-sentiment")
        assert kwargs["json"] == {"inputs": "Great work, very tidy"}
        assert kwargs["headers"]["Authorization"] == "Bearer hf_test"
        assert kwargs["timeout"] == 2.5

    def test_flat_response(self, classifier, mock_session):
        mock_session.post.return_value.json.return_value = [
            {"label": "2 stars", "score": 0.7},
            {"label": "3 stars", "score": 0.3},
        ]

        assert classifier.classify("Arrived late") is Sentiment.NEGATIVE

    def test_empty_text_is_neutral_without_request(self, classifier, mock_session):
        assert classifier.classify("   ") is Sentiment.NEUTRAL
        assert classifier.classify(None) is Sentiment.NEUTRAL
        mock_session.post.assert_not_called()

    def test_missing_api_key_is_neutral_without_request(self, mock_session):
        classifier = HuggingFaceSentimentClassifier(api_key="", session=mock_session)

        assert classifier.classify("Excellent") is Sentiment.NEUTRAL
        mock_session.post.assert_not_called()

    def test_timeout_falls_back_to_neutral(self, classifier, mock_session):
        mock_session.post.side_effect = requests.exceptions.Timeout("read timed out")

        assert classifier.classify("Excellent") is Sentiment.NEUTRAL

    def test_http_error_falls_back_to_neutral(self, classifier, mock_session):
        mock_session.post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError(
            "503 Server Error"
        )

        assert classifier.classify("Excellent") is Sentiment.NEUTRAL

    def test_invalid_json_falls_back_to_neutral(self, classifier, mock_session):
        mock_session.post.return_value.json.side_effect = ValueError("No JSON")

        assert classifier.classify("Excellent") is Sentiment.NEUTRAL

    def test_unexpected_payload_falls_back_to_neutral(self, classifier, mock_session):
        mock_session.post.return_value.json.return_value = {"error": "Model is loading"}

        assert classifier.classify("Excellent") is Sentiment.NEUTRAL
