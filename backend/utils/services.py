import os

from marketplace.auth import AuthService, UserService
from marketplace.matching import MatchingService
from marketplace.ranking import PriorityScorer
from marketplace.reviews import ReviewService
from marketplace.sentiment import HuggingFaceSentimentClassifier
from marketplace.shared import PostgreSQLDatabase
from marketplace.tasks import TaskService

from backend.config import Config


def build_db_connection_string() -> str:
    """
    Build PostgreSQL connection string from environment variables.

    Checks DATABASE_URL first, then falls back to individual POSTGRES_* variables.

    Returns:
        PostgreSQL connection string
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    db = os.getenv("POSTGRES_DB", "marketplace_db")
    ssl_mode = os.getenv("POSTGRES_SSL_MODE", "")

    conn_str = f"postgresql://{user}:{password}@{host}:{port}/{db}"
    if ssl_mode:
        conn_str += f"?sslmode={ssl_mode}"
    return conn_str


def get_database() -> PostgreSQLDatabase:
    """Get a PostgreSQLDatabase for the configured connection string."""
    return PostgreSQLDatabase(connection_string=build_db_connection_string())


def get_user_service() -> UserService:
    """
    Get UserService instance with database connection.

    Returns:
        UserService instance
    """
    return UserService(database=get_database())


def get_auth_service() -> AuthService:
    """
    Get AuthService instance with database connection.

    Returns:
        AuthService instance
    """
    return AuthService(user_service=get_user_service())


def get_task_service() -> TaskService:
    """
    Get TaskService instance with database connection.

    Returns:
        TaskService instance
    """
    return TaskService(database=get_database())


def get_sentiment_classifier() -> HuggingFaceSentimentClassifier:
    """Get the review sentiment classifier configured from the environment."""
    return HuggingFaceSentimentClassifier(
        api_key=Config.HUGGING_FACE_API_KEY,
        model=Config.SENTIMENT_MODEL,
        timeout=Config.SENTIMENT_TIMEOUT_SECONDS,
    )


def get_review_service() -> ReviewService:
    """
    Get ReviewService instance with database connection and sentiment classifier.

    Returns:
        ReviewService instance
    """
    return ReviewService(database=get_database(), classifier=get_sentiment_classifier())


def get_priority_scorer() -> PriorityScorer:
    """Get the provider PriorityScorer with the configured weights."""
    return PriorityScorer(
        config_path=Config.RANKING_CONFIG_PATH,
        distance_weight=Config.RANKING_DISTANCE_WEIGHT,
    )


def get_matching_service() -> MatchingService:
    """
    Get MatchingService instance wired to the scorer and review stats.

    Returns:
        MatchingService instance
    """
    database = get_database()
    return MatchingService(
        database=database,
        scorer=get_priority_scorer(),
        review_service=ReviewService(database=database, classifier=get_sentiment_classifier()),
        default_radius_km=Config.DEFAULT_SEARCH_RADIUS_KM,
        farmer_radius_km=Config.FARMER_SEARCH_RADIUS_KM,
        limit=Config.PROVIDER_RESULT_LIMIT,
    )
