import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
repo_root = Path(__file__).resolve().parents[1]
environment = os.getenv("ENVIRONMENT", "development")
env_file = repo_root / f".env.{environment}"
if env_file.exists():
    load_dotenv(env_file, override=True)
else:
    env_path = repo_root / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=True)
load_dotenv()


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    return float(value) if value else default


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    return int(value) if value else default


class Config:
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY") or "dev-secret-key-change-in-production"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # JWT configuration
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=_int_env("JWT_ACCESS_TOKEN_EXPIRES_DAYS", 7))
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_HEADER_NAME = "Authorization"
    JWT_HEADER_TYPE = "Bearer"

    # CORS configuration: allowed frontend origin(s) via env (comma-separated)
    _cors_env = os.getenv("CORS_ORIGINS", "").strip()
    CORS_ORIGINS = (
        [o.strip() for o in _cors_env.split(",") if o.strip()]
        if _cors_env
        else ["http://localhost:5173", "http://localhost:3000"]
    )

    # Review sentiment classifier (Hugging Face inference API)
    HUGGING_FACE_API_KEY = os.getenv("HUGGING_FACE_API_KEY", "")
    SENTIMENT_MODEL = os.getenv(
        "SENTIMENT_MODEL", "nlptown/bert-base-multilingual-uncased-sentiment"
    )
    SENTIMENT_TIMEOUT_SECONDS = _float_env("SENTIMENT_TIMEOUT_SECONDS", 5.0)

    # Matching
    DEFAULT_SEARCH_RADIUS_KM = _float_env("DEFAULT_SEARCH_RADIUS_KM", 50.0)
    FARMER_SEARCH_RADIUS_KM = _float_env("FARMER_SEARCH_RADIUS_KM", 100.0)
    PROVIDER_RESULT_LIMIT = _int_env("PROVIDER_RESULT_LIMIT", 20)
    RANKING_CONFIG_PATH = os.getenv("RANKING_CONFIG_PATH") or None
    RANKING_DISTANCE_WEIGHT = _float_env("RANKING_DISTANCE_WEIGHT", 0.0)

    # Identical errors sent to the same client within this window are flagged as repeats
    ERROR_REPEAT_WINDOW_SECONDS = _float_env("ERROR_REPEAT_WINDOW_SECONDS", 30.0)
