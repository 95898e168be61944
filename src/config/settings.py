import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application configuration settings."""

    # Environment
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    TESTING = _env_bool("TESTING", "false")

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", None)
    DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))
    DB_COMMAND_TIMEOUT = int(os.getenv("DB_COMMAND_TIMEOUT", "60"))

    # Firebase (optional caller identity)
    GOOGLE_APPLICATION_CREDENTIALS = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", None)

    # Rate Limiting
    RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", "true")
    RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")

    # Recommendations
    RECOMMENDATION_CACHE_BACKEND = os.getenv("RECOMMENDATION_CACHE_BACKEND", "database")
    RECOMMENDATION_DEFAULT_LIMIT = int(os.getenv("RECOMMENDATION_DEFAULT_LIMIT", "6"))
    RECOMMENDATION_BOUGHT_TOGETHER_LIMIT = int(
        os.getenv("RECOMMENDATION_BOUGHT_TOGETHER_LIMIT", "4")
    )
    RECOMMENDATION_MAX_LIMIT = int(os.getenv("RECOMMENDATION_MAX_LIMIT", "50"))

    # Retention
    INTERACTION_RETENTION_DAYS = int(os.getenv("INTERACTION_RETENTION_DAYS", "90"))
    CLICK_RETENTION_DAYS = int(os.getenv("CLICK_RETENTION_DAYS", "30"))


settings = Settings()
