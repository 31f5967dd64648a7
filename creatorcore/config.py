from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load env values for components that read os.environ directly (e.g., the Temporal worker).
_backend_root = Path(__file__).resolve().parents[1]
load_dotenv(_backend_root.parent / ".env", override=False)
load_dotenv(_backend_root / ".env", override=True)


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"

    DATABASE_URL: str = "sqlite:///./creatorcore.db"
    CLERK_JWT_ISSUER: str
    CLERK_JWKS_URL: str
    CLERK_AUDIENCE: str
    CRON_SECRET: str | None = None

    TEMPORAL_ADDRESS: str = "localhost:7233"
    TEMPORAL_NAMESPACE: str = "default"
    TEMPORAL_TASK_QUEUE: str = "creatorcore"

    # Comma separated.
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    RECOMMENDATIONS_ENABLED: bool = True

    BRAVE_SEARCH_API_KEY: str | None = None
    BRAVE_SEARCH_URL: str = "https://api.search.brave.com/res/v1/web/search"

    # Heuristic genre scoring cutoffs.
    GENRE_HIGH_SCORE: int = 3
    GENRE_MEDIUM_SCORE: int = 2
    GENRE_LOW_SCORE: int = 1

    GENRE_BATCH_LIMIT: int = 500
    GENRE_MAX_SEARCH_CALLS: int = 200
    GENRE_SEARCH_TIMEOUT_SECONDS: float = 10.0

    RECOMMENDATION_TIMEOUT_SECONDS: float = 20.0
    RECOMMENDATION_DEFAULT_LIMIT: int = 25
    RECOMMENDATION_MAX_LIMIT: int = 100
    RECOMMENDATION_POOL_LIMIT: int = 300
    AUTO_SHORTLIST_THRESHOLD: float = 0.82
    FEEDBACK_WEIGHT: float = 0.1
    COOLING_SUCCESS_RATE: float = 0.35
    COOLING_MIN_POSTS: int = 5

    VIEW_CACHE_TTL_SECONDS: int = 45
    VIEW_CACHE_MAX_STALE_SECONDS: int = 300

    @field_validator("GENRE_BATCH_LIMIT", "GENRE_MAX_SEARCH_CALLS", "RECOMMENDATION_MAX_LIMIT")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
