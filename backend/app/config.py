from pydantic_settings import BaseSettings
from functools import lru_cache

DEFAULT_CSRF_SECRET = "dev-csrf-secret-change-in-production"


class Settings(BaseSettings):
    env: str = "dev"
    database_url: str = "sqlite:///./data/dino.db"

    scheduler_enabled: bool = True
    visa_check_hour: int = 9

    ntfy_url: str = "http://localhost:8080"
    ntfy_topic: str = "dino-alerts"
    base_url: str = "http://localhost:8000"

    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60

    csrf_secret: str = DEFAULT_CSRF_SECRET
    csrf_token_ttl_seconds: int = 60 * 60 * 24

    email_confidence_threshold: float = 0.6
    email_strict_mode: bool = False

    cache_ttl_seconds: int = 300
    safe_date_search_days: int = 365

    def model_post_init(self, __context):
        if self.env == "prod" and self.database_url.startswith("sqlite"):
            raise ValueError(
                "Production requires explicit DATABASE_URL (not SQLite)"
            )
        if self.env == "prod" and self.csrf_secret == DEFAULT_CSRF_SECRET:
            raise ValueError("Production requires an explicit CSRF_SECRET")

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
