"""Configuration management using pydantic-settings."""
from typing import Optional

from pydantic_settings import BaseSettings


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Scrape target
    search_query: str = "soulcity"
    max_results: int = 50
    youtube_base_url: str = "https://www.youtube.com"
    user_agent: str = DEFAULT_USER_AGENT

    # Background schedule
    background_jobs_enabled: bool = True
    refresh_interval_seconds: float = 5 * 60
    drain_check_interval_seconds: float = 10
    drain_item_delay_seconds: float = 1.0

    # External calls
    navigation_timeout_seconds: float = 5.0
    session_acquire_attempts: int = 2

    # Cache settings (0 = never expires)
    live_items_ttl_seconds: int = 0
    stale_items_ttl_seconds: int = 0
    avatar_ttl_seconds: int = 24 * 60 * 60
    subscriber_ttl_seconds: int = 30 * 60

    # Cold start: serve empty until the first refresh, or fetch inline
    cold_start_inline_fetch: bool = False
    cold_start_timeout_seconds: float = 30.0

    # Rate limiting (per client, on /api)
    requests_per_minute: int = 10

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: Optional[str] = None

    @property
    def allowed_origins(self) -> list:
        """Parse CORS origins from comma-separated string; empty means any."""
        if not self.cors_origins:
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
