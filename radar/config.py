"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import os

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache
from typing import Optional


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "Signal Radar"
    debug: bool = False

    # Database (postgresql+psycopg for psycopg3; sqlite:/// also accepted)
    database_url: str = "postgresql+psycopg://localhost:5432/signal_radar"
    db_connect_timeout: int = 10  # seconds

    # LLM (no key = heuristic classification and placeholder summaries)
    llm_provider: str = "openai"
    llm_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    llm_model_classify: str = "gpt-4o-mini"
    llm_model_summary: str = "gpt-4o-mini"
    llm_timeout: float = 60.0
    llm_max_retries: int = 3

    # Feeds
    feed_cache_ttl_seconds: int = 15 * 60
    radar_chunk_size: int = 40
    feed_timeout: float = 10.0
    page_timeout: float = 15.0
    sources_file: str = "data/sources.json"

    # Scheduler
    scheduler_enabled: bool = True
    poll_interval_minutes: int = 30
    initial_poll_delay_seconds: int = 10

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        default_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
        default_url = (
            f"postgresql+psycopg://{default_user}:"
            f"{os.getenv('PGPASSWORD', '')}@"
            f"{os.getenv('PGHOST', 'localhost')}:"
            f"{os.getenv('PGPORT', '5432')}/"
            f"{os.getenv('PGDATABASE', 'signal_radar')}"
        )
        raw_url = os.getenv("DATABASE_URL", default_url)
        # Ensure psycopg3 driver if URL uses generic postgresql://
        if raw_url.startswith("postgresql://") and not raw_url.startswith("postgresql+psycopg"):
            raw_url = raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
        self.database_url = raw_url
        self.db_connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", str(self.db_connect_timeout)))

        self.llm_provider = os.getenv("LLM_PROVIDER", self.llm_provider)
        self.llm_api_key = os.getenv("LLM_API_KEY") or None
        self.llm_model = os.getenv("LLM_MODEL", self.llm_model)
        # Role-specific models; LLM_MODEL used for all if role vars unset
        legacy_model = os.getenv("LLM_MODEL")
        self.llm_model_classify = (
            os.getenv("LLM_MODEL_CLASSIFY") or legacy_model or self.llm_model_classify
        )
        self.llm_model_summary = (
            os.getenv("LLM_MODEL_SUMMARY") or legacy_model or self.llm_model_summary
        )
        self.llm_timeout = float(os.getenv("LLM_TIMEOUT", str(self.llm_timeout)))
        self.llm_max_retries = int(os.getenv("LLM_MAX_RETRIES", str(self.llm_max_retries)))

        self.feed_cache_ttl_seconds = int(
            os.getenv("FEED_CACHE_TTL_SECONDS", str(self.feed_cache_ttl_seconds))
        )
        self.radar_chunk_size = max(1, int(os.getenv("RADAR_CHUNK_SIZE", str(self.radar_chunk_size))))
        self.feed_timeout = float(os.getenv("FEED_TIMEOUT", str(self.feed_timeout)))
        self.page_timeout = float(os.getenv("PAGE_TIMEOUT", str(self.page_timeout)))
        self.sources_file = os.getenv("SOURCES_FILE", self.sources_file)

        self.scheduler_enabled = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
        self.poll_interval_minutes = int(
            os.getenv("POLL_INTERVAL_MINUTES", str(self.poll_interval_minutes))
        )
        self.initial_poll_delay_seconds = int(
            os.getenv("INITIAL_POLL_DELAY_SECONDS", str(self.initial_poll_delay_seconds))
        )
