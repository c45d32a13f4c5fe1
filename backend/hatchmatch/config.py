"""Application configuration using Pydantic Settings."""

import os
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Resolve config: prefer system config (installed), fall back to repo .env (dev)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_SYSTEM_CONF = Path("/etc/hatchmatch/hatchmatch.conf")
_ENV_FILE = _SYSTEM_CONF if _SYSTEM_CONF.exists() else _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Database
    db_path: str = "hatchmatch.db"

    @model_validator(mode="after")
    def _resolve_db_path(self) -> "Settings":
        """Make db_path absolute: relative to /var/lib/hatchmatch if installed, else project root."""
        p = Path(self.db_path)
        if not p.is_absolute():
            if _ENV_FILE == _SYSTEM_CONF:
                self.db_path = str(Path("/var/lib/hatchmatch") / p)
            else:
                self.db_path = str(_PROJECT_ROOT / p)
        return self

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    # Oracle (Anthropic)
    anthropic_api_key: str = ""
    oracle_model: str = "claude-haiku-4-5-20251001"
    oracle_max_tokens: int = 1024
    oracle_timeout_sec: float = 30.0

    @property
    def resolved_api_key(self) -> str:
        """Prefixed setting first, then the bare ANTHROPIC_API_KEY variable."""
        return self.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY", "")

    # Scraping
    http_timeout_sec: float = 15.0
    url_validation_timeout_sec: float = 10.0
    user_agent: str = "HatchMatch Fishing App/1.0 (contact@hatchmatch.app)"
    link_min_score: int = 5
    link_max_candidates: int = 3
    min_content_chars: int = 300
    max_report_chars: int = 5000

    # Reports and caches
    report_cache_days: int = 3
    max_report_age_days: int = 14
    max_aggregated_flies: int = 8
    recommendation_cache_hours: int = 12
    max_recommendations: int = 5

    # Weather
    weather_enabled: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_prefix": "HATCHMATCH_", "env_file": str(_ENV_FILE), "extra": "ignore"}


settings = Settings()
