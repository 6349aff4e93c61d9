"""
Centralised application settings loaded from environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseSettings):
    # ── Datasource credentials ───────────────────────────
    newrelic_api_key: str = ""
    newrelic_account_id: int = 0

    # ── Outbound query guard ─────────────────────────────
    rate_limit_per_second: float = 10.0
    rate_limit_capacity: float = 20.0
    rate_limit_wait_seconds: float = 30.0  # HTTP requests give up after this
    metrics_enabled: bool = True
    health_check_query: str = "SELECT count(*) FROM Transaction SINCE 1 hour ago LIMIT 1"

    # ── App ──────────────────────────────────────────────
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
