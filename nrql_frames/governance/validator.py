"""
Datasource settings validation and health check.

Checks performed by ``check_health``:
  1. An executor is configured
  2. Settings hold an API key and a positive account id
  3. A small test query runs against the account
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from nrql_frames.core.config import get_settings
from nrql_frames.core.errors import QueryExecutionError, SettingsError, UpstreamAuthError
from nrql_frames.nrdb.executor import QueryExecutor, execute_query
from nrql_frames.core.logging import get_logger

logger = get_logger(__name__)

HEALTH_OK = "ok"
HEALTH_ERROR = "error"


class DatasourceSettings(BaseModel):
    """Credentials for the upstream engine."""

    api_key: str = Field("", description="User API key")
    account_id: int = Field(0, description="Default account to query")


@dataclass
class HealthResult:
    status: str
    message: str

    @property
    def ok(self) -> bool:
        return self.status == HEALTH_OK

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "message": self.message}


def load_datasource_settings(secure: dict[str, str]) -> DatasourceSettings:
    """Build settings from a decrypted secure-data mapping.

    Raises
    ------
    SettingsError
        If the API key or account id is missing, or the id is not an integer.
    """
    api_key = (secure.get("apiKey") or "").strip()
    if not api_key:
        raise SettingsError("Enter New Relic API key.")

    raw_id = str(secure.get("accountID") or "").strip()
    if not raw_id:
        raise SettingsError("Enter an account ID. This must be a valid, positive number.")

    try:
        account_id = int(raw_id)
    except ValueError as exc:
        raise SettingsError(f"could not convert accountID '{raw_id}' to int") from exc

    return DatasourceSettings(api_key=api_key, account_id=account_id)


def settings_from_env() -> DatasourceSettings:
    s = get_settings()
    return DatasourceSettings(api_key=s.newrelic_api_key, account_id=s.newrelic_account_id)


def validate_settings(settings: DatasourceSettings | None) -> list[str]:
    """Return a list of settings errors (empty list = valid)."""
    if settings is None:
        return ["Datasource settings cannot be empty."]
    errors: list[str] = []
    if not settings.api_key:
        errors.append("API key cannot be empty.")
    if settings.account_id <= 0:
        errors.append("Account ID must be a positive number.")
    return errors


def check_health(
    settings: DatasourceSettings | None,
    executor: QueryExecutor | None,
    query: str | None = None,
) -> HealthResult:
    """Validate settings and run a test query through *executor*."""
    if executor is None:
        return HealthResult(HEALTH_ERROR, "Query executor is not initialized for health check.")

    errors = validate_settings(settings)
    if errors:
        logger.warning("Health check: invalid settings %s", errors)
        return HealthResult(HEALTH_ERROR, "Datasource configuration is invalid: " + " ".join(errors))

    query = query or get_settings().health_check_query
    try:
        execute_query(executor, query, settings.account_id)
    except UpstreamAuthError as exc:
        logger.warning("Health check: authentication failed: %s", exc)
        return HealthResult(HEALTH_ERROR, "Authentication failed. Check the API key.")
    except QueryExecutionError as exc:
        logger.warning("Health check: test query failed: %s", exc)
        return HealthResult(HEALTH_ERROR, f"Test query failed: {exc}")

    logger.info("Health check passed account=%d", settings.account_id)
    return HealthResult(HEALTH_OK, "Successfully connected to New Relic.")
