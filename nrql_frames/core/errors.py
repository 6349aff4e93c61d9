"""
Named error conditions.

Callers (health checks, the HTTP layer) branch on the exception type, so
every failure the request path can surface has its own class.  The pure
transforms (rewriter, classifier, frame builder) never raise.
"""
from __future__ import annotations


class NrqlFramesError(Exception):
    """Base class for every error raised by this package."""


class SettingsError(NrqlFramesError):
    """Datasource settings are missing or malformed."""


class QueryExecutionError(NrqlFramesError):
    """A query could not be executed."""

    default_msg = "query execution failed"

    def __init__(self, query: str = "", msg: str | None = None):
        self.query = query
        self.msg = msg or self.default_msg
        super().__init__(self.msg)

    def __str__(self) -> str:
        text = f"NRQL query execution error for '{self.query}': {self.msg}"
        if self.__cause__ is not None:
            text += f": {self.__cause__}"
        return text


class ExecutorUnavailableError(QueryExecutionError):
    default_msg = "NRDB query executor is not configured, cannot execute query"


class EmptyQueryError(QueryExecutionError):
    default_msg = "NRQL query text cannot be empty"


class InvalidAccountError(QueryExecutionError):
    default_msg = "New Relic account ID must be a positive number"


class UpstreamAuthError(QueryExecutionError):
    default_msg = "authentication with New Relic failed"


class RateLimitCancelled(NrqlFramesError):
    """The caller cancelled while waiting for a rate-limit token."""
