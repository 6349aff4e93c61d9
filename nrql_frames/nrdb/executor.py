"""
Query executor seam.

The engine client itself lives outside this package; anything with an
``execute(query_text, account_id) -> ResultSet`` method can be plugged in.
``execute_query`` checks the preconditions and turns failures into the named
errors callers branch on.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from nrql_frames.core.errors import (
    EmptyQueryError,
    ExecutorUnavailableError,
    InvalidAccountError,
    QueryExecutionError,
)
from nrql_frames.frames.models import ResultSet
from nrql_frames.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class QueryExecutor(Protocol):
    def execute(self, query_text: str, account_id: int) -> ResultSet:
        ...


def execute_query(
    executor: QueryExecutor | None,
    query_text: str,
    account_id: int,
) -> ResultSet:
    """Run *query_text* for *account_id* through *executor*.

    Raises
    ------
    ExecutorUnavailableError
        If no executor is configured.
    EmptyQueryError
        If the query text is empty.
    InvalidAccountError
        If the account id is not positive.
    UpstreamAuthError
        Passed through unchanged from the executor.
    QueryExecutionError
        Any other executor failure, chained as ``__cause__``.
    """
    if executor is None:
        raise ExecutorUnavailableError(query_text)
    if not query_text or not query_text.strip():
        raise EmptyQueryError(query_text)
    if account_id <= 0:
        raise InvalidAccountError(query_text)

    logger.info("Executing NRQL (%d chars) account=%d", len(query_text), account_id)
    try:
        result = executor.execute(query_text, account_id)
    except QueryExecutionError:
        raise
    except Exception as exc:
        logger.error("NRQL execution failed: %s", exc)
        raise QueryExecutionError(query_text, "error from New Relic API") from exc

    if not isinstance(result, ResultSet):
        result = ResultSet.from_payload(result or {})
    logger.info("Returned %d rows", len(result.rows))
    return result
