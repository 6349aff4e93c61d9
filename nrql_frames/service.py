"""
Query service -- orchestrates normalize -> rewrite -> rate limit -> execute -> classify -> frame.

Errors from the executor seam propagate as the named exceptions in
``nrql_frames.core.errors``; the transforms themselves never fail.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from nrql_frames.core.config import get_settings
from nrql_frames.core.errors import EmptyQueryError
from nrql_frames.frames.builder import build
from nrql_frames.frames.classifier import ResultShape, classify
from nrql_frames.frames.models import FrameSet
from nrql_frames.governance.metrics import NullMetrics, QueryMetrics
from nrql_frames.governance.rate_limiter import RateLimiter
from nrql_frames.governance.validator import DatasourceSettings, settings_from_env
from nrql_frames.nrdb.executor import QueryExecutor, execute_query
from nrql_frames.query.normalizer import normalize_query
from nrql_frames.query.time_rewriter import rewrite
from nrql_frames.query.time_window import TimeWindow
from nrql_frames.core.logging import get_logger

logger = get_logger(__name__)


class QueryRequest(BaseModel):
    """A single panel query."""

    model_config = {"populate_by_name": True}

    query_text: str = Field(..., alias="queryText", description="NRQL as typed by the user")
    account_id: int = Field(0, alias="accountID", description="Overrides the datasource account when > 0")
    use_time_window: bool = Field(True, alias="useTimeWindow", description="Rewrite the query to honor the window")
    ref_id: str = Field("A", alias="refId")


@dataclass
class QueryResult:
    ref_id: str
    query: str
    shape: ResultShape
    frames: FrameSet = field(default_factory=list)
    latency_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "refId": self.ref_id,
            "query": self.query,
            "shape": self.shape.value,
            "frames": [f.to_dict() for f in self.frames],
            "latencyMs": self.latency_ms,
        }


def prepare_query(query_text: str, window: TimeWindow, use_time_window: bool = True) -> str:
    """Normalize and (optionally) window the query text."""
    text = normalize_query(query_text)
    return rewrite(text, window) if use_time_window else text


def build_rate_limiter() -> RateLimiter:
    s = get_settings()
    return RateLimiter(rate=s.rate_limit_per_second, capacity=s.rate_limit_capacity)


def build_metrics() -> QueryMetrics:
    return QueryMetrics() if get_settings().metrics_enabled else NullMetrics()


class QueryService:
    """Runs panel queries against an injected executor.

    Parameters
    ----------
    executor : QueryExecutor | None
        Upstream engine client.  ``None`` makes every run fail with
        ``ExecutorUnavailableError``.
    settings : DatasourceSettings, optional
        Credentials; defaults to the environment.
    rate_limiter : RateLimiter, optional
        Gate in front of the executor.  None disables limiting.
    metrics : QueryMetrics, optional
        Metrics sink.  None records nothing.
    """

    def __init__(
        self,
        executor: QueryExecutor | None,
        settings: DatasourceSettings | None = None,
        rate_limiter: RateLimiter | None = None,
        metrics: QueryMetrics | None = None,
    ):
        self.executor = executor
        self.settings = settings or settings_from_env()
        self.rate_limiter = rate_limiter
        self.metrics = metrics or NullMetrics()

    def run(
        self,
        request: QueryRequest,
        window: TimeWindow,
        cancel: threading.Event | None = None,
    ) -> QueryResult:
        t0 = time.perf_counter()
        logger.info("QueryService.run | refId=%s | useTimeWindow=%s", request.ref_id, request.use_time_window)

        with self.metrics.track():
            if not request.query_text or not request.query_text.strip():
                raise EmptyQueryError(request.query_text)

            query = prepare_query(request.query_text, window, request.use_time_window)
            account_id = request.account_id if request.account_id > 0 else self.settings.account_id

            if self.rate_limiter is not None:
                self.rate_limiter.acquire(cancel)

            rs = execute_query(self.executor, query, account_id)
            shape = classify(rs)
            frames = build(rs, shape, window)

        latency = int((time.perf_counter() - t0) * 1000)
        return QueryResult(
            ref_id=request.ref_id,
            query=query,
            shape=shape,
            frames=frames,
            latency_ms=latency,
        )
