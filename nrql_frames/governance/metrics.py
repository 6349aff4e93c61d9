"""
Query metrics sink.

Counters for query count, error count, cumulative / average latency and
in-flight queries.  A sink instance is passed into the request path; there
is no module-level state.  ``NullMetrics`` keeps the same interface when
metrics are disabled.
"""
from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Generator


@dataclass(frozen=True)
class MetricsSnapshot:
    query_count: int = 0
    error_count: int = 0
    total_query_seconds: float = 0.0
    average_query_seconds: float = 0.0
    last_query_at: datetime | None = None
    concurrent_queries: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_query_at"] = self.last_query_at.isoformat() if self.last_query_at else None
        return data


class QueryMetrics:
    """Thread-safe counters updated at request start / end."""

    def __init__(self):
        self._lock = threading.Lock()
        self._reset_unlocked()

    def _reset_unlocked(self) -> None:
        self._query_count = 0
        self._error_count = 0
        self._total_seconds = 0.0
        self._last_query_at: datetime | None = None
        self._concurrent = 0

    def query_started(self) -> None:
        with self._lock:
            self._concurrent += 1

    def query_finished(self, duration_s: float, error: bool = False) -> None:
        with self._lock:
            self._concurrent -= 1
            self._query_count += 1
            if error:
                self._error_count += 1
            self._total_seconds += duration_s
            self._last_query_at = datetime.now(timezone.utc)

    @contextmanager
    def track(self) -> Generator[None, None, None]:
        """Count one query around the ``with`` body; exceptions count as errors."""
        self.query_started()
        start = time.perf_counter()
        failed = False
        try:
            yield
        except BaseException:
            failed = True
            raise
        finally:
            self.query_finished(time.perf_counter() - start, error=failed)

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            avg = self._total_seconds / self._query_count if self._query_count else 0.0
            return MetricsSnapshot(
                query_count=self._query_count,
                error_count=self._error_count,
                total_query_seconds=self._total_seconds,
                average_query_seconds=avg,
                last_query_at=self._last_query_at,
                concurrent_queries=self._concurrent,
            )

    def reset(self) -> None:
        with self._lock:
            self._reset_unlocked()


class NullMetrics(QueryMetrics):
    """Drop-in sink that records nothing."""

    def query_started(self) -> None:
        pass

    def query_finished(self, duration_s: float, error: bool = False) -> None:
        pass
