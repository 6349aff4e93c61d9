"""POST /query, /query/rewrite and /query/frames."""
from __future__ import annotations

import threading
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from fastapi import APIRouter, HTTPException, Request

from nrql_frames.core.errors import (
    EmptyQueryError,
    ExecutorUnavailableError,
    InvalidAccountError,
    QueryExecutionError,
    RateLimitCancelled,
    UpstreamAuthError,
)
from nrql_frames.frames.builder import build
from nrql_frames.frames.classifier import classify
from nrql_frames.frames.models import ResultSet
from nrql_frames.query.interval import bucket_width
from nrql_frames.query.time_window import TimeWindow
from nrql_frames.service import QueryRequest, QueryService, prepare_query
from nrql_frames.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Most specific first: subclasses before QueryExecutionError.
_ERROR_STATUS: tuple[tuple[type[Exception], int], ...] = (
    (ExecutorUnavailableError, 503),
    (EmptyQueryError, 400),
    (InvalidAccountError, 400),
    (UpstreamAuthError, 401),
    (RateLimitCancelled, 429),
    (QueryExecutionError, 502),
)


class RewriteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query_text: str = Field(..., alias="queryText")
    window: TimeWindow


class RewriteResponse(BaseModel):
    query: str
    interval: str


class ResultPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rows: list[dict[str, Any]] = Field(default_factory=list)
    facet_names: list[str] = Field(default_factory=list, alias="facetNames")


class FramesRequest(BaseModel):
    result: ResultPayload
    window: TimeWindow


class FramesResponse(BaseModel):
    shape: str
    frames: list[dict[str, Any]]


class RunRequest(QueryRequest):
    window: TimeWindow


@router.post("/rewrite", response_model=RewriteResponse)
def rewrite_endpoint(req: RewriteRequest):
    """Normalize and window the query text without executing it."""
    return RewriteResponse(
        query=prepare_query(req.query_text, req.window),
        interval=bucket_width(req.window),
    )


@router.post("/frames", response_model=FramesResponse)
def frames_endpoint(req: FramesRequest):
    """Classify already-fetched rows and build their frames."""
    rs = ResultSet(rows=req.result.rows, facet_names=req.result.facet_names)
    shape = classify(rs)
    frames = build(rs, shape, req.window)
    return FramesResponse(shape=shape.value, frames=[f.to_dict() for f in frames])


@router.post("")
def run_endpoint(req: RunRequest, request: Request):
    """Full pipeline against the configured executor."""
    state = request.app.state
    service = QueryService(
        executor=state.executor,
        rate_limiter=state.rate_limiter,
        metrics=state.metrics,
    )
    # A token wait never outlives the request's budget.
    cancel = threading.Event()
    timer = threading.Timer(state.rate_limit_wait_seconds, cancel.set)
    timer.daemon = True
    timer.start()
    try:
        result = service.run(req, req.window, cancel=cancel)
    except (QueryExecutionError, RateLimitCancelled) as exc:
        status = next(code for cls, code in _ERROR_STATUS if isinstance(exc, cls))
        logger.error("Query %s failed (%d): %s", req.ref_id, status, exc)
        raise HTTPException(status_code=status, detail=str(exc))
    finally:
        timer.cancel()
    return result.to_dict()
