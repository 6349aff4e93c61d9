"""GET /health, /health/datasource and /metrics."""
from __future__ import annotations

from fastapi import APIRouter, Request

from nrql_frames.governance.validator import check_health, settings_from_env

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/health/datasource")
def datasource_health(request: Request):
    """Validate settings and run the test query through the configured executor."""
    result = check_health(settings_from_env(), request.app.state.executor)
    return result.to_dict()


@router.get("/metrics")
def metrics(request: Request):
    return request.app.state.metrics.snapshot().to_dict()
