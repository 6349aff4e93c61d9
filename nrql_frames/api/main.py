"""
FastAPI application entry-point.
"""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nrql_frames.api.routers import health, query
from nrql_frames.core.config import get_settings
from nrql_frames.service import build_metrics, build_rate_limiter

app = FastAPI(
    title="NRQL Frames",
    version="0.1.0",
    description="Time-windowed NRQL rewriting and typed result frames",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# The engine client is plugged in by the host process.
app.state.executor = None
app.state.rate_limiter = build_rate_limiter()
app.state.metrics = build_metrics()
app.state.rate_limit_wait_seconds = get_settings().rate_limit_wait_seconds

app.include_router(query.router, prefix="/query", tags=["Query"])
app.include_router(health.router, tags=["Health"])
