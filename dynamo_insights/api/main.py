"""FastAPI diagnostics surface for the stats collector.

One collector per process, built at startup from settings and shared across
requests.  Instrumented services can POST telemetry here, and operators read
aggregated stats and recommendations back.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from dynamo_insights.config import get_settings
from dynamo_insights.stats.collector import StatsCollector
from dynamo_insights.stats.models import (
    CapacityRecommendation,
    OperationRecord,
    Recommendation,
    TableStats,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class RecordResponse(BaseModel):
    """Response body for POST /operations."""

    recorded: bool


class ResetResponse(BaseModel):
    """Response body for POST /reset."""

    status: str


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str
    enabled: bool
    sample_rate: float
    buffered_operations: int


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the collector once at startup."""
    settings = get_settings()
    app.state.collector = StatsCollector(
        settings.to_stats_config(),
        pricing=settings.to_pricing_config(),
    )
    logger.info("Diagnostics API ready")
    yield
    logger.info("Shutting down diagnostics API")


app = FastAPI(title="DynamoDB Insights", lifespan=lifespan)


def _collector(request: Request) -> StatsCollector:
    collector: StatsCollector = request.app.state.collector
    return collector


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
# Collector endpoints are plain functions so FastAPI runs them in its threadpool,
# off the event loop: they take the buffer lock and analysis is CPU-bound.


@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post("/operations", response_model=RecordResponse, status_code=202)
def record_operation(record: OperationRecord, request: Request) -> RecordResponse:
    """Offer one telemetry record to the collector."""
    return RecordResponse(recorded=_collector(request).record(record))


@app.get("/stats", response_model=TableStats)
def stats(request: Request) -> TableStats:
    """Aggregated statistics by operation type and access pattern."""
    return _collector(request).get_stats()


@app.get("/recommendations", response_model=list[Recommendation])
def recommendations(request: Request) -> list[Recommendation]:
    """All detector findings, most severe first."""
    return _collector(request).get_recommendations()


@app.get("/capacity", response_model=CapacityRecommendation)
def capacity(request: Request) -> CapacityRecommendation:
    """Capacity mode advice with the traffic profile it was based on."""
    return _collector(request).suggest_capacity_mode()


@app.get("/export", response_model=list[OperationRecord])
def export(request: Request) -> list[OperationRecord]:
    """Raw buffered telemetry, in recording order."""
    return _collector(request).export()


@app.post("/reset", response_model=ResetResponse)
def reset(request: Request) -> ResetResponse:
    """Drop all buffered telemetry."""
    _collector(request).reset()
    return ResetResponse(status="ok")


@app.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    """Collector status."""
    collector = _collector(request)
    return HealthResponse(
        status="healthy",
        enabled=collector.is_enabled(),
        sample_rate=collector.config.sample_rate,
        buffered_operations=collector.get_operation_count(),
    )
