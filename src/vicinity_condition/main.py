"""
Vicinity Condition Service
==========================

FastAPI host exposing the vicinity condition to a remote control loop.

The condition is created at startup (subscribing to the frame stream)
and closed at shutdown. Each POST /tick runs one bounded evaluation.

Endpoints:
    GET  /         - Service information
    GET  /health   - Liveness probe (is process alive?)
    GET  /ready    - Readiness probe (has a frame arrived?)
    GET  /metrics  - Slot, subscription, classifier and evaluation counters
    POST /tick     - Evaluate the vicinity once
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from vicinity_condition.config import settings
from vicinity_condition.condition import VicinityCondition, create_vicinity_condition


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_condition: Optional[VicinityCondition] = None
_startup_time: float = 0.0


def get_condition() -> Optional[VicinityCondition]:
    return _condition


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _condition, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting {settings.name} {settings.version}")
    logger.info(
        f"Frame source: {settings.condition.frame_source}, "
        f"classifier backend: {settings.classifier.backend}"
    )

    _condition = create_vicinity_condition(settings)

    yield

    logger.info("Shutting down gracefully...")
    if _condition is not None:
        await asyncio.to_thread(_condition.close)
    _condition = None
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="VicinityCondition",
    description="Perception-gated vicinity check for robot control loops",
    version=settings.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "VicinityCondition",
        "version": settings.version,
        "name": settings.name,
        "status": "running",
        "classifier_backend": settings.classifier.backend,
        "frame_source": settings.condition.frame_source,
        "response_timeout_ms": settings.condition.response_timeout_ms,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - can a tick classify a real frame?

    Returns 200 once at least one frame has been published.
    Returns 503 otherwise (a tick would report NO_FRAME).
    """
    condition = get_condition()
    has_frame = condition is not None and condition.slot.snapshot() is not None
    stream_connected = condition is not None and condition.subscription.source.connected

    body = {
        "stream_connected": stream_connected,
        "has_frame": has_frame,
    }
    if has_frame:
        return JSONResponse({"status": "ready", **body})
    return JSONResponse({"status": "not_ready", **body}, status_code=503)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    condition = get_condition()
    condition_metrics = condition.get_metrics() if condition else {}

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "classifier_backend": settings.classifier.backend,
        **condition_metrics,
    })


@app.post("/tick")
async def tick() -> JSONResponse:
    """
    Evaluate the vicinity once.

    Runs the blocking evaluation off the event loop. The response always
    carries an Evaluation; status is SUCCESS only for an explicit clear.
    """
    condition = get_condition()
    if condition is None:
        return JSONResponse({"error": "Condition not initialized"}, status_code=503)

    evaluation = await asyncio.to_thread(condition.evaluate)
    return JSONResponse(evaluation.model_dump(mode="json"))


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Run the service with uvicorn."""
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "vicinity_condition.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
