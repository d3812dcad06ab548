"""
BridgeWatch Main Application
============================

FastAPI entry point for the border camera agent.

The process owns one CameraService: a background scheduler captures and
classifies stills while these endpoints read the results.

Endpoints:
    GET  /                  - Service information
    GET  /health            - Liveness probe (is process alive?)
    GET  /ready             - Readiness probe (scheduler running?)
    GET  /metrics           - Component metrics
    POST /capture           - Capture a frame now (out of band)
    GET  /frames/analysis   - Frames selected for downstream analysis
    GET  /frames/display    - One frame per view for display
    GET  /camera/health     - Camera health report with advisory
    GET  /trend             - Directional trend summary
    POST /trend/readings    - Record a detector reading
    POST /trend/refresh     - Run the vehicle detector on the top frame
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from bridgewatch.capture.frame import Frame
from bridgewatch.config import settings
from bridgewatch.models.output import (
    DetectionReadingRequest,
    FramePayload,
    FrameSetPayload,
)
from bridgewatch.service import CameraService


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_service: Optional[CameraService] = None
_startup_time: float = 0.0


def get_service() -> Optional[CameraService]:
    return _service


def _frame_set(frames: List[Frame], include_images: bool) -> JSONResponse:
    service = get_service()
    payload = FrameSetPayload(
        frames=[FramePayload.from_frame(f, include_image=include_images) for f in frames],
        has_data=bool(frames),
        total_in_buffer=len(service.store) if service else 0,
    )
    return JSONResponse(payload.model_dump(mode="json"))


def _not_ready() -> JSONResponse:
    return JSONResponse({"error": "Service not initialized"}, status_code=503)


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _service, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting {settings.service.name} {settings.service.version}")
    logger.info(f"Stream URL: {settings.stream.url}")
    logger.info(
        f"Backends: classifier={settings.classifier.backend}, "
        f"detector={settings.detector.backend}"
    )

    _service = CameraService.from_settings(settings)
    await _service.start()

    yield

    logger.info("Shutting down gracefully...")
    await _service.stop()
    _service = None
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="BridgeWatch",
    description="Border camera capture, view classification and health agent",
    version=settings.service.version,
    lifespan=lifespan,
)


# =============================================================================
# Probes
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": settings.service.name,
        "version": settings.service.version,
        "status": "running",
        "classifier_backend": settings.classifier.backend,
        "detector_backend": settings.detector.backend,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running. Camera health lives
    under /camera/health.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the capture scheduler running?

    Returns 503 until the service has started.
    """
    service = get_service()
    if service is not None and service.is_running:
        return JSONResponse({
            "status": "ready",
            "frames_in_buffer": len(service.store),
        })
    return JSONResponse({"status": "not_ready"}, status_code=503)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    service = get_service()
    if service is None:
        return _not_ready()
    return JSONResponse(service.get_metrics())


# =============================================================================
# Frames
# =============================================================================

@app.post("/capture")
async def capture(include_image: bool = True) -> JSONResponse:
    """
    Capture a frame now.

    Returns the new frame, or the latest cached one while another capture
    is running or after a failure. 503 if no frame exists at all.
    """
    service = get_service()
    if service is None:
        return _not_ready()

    frame = await service.trigger_capture()
    if frame is None:
        return JSONResponse({"error": "No camera data available"}, status_code=503)
    return JSONResponse(
        FramePayload.from_frame(frame, include_image=include_image).model_dump(mode="json")
    )


@app.get("/frames/analysis")
async def frames_for_analysis(include_images: bool = True) -> JSONResponse:
    """Frames for downstream analysis; ``has_data`` false means no data."""
    service = get_service()
    if service is None:
        return _not_ready()
    return _frame_set(service.get_frames_for_analysis(), include_images)


@app.get("/frames/display")
async def frames_for_display(include_images: bool = True) -> JSONResponse:
    """Latest frame per view, bridge first."""
    service = get_service()
    if service is None:
        return _not_ready()
    return _frame_set(service.get_display_frames(), include_images)


# =============================================================================
# Camera Health
# =============================================================================

@app.get("/camera/health")
async def camera_health() -> JSONResponse:
    service = get_service()
    if service is None:
        return _not_ready()
    return JSONResponse(service.get_health().model_dump(mode="json"))


# =============================================================================
# Trend
# =============================================================================

@app.get("/trend")
async def trend() -> JSONResponse:
    service = get_service()
    if service is None:
        return _not_ready()
    return JSONResponse(service.get_trend_summary().model_dump(mode="json"))


@app.post("/trend/readings")
async def record_reading(body: DetectionReadingRequest) -> JSONResponse:
    """Record one per-direction count reading and return the new summary."""
    service = get_service()
    if service is None:
        return _not_ready()
    if service.record_detection_reading(body.counts, body.timestamp) is None:
        return JSONResponse(
            {"error": "Reading rejected: older than the newest reading"},
            status_code=409,
        )
    return JSONResponse(service.get_trend_summary().model_dump(mode="json"))


@app.post("/trend/refresh")
async def refresh_trend() -> JSONResponse:
    """Run the configured vehicle detector on the top analysis frame."""
    service = get_service()
    if service is None:
        return _not_ready()

    reading = await service.refresh_trend()
    summary = service.get_trend_summary().model_dump(mode="json")
    return JSONResponse({
        "recorded": reading is not None,
        "counts": reading.counts if reading is not None else None,
        "summary": summary,
    })


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "bridgewatch.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
