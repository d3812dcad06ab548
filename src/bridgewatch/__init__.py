"""
BridgeWatch
===========

Capture, view classification and health agent for a rotating border camera.

This package samples a live HLS stream on a fixed tick, classifies each
still into a camera view, keeps a rolling buffer plus the latest frame of
every view, infers whether the camera itself is down or stuck, and tracks
per-direction vehicle counts to tag traffic trends.

Components:
    - capture: ffmpeg frame grabber and blur/size pre-filter
    - classify: View classifier backends behind a single-flight gate
    - store: Ring buffer and preserved frame per view
    - scheduler: LangGraph tick pipeline and its periodic driver
    - health: Camera health state derived from rolling counters
    - selection: Deterministic frame choice for analysis and display
    - signals: Directional trend tracking
    - detection: Vehicle detector backends
    - service: CameraService, the public contract

Example:
    from bridgewatch.config import settings
    from bridgewatch.service import CameraService

    service = CameraService.from_settings(settings)
    await service.start()
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
