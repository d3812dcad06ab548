"""
Data Models
===========

Shared types for BridgeWatch.

Models:
    View:
        - ViewCategory: Camera view a still is classified into
        - ANALYSIS_PRIORITY: Fixed category order for frame selection

    Health:
        - HealthStatus, CameraHealthState: Derived camera health
        - HealthReport: User-facing report with advisory

    Trend:
        - TrendReading: One detector snapshot
        - TrendSummary, TrendDirection, FlowSpeed: Derived trend tags

    Reason codes:
        - TickReason: Outcome of one scheduler tick

Boundary payloads live in ``bridgewatch.models.output`` and are not
re-exported here (they depend on the capture package).
"""

from bridgewatch.models.view import ANALYSIS_PRIORITY, USEFUL_CATEGORIES, ViewCategory
from bridgewatch.models.health import CameraHealthState, HealthReport, HealthStatus
from bridgewatch.models.trend import FlowSpeed, TrendDirection, TrendReading, TrendSummary
from bridgewatch.models.reason_codes import TickReason

__all__ = [
    # View
    "ViewCategory",
    "ANALYSIS_PRIORITY",
    "USEFUL_CATEGORIES",
    # Health
    "HealthStatus",
    "CameraHealthState",
    "HealthReport",
    # Trend
    "TrendReading",
    "TrendSummary",
    "TrendDirection",
    "FlowSpeed",
    # Reason codes
    "TickReason",
]
