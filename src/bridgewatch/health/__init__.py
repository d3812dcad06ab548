"""
Health Module
=============

Camera source health derived from capture and classification outcomes.
"""

from bridgewatch.health.monitor import HealthMonitor


__all__ = ["HealthMonitor"]
