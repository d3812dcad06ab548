"""
Signals Module
==============

Signal processing over detector output.

This module turns raw per-direction vehicle counts into trend and
flow-speed tags suitable for user-facing summaries.
"""

from bridgewatch.signals.trend import DirectionalTrendTracker

__all__ = ["DirectionalTrendTracker"]
