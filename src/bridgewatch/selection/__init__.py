"""
Selection Module
================

Deterministic frame selection for analysis and display.
"""

from bridgewatch.selection.policy import FrameSelectionPolicy


__all__ = ["FrameSelectionPolicy"]
