"""
Scheduler Module
================

Adaptive capture scheduling.

This module implements the tick pipeline and its driver:
    - policy.py: Commit novelty rules (new angle / refresh / duplicate)
    - graph.py: LangGraph capture → quality → classify → commit workflow
    - runner.py: Fixed-interval loop plus out-of-band ticks

Key Design Decisions:
    - LangGraph is used for STRUCTURE, not LLM reasoning
    - Every tick ends with exactly one TickReason
    - The scheduler is the sole writer of the store and health monitor
"""

from bridgewatch.scheduler.policy import CommitPolicy
from bridgewatch.scheduler.graph import TickGraph, TickState
from bridgewatch.scheduler.runner import CaptureScheduler, TickResult


__all__ = [
    "CommitPolicy",
    "TickGraph",
    "TickState",
    "CaptureScheduler",
    "TickResult",
]
