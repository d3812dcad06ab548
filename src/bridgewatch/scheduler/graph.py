"""
Tick Graph
==========

LangGraph pipeline for one capture tick.

LangGraph is used for CONTROL FLOW only, not LLM reasoning.

Graph Structure:
    START → capture → quality → classify → commit → END
               │         │          │
               └─────────┴──────────┴──→ END   (early exit once a reason is set)

Each node:
    1. Reads the tick state
    2. Does one job (grab, filter, classify, commit)
    3. Reports the outcome to the health monitor
    4. Sets ``reason`` when the tick is finished

Design Rules:
    - Exactly one TickReason per tick
    - Health is updated on every outcome except commit decisions
    - Only the commit node writes to the frame store
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypedDict

from langgraph.graph import END, StateGraph

from bridgewatch.capture.controller import CaptureController, CaptureOutcome, CaptureStatus
from bridgewatch.capture.frame import Frame
from bridgewatch.capture.quality import QualityFilter
from bridgewatch.classify.engine import ClassifierGate
from bridgewatch.health.monitor import HealthMonitor
from bridgewatch.models.reason_codes import TickReason
from bridgewatch.models.view import ViewCategory
from bridgewatch.scheduler.policy import CommitPolicy
from bridgewatch.store.state import FrameStore


logger = logging.getLogger(__name__)


class TickState(TypedDict, total=False):
    """
    State passed through the tick graph.

    Attributes:
        outcome: Result of the capture node
        frame: Captured frame (tagged with its category after classify)
        category: Classifier output
        reason: Final tick reason (set by whichever node ends the tick)
        preserved_changed: Whether the commit replaced a preserved slot
    """

    outcome: Optional[CaptureOutcome]
    frame: Optional[Frame]
    category: Optional[ViewCategory]
    reason: Optional[TickReason]
    preserved_changed: bool


class TickGraph:
    """
    Capture → quality → classify → commit, as a LangGraph state machine.

    Example:
        graph = TickGraph(controller, quality, gate, store, health, policy)
        state = await graph.run()
        print(state["reason"])
    """

    def __init__(
        self,
        controller: CaptureController,
        quality: QualityFilter,
        classifier: ClassifierGate,
        store: FrameStore,
        health: HealthMonitor,
        policy: CommitPolicy,
        on_preserved: Optional[Callable[[Frame], Awaitable[None]]] = None,
    ) -> None:
        """
        Initialize the tick graph.

        Args:
            controller: Single-flight frame grabber
            quality: Blur/size pre-filter
            classifier: Gate in front of the classifier backend
            store: Frame buffer and preserved set (written by commit only)
            health: Camera health monitor
            policy: Commit novelty policy
            on_preserved: Awaited after a commit replaced a preserved slot
        """
        self.controller = controller
        self.quality = quality
        self.classifier = classifier
        self.store = store
        self.health = health
        self.policy = policy
        self._on_preserved = on_preserved

        self._graph = self._build_graph()

    def _build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(TickState)

        workflow.add_node("capture", self._capture_node)
        workflow.add_node("quality", self._quality_node)
        workflow.add_node("classify", self._classify_node)
        workflow.add_node("commit", self._commit_node)

        workflow.set_entry_point("capture")
        workflow.add_conditional_edges(
            "capture", self._route("quality"), {"quality": "quality", END: END}
        )
        workflow.add_conditional_edges(
            "quality", self._route("classify"), {"classify": "classify", END: END}
        )
        workflow.add_conditional_edges(
            "classify", self._route("commit"), {"commit": "commit", END: END}
        )
        workflow.add_edge("commit", END)

        return workflow.compile()

    @staticmethod
    def _route(next_node: str) -> Callable[[TickState], str]:
        def route(state: TickState) -> str:
            return END if state.get("reason") is not None else next_node
        return route

    async def _capture_node(self, state: TickState) -> Dict[str, Any]:
        outcome = await self.controller.capture()

        if outcome.status is CaptureStatus.BUSY:
            self.health.record_noop()
            return {"outcome": outcome, "reason": TickReason.CAPTURE_BUSY}

        if outcome.status is CaptureStatus.FAILED:
            self.health.record_failure()
            return {"outcome": outcome, "reason": TickReason.CAPTURE_FAILED}

        return {"outcome": outcome, "frame": outcome.frame}

    async def _quality_node(self, state: TickState) -> Dict[str, Any]:
        frame = state["frame"]
        if self.quality.is_low_quality(frame.image):
            self.health.record_noop()
            return {"reason": TickReason.LOW_QUALITY}
        return {}

    async def _classify_node(self, state: TickState) -> Dict[str, Any]:
        frame = state["frame"]
        category = await self.classifier.classify(frame.image)
        frame = frame.with_category(category)

        if not category.is_useful:
            self.health.record_noop()
            return {
                "frame": frame,
                "category": category,
                "reason": TickReason.USELESS_VIEW,
            }

        self.health.record_classification(category, frame.timestamp)
        return {"frame": frame, "category": category}

    async def _commit_node(self, state: TickState) -> Dict[str, Any]:
        frame = state["frame"]
        category = state["category"]

        reason = self.policy.decide(category, frame.timestamp)
        if not reason.is_commit:
            logger.debug(f"Discarding {frame!r}: {reason.value}")
            return {"reason": reason, "preserved_changed": False}

        replaced = self.store.commit(frame)
        self.policy.mark_committed(category, frame.timestamp)
        logger.info(f"Committed {category.value} frame ({reason.value})")

        if replaced and self._on_preserved is not None:
            await self._on_preserved(frame)

        return {"reason": reason, "preserved_changed": replaced}

    async def run(self) -> TickState:
        """Run one tick through the graph and return its final state."""
        return await self._graph.ainvoke({"preserved_changed": False})
