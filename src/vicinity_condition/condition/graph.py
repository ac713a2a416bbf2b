"""
Evaluation Graph
================

LangGraph state machine for one vicinity evaluation.

LangGraph is used for CONTROL FLOW only. The graph has no memory between
runs: every evaluation starts from a fresh state and ends at END.

Graph Structure:
    START → snapshot ─┬─(frame)────→ query → resolve → END
                      └─(no frame)─────────→ resolve → END

    snapshot: take the latest frame from the slot
    query:    ask the classifier, bounded by the timeout in the state
    resolve:  turn the verdict into an Evaluation (fail-closed)

Design Philosophy:
    - The timeout travels in the graph state, never as a global default
    - The frame is dropped from the state in resolve, so nothing retains
      pixel data after the run
"""

import logging
import time
from typing import Any, Dict, Optional, TypedDict

from langgraph.graph import StateGraph, END

from vicinity_condition.classifier.client import ClassifierClient
from vicinity_condition.models.outcome import (
    Evaluation,
    FailureKind,
    Verdict,
    to_node_status,
)
from vicinity_condition.stream.frame import Frame
from vicinity_condition.stream.slot import FrameSlot


logger = logging.getLogger(__name__)


class EvaluationState(TypedDict):
    """
    State passed through the evaluation graph.

    Attributes:
        timeout: Seconds the classifier may take
        started_at: time.monotonic() at the start of the run
        frame: Snapshot taken from the slot (None if empty)
        verdict: Classifier verdict (None until queried)
        evaluation: Final result
    """
    timeout: float
    started_at: float
    frame: Optional[Frame]
    verdict: Optional[Verdict]
    evaluation: Optional[Evaluation]


def resolve_evaluation(
    verdict: Verdict,
    frame: Optional[Frame],
    started_at: float,
) -> Evaluation:
    """
    Build the Evaluation for a verdict.

    This is where the internal outcome meets the host contract:
    to_node_status() collapses UNKNOWN into FAILURE.

    Args:
        verdict: Verdict to report
        frame: Frame the verdict is about, if any
        started_at: time.monotonic() when the evaluation began

    Returns:
        Evaluation with host status and diagnostics
    """
    now = time.time()
    return Evaluation(
        status=to_node_status(verdict.outcome),
        outcome=verdict.outcome,
        failure=verdict.failure,
        detail=verdict.detail,
        frame_id=frame.frame_id if frame is not None else None,
        frame_age_ms=max(0.0, (now - frame.timestamp) * 1000.0) if frame is not None else None,
        latency_ms=(time.monotonic() - started_at) * 1000.0,
        evaluated_at=now,
    )


class EvaluationGraph:
    """
    Compiled snapshot → query → resolve workflow.

    Attributes:
        slot: Slot to snapshot frames from
        client: Classifier client to query
    """

    def __init__(self, slot: FrameSlot, client: ClassifierClient) -> None:
        self.slot = slot
        self.client = client
        self._graph = self._build_graph()

    def _build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(EvaluationState)

        workflow.add_node("snapshot", self._snapshot_node)
        workflow.add_node("query", self._query_node)
        workflow.add_node("resolve", self._resolve_node)

        workflow.set_entry_point("snapshot")
        workflow.add_conditional_edges(
            "snapshot",
            self._route_after_snapshot,
            {"query": "query", "resolve": "resolve"},
        )
        workflow.add_edge("query", "resolve")
        workflow.add_edge("resolve", END)

        return workflow.compile()

    def _snapshot_node(self, state: EvaluationState) -> Dict[str, Any]:
        return {"frame": self.slot.snapshot()}

    @staticmethod
    def _route_after_snapshot(state: EvaluationState) -> str:
        return "query" if state.get("frame") is not None else "resolve"

    def _query_node(self, state: EvaluationState) -> Dict[str, Any]:
        return {"verdict": self.client.query(state["frame"], state["timeout"])}

    def _resolve_node(self, state: EvaluationState) -> Dict[str, Any]:
        """
        Produce the Evaluation.

        No frame means no verdict: never assume safety before the
        first frame has arrived.
        """
        frame = state.get("frame")
        verdict = state.get("verdict")

        if verdict is None:
            verdict = Verdict.failed(FailureKind.NO_FRAME, "No frame received yet")
            logger.warning(f"Vicinity not evaluated: failure={FailureKind.NO_FRAME.value}")

        evaluation = resolve_evaluation(verdict, frame, state["started_at"])

        return {
            "frame": None,
            "verdict": verdict,
            "evaluation": evaluation,
        }

    def run(self, timeout: float) -> Evaluation:
        """
        Run one evaluation.

        Args:
            timeout: Seconds the classifier may take

        Returns:
            Evaluation for the current slot contents
        """
        initial: EvaluationState = {
            "timeout": timeout,
            "started_at": time.monotonic(),
            "frame": None,
            "verdict": None,
            "evaluation": None,
        }
        result = self._graph.invoke(initial)
        return result["evaluation"]
