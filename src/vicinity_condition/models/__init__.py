"""
Data Models
===========

Pydantic models for the vicinity condition.

Models:
    Input:
        - FrameMessage: Schema for messages from the frame stream

    Outcome:
        - Outcome: Internal tri-state verdict (CLEAR, BLOCKED, UNKNOWN)
        - FailureKind: Reason a verdict could not be obtained
        - NodeStatus: Host-facing status (SUCCESS, FAILURE, RUNNING)
        - Verdict: Classifier query result
        - Evaluation: Condition tick result
"""

from vicinity_condition.models.input import SUPPORTED_ENCODINGS, FrameMessage
from vicinity_condition.models.outcome import (
    Evaluation,
    FailureKind,
    NodeStatus,
    Outcome,
    Verdict,
    to_node_status,
)

__all__ = [
    # Input
    "FrameMessage",
    "SUPPORTED_ENCODINGS",
    # Outcome
    "Outcome",
    "FailureKind",
    "NodeStatus",
    "Verdict",
    "Evaluation",
    "to_node_status",
]
