"""
Outcome Models
==============

Tagged results produced by the classifier client and the vicinity condition.

Core Concepts:
    - Outcome: Internal tri-state verdict (CLEAR, BLOCKED, UNKNOWN)
    - FailureKind: Why a verdict could not be obtained
    - NodeStatus: Status reported to the host control loop
    - Verdict: Result of one classifier query
    - Evaluation: Result of one condition tick

Fail-Closed Mapping:
    UNKNOWN is kept distinct from BLOCKED internally so that every failure
    stays auditable. The two collapse into FAILURE only in to_node_status(),
    which is the single place where the host-facing status is decided.

    CLEAR   -> SUCCESS
    BLOCKED -> FAILURE
    UNKNOWN -> FAILURE
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Outcome(str, Enum):
    """
    Internal verdict of one evaluation.

    Attributes:
        CLEAR: Classifier judged the vicinity clear
        BLOCKED: Classifier judged the vicinity blocked
        UNKNOWN: No verdict could be obtained (see FailureKind)
    """

    CLEAR = "CLEAR"
    BLOCKED = "BLOCKED"
    UNKNOWN = "UNKNOWN"


class FailureKind(str, Enum):
    """
    Machine-readable failure codes.

    Attributes:
        DECODE_FAILURE: Inbound frame could not be interpreted (dropped)
        TIMEOUT: Classifier did not answer within the response timeout
        UNAVAILABLE: Classifier transport or service unreachable
        INVALID_RESPONSE: Classifier answered but the answer is unusable
        NO_FRAME: No frame has been published yet
        BUSY: Another evaluation was already in flight
    """

    DECODE_FAILURE = "DECODE_FAILURE"
    TIMEOUT = "TIMEOUT"
    UNAVAILABLE = "UNAVAILABLE"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    NO_FRAME = "NO_FRAME"
    BUSY = "BUSY"


class NodeStatus(str, Enum):
    """
    Status values understood by a behavior-tree host.

    RUNNING is part of the host contract but is never produced here:
    every evaluation completes within a single tick.
    """

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    RUNNING = "RUNNING"


def to_node_status(outcome: Outcome) -> NodeStatus:
    """Collapse an internal outcome into the host status (fail-closed)."""
    if outcome is Outcome.CLEAR:
        return NodeStatus.SUCCESS
    return NodeStatus.FAILURE


class Verdict(BaseModel):
    """
    Result of a single classifier query.

    Attributes:
        outcome: CLEAR or BLOCKED when the classifier answered, else UNKNOWN
        failure: Set exactly when outcome is UNKNOWN
        detail: Human-readable diagnostic (never parsed)
        latency_ms: Wall time spent waiting for the classifier
    """

    model_config = ConfigDict(frozen=True)

    outcome: Outcome
    failure: Optional[FailureKind] = None
    detail: str = ""
    latency_ms: float = Field(default=0.0, ge=0.0)

    @model_validator(mode="after")
    def _failure_matches_outcome(self) -> "Verdict":
        if (self.outcome is Outcome.UNKNOWN) != (self.failure is not None):
            raise ValueError("failure must be set if and only if outcome is UNKNOWN")
        return self

    @classmethod
    def failed(cls, failure: FailureKind, detail: str = "", latency_ms: float = 0.0) -> "Verdict":
        """Build an UNKNOWN verdict for the given failure kind."""
        return cls(
            outcome=Outcome.UNKNOWN,
            failure=failure,
            detail=detail,
            latency_ms=latency_ms,
        )


class Evaluation(BaseModel):
    """
    Result of one condition tick.

    The frame itself is never stored here; only its id and age, so the
    evaluator holds no reference to pixel data after the tick returns.

    Attributes:
        status: Host-facing status (SUCCESS or FAILURE)
        outcome: Internal tri-state outcome
        failure: Failure kind when outcome is UNKNOWN
        detail: Diagnostic text
        frame_id: Id of the frame that was classified, if any
        frame_age_ms: Age of that frame at evaluation time
        latency_ms: Total evaluation wall time
        evaluated_at: UNIX timestamp when the evaluation finished
    """

    model_config = ConfigDict(frozen=True)

    status: NodeStatus
    outcome: Outcome
    failure: Optional[FailureKind] = None
    detail: str = ""
    frame_id: Optional[int] = None
    frame_age_ms: Optional[float] = None
    latency_ms: float = Field(default=0.0, ge=0.0)
    evaluated_at: float = Field(..., gt=0)
