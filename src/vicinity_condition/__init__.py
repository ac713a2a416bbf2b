"""
vicinity_condition
==================

Perception-gated decision primitive for robot control loops.

A background subscription keeps the most recent sensor frame in a
single-item slot. On each tick the condition snapshots that frame, asks
an external classifier (vision LLM or vision API) whether the vicinity
is clear within a bounded wait, and reports SUCCESS or FAILURE to the
host. Any uncertainty resolves to FAILURE.

Components:
    - stream: Frame model, latest-frame slot, decoding, subscription
    - classifier: Bounded-time classifier client and backends
    - condition: VicinityCondition and its LangGraph evaluation workflow
    - models: Outcome, FailureKind, NodeStatus, Verdict, Evaluation

Example:
    from vicinity_condition.config import settings
    from vicinity_condition.condition import create_vicinity_condition

    with create_vicinity_condition(settings) as condition:
        status = condition.tick()
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
