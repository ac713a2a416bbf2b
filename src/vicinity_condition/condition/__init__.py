"""
Condition Module
================

The public evaluation entry point.

    - vicinity.py: VicinityCondition (tick / evaluate / close)
    - graph.py: LangGraph snapshot → query → resolve workflow

Key Design Decisions:
    - LangGraph is used for STRUCTURE, not LLM reasoning
    - Each tick is a fresh, bounded round trip; no state carries over
    - UNKNOWN collapses into FAILURE only at the host boundary
"""

from vicinity_condition.condition.graph import EvaluationGraph, resolve_evaluation
from vicinity_condition.condition.vicinity import VicinityCondition, create_vicinity_condition

__all__ = [
    "EvaluationGraph",
    "VicinityCondition",
    "create_vicinity_condition",
    "resolve_evaluation",
]
