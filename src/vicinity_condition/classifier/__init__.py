"""
Classifier Module
=================

External vicinity classifier behind a bounded-time client.

Components:
    - ClassifierClient: Bounded-wait query returning a Verdict
    - ClassifierEngine: Protocol for classifier backends
    - MockClassifierEngine: Deterministic backend for testing
    - LLMClassifierEngine: Vision LLM over HTTP (Ollama-compatible)
    - VisionClassifierEngine: Google Cloud Vision object localization

Design Philosophy:
    The classifier is a black box. The condition consumes ONLY the
    Verdict, never engine internals or raw responses.
"""

from vicinity_condition.classifier.engine import (
    VICINITY_PROMPT,
    ClassifierEngine,
    ClassifierError,
    ClassifierTimeout,
    ClassifierUnavailable,
    InvalidClassifierResponse,
    MockClassifierEngine,
)
from vicinity_condition.classifier.llm_engine import LLMClassifierEngine, parse_vicinity_answer
from vicinity_condition.classifier.vision_engine import VisionClassifierEngine
from vicinity_condition.classifier.client import ClassifierClient, create_classifier_engine

__all__ = [
    "VICINITY_PROMPT",
    "ClassifierClient",
    "ClassifierEngine",
    "ClassifierError",
    "ClassifierTimeout",
    "ClassifierUnavailable",
    "InvalidClassifierResponse",
    "MockClassifierEngine",
    "LLMClassifierEngine",
    "VisionClassifierEngine",
    "create_classifier_engine",
    "parse_vicinity_answer",
]
