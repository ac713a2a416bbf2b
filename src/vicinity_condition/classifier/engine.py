"""
Classifier Engine
=================

Classifier abstraction shared by every backend.

This module provides the ClassifierEngine protocol, the exception
hierarchy engines use to report failures, and MockClassifierEngine.

Design Rules:
    - Engines answer one question: is the vicinity in this frame clear?
    - True means clear, False means blocked
    - Failures are raised as ClassifierError subclasses, never returned
    - Engines may block; the client bounds how long anyone waits
"""

import logging
import threading
import time
from typing import Optional, Protocol

from vicinity_condition.models.outcome import FailureKind
from vicinity_condition.stream.frame import Frame


logger = logging.getLogger(__name__)


VICINITY_PROMPT = (
    "You are the safety check of a mobile robot. The attached image is the "
    "robot's current view of its immediate surroundings. Decide whether the "
    "vicinity is clear, meaning no people, animals or obstacles are close "
    "enough to be hit if the robot proceeds. Answer with JSON ONLY, exactly "
    "in this form: {\"clear\": true} or {\"clear\": false}."
)


class ClassifierError(Exception):
    """Base class for classifier failures."""

    kind: FailureKind = FailureKind.UNAVAILABLE


class ClassifierTimeout(ClassifierError):
    """Raised when the classifier did not answer in time."""

    kind = FailureKind.TIMEOUT


class ClassifierUnavailable(ClassifierError):
    """Raised when the classifier transport or service is unreachable."""

    kind = FailureKind.UNAVAILABLE


class InvalidClassifierResponse(ClassifierError):
    """Raised when the classifier answered with something unusable."""

    kind = FailureKind.INVALID_RESPONSE


_FAILURE_EXCEPTIONS = {
    FailureKind.TIMEOUT: ClassifierTimeout,
    FailureKind.UNAVAILABLE: ClassifierUnavailable,
    FailureKind.INVALID_RESPONSE: InvalidClassifierResponse,
}


class ClassifierEngine(Protocol):
    """
    Protocol for classifier backends.

    Implemented by:
        - MockClassifierEngine (testing, offline runs)
        - LLMClassifierEngine (vision LLM over HTTP)
        - VisionClassifierEngine (Google Cloud Vision)
    """

    def classify(self, frame: Frame, prompt: str, timeout: float) -> bool:
        """
        Judge whether the vicinity shown in frame is clear.

        Args:
            frame: Frame to judge
            prompt: Fixed question asked about the frame
            timeout: Seconds the caller is willing to wait

        Returns:
            True if clear, False if blocked

        Raises:
            ClassifierError: On timeout, unavailability or bad response
        """
        ...

    def close(self) -> None:
        """Release transport resources."""
        ...


class MockClassifierEngine:
    """
    Deterministic classifier for tests and offline runs.

    Returns a fixed verdict after an optional latency, or raises the
    exception for a configured failure kind. A latency of None blocks
    until release() is called, simulating a classifier that never answers.

    Attributes:
        clear: Verdict to return
        latency_sec: Delay before answering (None = wait for release())
        failure: Failure kind to raise instead of answering
        calls: Number of classify() calls
    """

    def __init__(
        self,
        clear: bool = True,
        latency_sec: Optional[float] = 0.0,
        failure: Optional[FailureKind] = None,
    ) -> None:
        if failure is not None and failure not in _FAILURE_EXCEPTIONS:
            raise ValueError(f"MockClassifierEngine cannot raise {failure.value}")

        self.clear = clear
        self.latency_sec = latency_sec
        self.failure = failure
        self.calls: int = 0
        self.last_frame_id: Optional[int] = None

        self._released = threading.Event()

        logger.info(
            f"MockClassifierEngine initialized: clear={clear}, "
            f"latency_sec={latency_sec}, failure={failure.value if failure else None}"
        )

    def classify(self, frame: Frame, prompt: str, timeout: float) -> bool:
        """Return the configured verdict, or raise the configured failure."""
        self.calls += 1
        self.last_frame_id = frame.frame_id

        if self.latency_sec is None:
            self._released.wait()
        elif self.latency_sec > 0:
            time.sleep(self.latency_sec)

        if self.failure is not None:
            raise _FAILURE_EXCEPTIONS[self.failure](
                f"Injected {self.failure.value} for frame {frame.frame_id}"
            )

        return self.clear

    def release(self) -> None:
        """Unblock calls waiting with latency_sec=None."""
        self._released.set()

    def close(self) -> None:
        self.release()
