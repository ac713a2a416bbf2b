"""
Classifier Client
=================

Bounded-time wrapper around a classifier engine.

This module provides the ClassifierClient class which:
    - Builds the request (frame + fixed vicinity prompt)
    - Runs the engine call on a worker thread
    - Waits at most the caller-supplied timeout
    - Reduces every result to a Verdict (never raises)

Design Rules:
    - The timeout is an explicit argument of every query
    - A call that misses the deadline is abandoned; its late result is discarded
    - Failures are reported as UNKNOWN verdicts with a FailureKind
"""

import concurrent.futures
import logging
import time
from typing import Dict

from vicinity_condition.classifier.engine import (
    VICINITY_PROMPT,
    ClassifierEngine,
    ClassifierError,
    MockClassifierEngine,
)
from vicinity_condition.classifier.llm_engine import LLMClassifierEngine
from vicinity_condition.classifier.vision_engine import VisionClassifierEngine
from vicinity_condition.config import ClassifierConfig
from vicinity_condition.models.outcome import FailureKind, Outcome, Verdict
from vicinity_condition.stream.frame import Frame


logger = logging.getLogger(__name__)


class ClassifierClient:
    """
    Client for the external vicinity classifier.

    Attributes:
        engine: Backend answering the vicinity question
        prompt: Fixed question sent with every frame

    Example:
        client = ClassifierClient(LLMClassifierEngine(url, model))
        verdict = client.query(frame, timeout=2.0)
        if verdict.outcome is Outcome.CLEAR:
            proceed()
    """

    def __init__(
        self,
        engine: ClassifierEngine,
        prompt: str = VICINITY_PROMPT,
        max_workers: int = 2,
    ) -> None:
        """
        Initialize classifier client.

        Args:
            engine: Classifier backend
            prompt: Question sent with every frame
            max_workers: Worker threads for engine calls. Calls abandoned
                after a timeout keep their worker until the engine returns.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self.engine = engine
        self.prompt = prompt

        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="classifier",
        )
        self._closed: bool = False

        self._query_count: int = 0
        self._outcome_counts: Dict[str, int] = {outcome.value: 0 for outcome in Outcome}
        self._failure_counts: Dict[str, int] = {}

    def query(self, frame: Frame, timeout: float) -> Verdict:
        """
        Ask the classifier whether the vicinity in frame is clear.

        Args:
            frame: Frame to classify
            timeout: Maximum seconds to wait for the answer

        Returns:
            Verdict with CLEAR/BLOCKED, or UNKNOWN plus a FailureKind
        """
        self._query_count += 1
        t0 = time.monotonic()

        try:
            future = self._executor.submit(self.engine.classify, frame, self.prompt, timeout)
        except RuntimeError as e:
            # Executor already shut down
            verdict = self._failed(FailureKind.UNAVAILABLE, f"Classifier client closed: {e}", t0)
            return self._record(verdict, frame)

        try:
            clear = future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            verdict = self._failed(
                FailureKind.TIMEOUT,
                f"No classifier response within {timeout * 1000:.0f}ms",
                t0,
            )
        except concurrent.futures.CancelledError:
            verdict = self._failed(FailureKind.UNAVAILABLE, "Classifier call cancelled", t0)
        except ClassifierError as e:
            verdict = self._failed(e.kind, str(e), t0)
        except Exception as e:
            logger.error(f"Unexpected classifier error (frame={frame.frame_id}): {e!r}")
            verdict = self._failed(FailureKind.UNAVAILABLE, f"Unexpected classifier error: {e!r}", t0)
        else:
            if isinstance(clear, bool):
                verdict = Verdict(
                    outcome=Outcome.CLEAR if clear else Outcome.BLOCKED,
                    latency_ms=self._elapsed_ms(t0),
                )
            else:
                verdict = self._failed(
                    FailureKind.INVALID_RESPONSE,
                    f"Classifier returned {type(clear).__name__}, expected bool",
                    t0,
                )

        if self._closed:
            # Whatever the abandoned call produced is discarded
            verdict = self._failed(
                FailureKind.UNAVAILABLE,
                "Classifier client closed during query",
                t0,
            )

        return self._record(verdict, frame)

    def _failed(self, failure: FailureKind, detail: str, t0: float) -> Verdict:
        return Verdict.failed(failure, detail=detail, latency_ms=self._elapsed_ms(t0))

    @staticmethod
    def _elapsed_ms(t0: float) -> float:
        return (time.monotonic() - t0) * 1000.0

    def _record(self, verdict: Verdict, frame: Frame) -> Verdict:
        """Count and log a verdict."""
        self._outcome_counts[verdict.outcome.value] += 1

        if verdict.failure is not None:
            key = verdict.failure.value
            self._failure_counts[key] = self._failure_counts.get(key, 0) + 1
            logger.warning(
                f"Classifier query failed: failure={key} frame={frame.frame_id} "
                f"latency={verdict.latency_ms:.0f}ms detail={verdict.detail}"
            )
        else:
            logger.debug(
                f"Classifier verdict: outcome={verdict.outcome.value} "
                f"frame={frame.frame_id} latency={verdict.latency_ms:.0f}ms"
            )

        return verdict

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def close(self) -> None:
        """
        Shut down the worker pool without waiting for outstanding calls.

        Outstanding calls are abandoned; queries after close() report
        UNAVAILABLE.
        """
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.engine.close()
        logger.info("ClassifierClient closed")

    def metrics(self) -> Dict[str, object]:
        """Get client metrics for observability."""
        return {
            "query_count": self._query_count,
            "outcomes": dict(self._outcome_counts),
            "failures": dict(self._failure_counts),
        }


def create_classifier_engine(config: ClassifierConfig) -> ClassifierEngine:
    """
    Create the classifier engine selected in configuration.

    Fails fast if the selected backend is unknown or unavailable.

    Args:
        config: Classifier section of the settings

    Returns:
        Configured classifier engine
    """
    backend = config.backend

    if backend == "mock":
        logger.info("Using MockClassifierEngine")
        return MockClassifierEngine(
            clear=config.mock.clear,
            latency_sec=config.mock.latency_ms / 1000.0,
        )

    elif backend == "llm":
        logger.info(f"Using LLMClassifierEngine: model={config.llm.model}")
        return LLMClassifierEngine(url=config.llm.url, model=config.llm.model)

    elif backend == "google_vision":
        logger.info("Using VisionClassifierEngine")
        return VisionClassifierEngine(
            blocking_labels=config.vision.blocking_labels,
            confidence_threshold=config.vision.confidence_threshold,
            credentials_path=config.vision.credentials_path,
        )

    else:
        raise ValueError(f"Unknown classifier backend: {backend}")
