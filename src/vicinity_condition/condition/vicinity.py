"""
Vicinity Condition
==================

Behavior-tree style condition: SUCCESS when the classifier says the
vicinity is clear, FAILURE otherwise.

Lifecycle:
    construction → frame subscription starts, slot empty
    tick()       → snapshot → query → resolve (bounded by response timeout)
    close()      → subscription stopped, client shut down, slot cleared

Fail-Closed Policy:
    FAILURE is returned for a blocked vicinity AND for every case where
    no verdict could be obtained (no frame yet, timeout, service down,
    unusable answer, overlapping tick). SUCCESS requires an explicit
    "clear" from the classifier about an actual frame.

Re-entrancy:
    Evaluations are serialized. A tick that starts while another one is
    running returns FAILURE immediately with failure=BUSY instead of
    waiting, so every tick stays within the response timeout.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

from vicinity_condition.classifier.client import ClassifierClient, create_classifier_engine
from vicinity_condition.classifier.engine import VICINITY_PROMPT
from vicinity_condition.condition.graph import EvaluationGraph, resolve_evaluation
from vicinity_condition.config import ConditionConfig, Settings, StreamConfig
from vicinity_condition.models.outcome import (
    Evaluation,
    FailureKind,
    NodeStatus,
    Verdict,
)
from vicinity_condition.stream.slot import FrameSlot
from vicinity_condition.stream.source import FrameSource, WebSocketFrameSource
from vicinity_condition.stream.subscription import FrameSubscription


logger = logging.getLogger(__name__)


class VicinityCondition:
    """
    Perception-gated condition for a host control loop.

    Attributes:
        name: Node name used in logs
        config: Immutable construction options
        slot: Latest-frame slot fed by the subscription
        subscription: Frame subscription owned by this condition
        client: Classifier client owned by this condition

    Example:
        condition = VicinityCondition(
            config=ConditionConfig(
                frame_source="ws://robot:8000/ws/frames",
                response_timeout_ms=2000,
            ),
            client=ClassifierClient(LLMClassifierEngine()),
        )

        with condition:
            if condition.tick() is NodeStatus.SUCCESS:
                drive()
    """

    def __init__(
        self,
        config: ConditionConfig,
        client: ClassifierClient,
        source: Optional[FrameSource] = None,
        stream: Optional[StreamConfig] = None,
        name: str = "VicinityCondition",
    ) -> None:
        """
        Initialize the condition and subscribe to the frame source.

        Args:
            config: frame_source and response_timeout_ms
            client: Classifier client (owned; closed with the condition)
            source: Frame transport. Defaults to a WebSocketFrameSource
                on config.frame_source.
            stream: Transport tuning for the default source
            name: Node name used in logs
        """
        self.name = name
        self.config = config
        self.client = client

        if source is None:
            stream = stream or StreamConfig()
            source = WebSocketFrameSource(
                url=config.frame_source,
                reconnect_backoff_ms=stream.reconnect_backoff_ms,
                recv_timeout_sec=stream.recv_timeout_sec,
                max_message_bytes=stream.max_message_bytes,
            )

        self.slot = FrameSlot()
        self._graph = EvaluationGraph(self.slot, self.client)

        self._eval_lock = threading.Lock()
        self._closed: bool = False

        # BUSY rejections are recorded from the caller thread, concurrently
        # with the evaluation in flight
        self._metrics_lock = threading.Lock()

        self._evaluation_count: int = 0
        self._status_counts: Dict[str, int] = {NodeStatus.SUCCESS.value: 0, NodeStatus.FAILURE.value: 0}
        self._last_evaluation: Optional[Evaluation] = None

        self.subscription = FrameSubscription(source=source, slot=self.slot)

        logger.info(
            f"{self.name} initialized: frame_source={config.frame_source}, "
            f"response_timeout={config.response_timeout_ms}ms"
        )

    @staticmethod
    def provided_ports() -> Dict[str, str]:
        """Construction options understood by this condition."""
        return {
            "frame_source": "Frame stream which is subscribed to",
            "response_timeout_ms": "Timeout while waiting for the classifier (ms)",
        }

    def tick(self) -> NodeStatus:
        """
        Evaluate the vicinity once.

        Returns:
            NodeStatus.SUCCESS if clear, NodeStatus.FAILURE otherwise
        """
        return self.evaluate().status

    def evaluate(self) -> Evaluation:
        """
        Evaluate the vicinity once and return the full result.

        Never raises for classifier or frame problems; they are reported
        as FAILURE with a failure kind.

        Returns:
            Evaluation of the latest frame
        """
        started_at = time.monotonic()

        if self._closed:
            return self._finish(self._reject(FailureKind.UNAVAILABLE, "Condition is closed", started_at))

        if not self._eval_lock.acquire(blocking=False):
            return self._finish(
                self._reject(FailureKind.BUSY, "Another evaluation is in progress", started_at)
            )

        try:
            evaluation = self._graph.run(self.config.response_timeout)
        finally:
            self._eval_lock.release()

        return self._finish(evaluation)

    def _reject(self, failure: FailureKind, detail: str, started_at: float) -> Evaluation:
        logger.warning(f"{self.name} tick rejected: failure={failure.value} {detail}")
        return resolve_evaluation(Verdict.failed(failure, detail), None, started_at)

    def _finish(self, evaluation: Evaluation) -> Evaluation:
        """Record and log an evaluation."""
        with self._metrics_lock:
            self._evaluation_count += 1
            self._status_counts[evaluation.status.value] += 1
            self._last_evaluation = evaluation

        logger.info(
            f"{self.name}: status={evaluation.status.value} "
            f"outcome={evaluation.outcome.value} "
            f"failure={evaluation.failure.value if evaluation.failure else None} "
            f"frame={evaluation.frame_id} latency={evaluation.latency_ms:.0f}ms"
        )
        return evaluation

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    @property
    def last_evaluation(self) -> Optional[Evaluation]:
        """Most recent evaluation, if any."""
        return self._last_evaluation

    def close(self) -> None:
        """
        Tear down the condition.

        Stops the subscription first so no frame is published afterwards,
        then abandons any outstanding classifier call and clears the slot.
        """
        if self._closed:
            return
        self._closed = True

        self.subscription.close()
        self.client.close()
        self.slot.clear()
        logger.info(f"{self.name} closed after {self._evaluation_count} evaluations")

    def __enter__(self) -> "VicinityCondition":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def get_metrics(self) -> Dict[str, Any]:
        """Get condition metrics for observability."""
        with self._metrics_lock:
            last = self._last_evaluation
            evaluations = self._evaluation_count
            statuses = dict(self._status_counts)
        return {
            "evaluations": evaluations,
            "statuses": statuses,
            "last_status": last.status.value if last else None,
            "last_failure": last.failure.value if last and last.failure else None,
            "slot": self.slot.metrics(),
            "subscription": self.subscription.metrics.to_dict(),
            "classifier": self.client.metrics(),
        }


def create_vicinity_condition(
    settings: Settings,
    source: Optional[FrameSource] = None,
) -> VicinityCondition:
    """
    Create a vicinity condition from settings.

    Args:
        settings: Loaded settings
        source: Frame transport override (WebSocket on frame_source if None)

    Returns:
        Subscribed VicinityCondition
    """
    engine = create_classifier_engine(settings.classifier)
    client = ClassifierClient(
        engine,
        prompt=settings.classifier.prompt or VICINITY_PROMPT,
        max_workers=settings.classifier.max_workers,
    )

    return VicinityCondition(
        config=settings.condition,
        client=client,
        source=source,
        stream=settings.stream,
    )
