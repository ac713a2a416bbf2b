"""
Test Configuration
==================

Pytest fixtures and test configuration for the vicinity condition.
"""

import time

import numpy as np
import pytest


class FakeFrameSource:
    """In-process frame source: tests push raw messages by hand."""

    def __init__(self) -> None:
        self.started = False
        self.stopped = False
        self._on_message = None

    def start(self, on_message) -> None:
        self.started = True
        self._on_message = on_message

    def stop(self) -> None:
        self.stopped = True

    @property
    def connected(self) -> bool:
        return self.started and not self.stopped

    def push(self, raw) -> None:
        """Deliver one raw message as the transport thread would."""
        self._on_message(raw)


@pytest.fixture
def fake_source():
    """Provide a FakeFrameSource."""
    return FakeFrameSource()


@pytest.fixture
def make_message():
    """Build a 32FC1 frame message whose pixels all equal fill."""
    from vicinity_condition.stream.image_codec import build_frame_message

    def _make(frame_id: int, fill: float = 1.0, width: int = 8, height: int = 6,
              timestamp: float = None) -> str:
        pixels = np.full((height, width), fill, dtype=np.float32)
        return build_frame_message(
            frame_id=frame_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            pixels=pixels,
            encoding="32FC1",
        )

    return _make


@pytest.fixture
def make_frame():
    """Build a Frame whose pixels all equal its frame_id."""
    from vicinity_condition.stream.frame import Frame

    def _make(frame_id: int, width: int = 8, height: int = 6) -> Frame:
        return Frame(
            frame_id=frame_id,
            timestamp=time.time(),
            width=width,
            height=height,
            encoding="32FC1",
            pixels=np.full((height, width), float(frame_id), dtype=np.float32),
        )

    return _make


@pytest.fixture
def make_condition(fake_source):
    """
    Build a VicinityCondition on a FakeFrameSource and a given engine.

    Conditions are closed at teardown.
    """
    from vicinity_condition.classifier import ClassifierClient
    from vicinity_condition.condition import VicinityCondition
    from vicinity_condition.config import ConditionConfig

    created = []

    def _make(engine, response_timeout_ms: int = 1000):
        condition = VicinityCondition(
            config=ConditionConfig(
                frame_source="ws://test/frames",
                response_timeout_ms=response_timeout_ms,
            ),
            client=ClassifierClient(engine),
            source=fake_source,
        )
        created.append(condition)
        return condition

    yield _make

    for condition in created:
        condition.close()
