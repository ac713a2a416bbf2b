"""
Frame Sources
=============

Transports that deliver raw frame messages to a callback.

This module provides:
    - FrameSource: Protocol implemented by every transport
    - WebSocketFrameSource: Reader thread on a WebSocket frame stream

Design Rules:
    - Does NOT decode image data (see image_codec)
    - Delivers each message to the callback on the reader thread
    - Reconnects automatically on disconnect
    - stop() returns within a bounded time
"""

import logging
import threading
from typing import Callable, Optional, Protocol, Union

from websockets.sync.client import connect as ws_connect


logger = logging.getLogger(__name__)


RawMessage = Union[str, bytes]
MessageCallback = Callable[[RawMessage], None]


class FrameSource(Protocol):
    """
    Protocol for frame transports.

    Implementations call on_message once per received message from their
    own execution context. The callback must not block.
    """

    def start(self, on_message: MessageCallback) -> None:
        """Begin delivering messages to on_message."""
        ...

    def stop(self) -> None:
        """Stop delivering messages. No callback starts after this returns."""
        ...

    @property
    def connected(self) -> bool:
        """Whether the transport currently has a live connection."""
        ...


class WebSocketFrameSource:
    """
    Background WebSocket reader for a frame stream.

    Runs websockets' synchronous client on a daemon thread, so no asyncio
    event loop is needed by the host.

    Attributes:
        url: WebSocket URL of the frame stream
        reconnect_backoff_ms: Wait between reconnect attempts
        recv_timeout_sec: Receive poll interval (bounds stop latency)
        max_message_bytes: Largest accepted message
        reconnect_count: Number of reconnect attempts so far

    Example:
        source = WebSocketFrameSource("ws://localhost:8000/ws/frames")
        source.start(handle_message)
        ...
        source.stop()
    """

    def __init__(
        self,
        url: str,
        reconnect_backoff_ms: int = 500,
        recv_timeout_sec: float = 1.0,
        max_message_bytes: int = 16 * 1024 * 1024,
    ) -> None:
        """
        Initialize WebSocket frame source.

        Args:
            url: WebSocket URL of the frame stream
            reconnect_backoff_ms: Backoff between reconnect attempts
            recv_timeout_sec: Max time a single recv() blocks
            max_message_bytes: Max accepted message size
        """
        self.url = url
        self.reconnect_backoff_ms = reconnect_backoff_ms
        self.recv_timeout_sec = recv_timeout_sec
        self.max_message_bytes = max_message_bytes
        self.reconnect_count: int = 0

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._connected: bool = False
        self._on_message: Optional[MessageCallback] = None

    @property
    def connected(self) -> bool:
        """Whether currently connected to the frame stream."""
        return self._connected

    def start(self, on_message: MessageCallback) -> None:
        """
        Start the reader thread.

        Args:
            on_message: Callback invoked with each raw message
        """
        if self._thread is not None:
            raise RuntimeError("WebSocketFrameSource already started")

        self._on_message = on_message
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="frame-source",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"WebSocketFrameSource started: {self.url}")

    def stop(self) -> None:
        """
        Stop the reader thread and wait for it to exit.

        The wait is bounded by the receive timeout plus a small margin;
        a thread still stuck in connect() is left to die with the process.
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.recv_timeout_sec + 1.0)
            if thread.is_alive():
                logger.warning("Frame source thread did not exit in time")
        self._thread = None
        self._connected = False
        logger.info("WebSocketFrameSource stopped")

    def _run(self) -> None:
        """Reader loop: connect, receive until stopped, reconnect on error."""
        while not self._stop_event.is_set():
            try:
                self._connect_and_receive()
            except Exception as e:
                self._connected = False
                if self._stop_event.is_set():
                    break

                self.reconnect_count += 1
                backoff_sec = self.reconnect_backoff_ms / 1000.0
                logger.warning(
                    f"Frame stream error: {e}. Reconnecting in {backoff_sec:.1f}s "
                    f"(attempt {self.reconnect_count})"
                )
                # Returns early if stop() is called during the backoff
                self._stop_event.wait(backoff_sec)

        self._connected = False

    def _connect_and_receive(self) -> None:
        """Connect and hand messages to the callback until stop or disconnect."""
        with ws_connect(
            self.url,
            max_size=self.max_message_bytes,
            open_timeout=max(self.recv_timeout_sec, 1.0),
            close_timeout=1.0,
        ) as ws:
            self._connected = True
            logger.info(f"Connected to frame stream: {self.url}")

            try:
                while not self._stop_event.is_set():
                    try:
                        raw = ws.recv(timeout=self.recv_timeout_sec)
                    except TimeoutError:
                        continue

                    if self._on_message is not None:
                        self._on_message(raw)
            finally:
                self._connected = False
