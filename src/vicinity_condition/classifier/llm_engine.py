"""
LLM Classifier Engine
=====================

Classifier backend that asks a vision-capable large language model.

This engine:
    - Encodes the frame as a PNG and sends it with the vicinity prompt
    - Talks to an Ollama-compatible /api/generate endpoint over HTTP
    - Parses the model's answer into clear / blocked
    - Maps transport errors onto the ClassifierError hierarchy

Response Parsing:
    The model is asked for {"clear": true|false}. The first JSON object in
    the response text is used when present. Otherwise a bare one-word
    answer (yes/no/clear/blocked) is accepted. Anything else is invalid.
"""

import base64
import json
import logging
import re
import time
from typing import Optional

import requests

from vicinity_condition.classifier.engine import (
    ClassifierTimeout,
    ClassifierUnavailable,
    InvalidClassifierResponse,
)
from vicinity_condition.stream.frame import Frame
from vicinity_condition.stream.image_codec import ImageEncodeError, encode_frame_png


logger = logging.getLogger(__name__)


_CLEAR_WORDS = {"yes", "clear", "true"}
_BLOCKED_WORDS = {"no", "blocked", "false"}


def parse_vicinity_answer(text: str) -> bool:
    """
    Interpret model output as a vicinity verdict.

    Args:
        text: Raw response text from the model

    Returns:
        True if the model says the vicinity is clear, False if blocked

    Raises:
        InvalidClassifierResponse: If no verdict can be read from text
    """
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        try:
            payload = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            payload = None

        if isinstance(payload, dict):
            verdict = payload.get("clear")
            if isinstance(verdict, bool):
                return verdict
            raise InvalidClassifierResponse(
                f"Model JSON has no boolean 'clear' field: {text[:200]!r}"
            )

    word = re.sub(r"[^a-z]", "", text.strip().lower())
    if word in _CLEAR_WORDS:
        return True
    if word in _BLOCKED_WORDS:
        return False

    raise InvalidClassifierResponse(f"Unrecognized model answer: {text[:200]!r}")


class LLMClassifierEngine:
    """
    Vision-LLM classifier over HTTP.

    Attributes:
        url: Base URL of the model server (e.g. http://localhost:11434)
        model: Model name to request
    """

    def __init__(
        self,
        url: str = "http://localhost:11434",
        model: str = "llava:7b",
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize LLM classifier engine.

        Args:
            url: Base URL of the Ollama-compatible server
            model: Vision model name
            session: HTTP session to use (a new one if None)
        """
        self.url = url.rstrip("/")
        self.model = model
        self._session = session or requests.Session()

        self._call_count: int = 0
        self._error_count: int = 0

        logger.info(f"LLMClassifierEngine initialized: url={self.url}, model={model}")

    def classify(self, frame: Frame, prompt: str, timeout: float) -> bool:
        """
        Ask the model whether the vicinity in frame is clear.

        Args:
            frame: Frame to judge
            prompt: Question sent with the image
            timeout: HTTP timeout in seconds

        Returns:
            True if clear, False if blocked
        """
        self._call_count += 1

        try:
            image_b64 = base64.b64encode(encode_frame_png(frame)).decode("ascii")
        except ImageEncodeError as e:
            self._error_count += 1
            raise InvalidClassifierResponse(f"Could not encode frame for model: {e}")

        payload = {
            "model": self.model,
            "prompt": prompt,
            "images": [image_b64],
            "stream": False,
            "format": "json",
        }

        t0 = time.monotonic()
        try:
            response = self._session.post(
                f"{self.url}/api/generate",
                json=payload,
                timeout=timeout,
            )
        except requests.Timeout as e:
            self._error_count += 1
            raise ClassifierTimeout(f"Model request timed out: {e}")
        except requests.RequestException as e:
            self._error_count += 1
            raise ClassifierUnavailable(f"Model request failed: {e}")

        if response.status_code != 200:
            self._error_count += 1
            raise ClassifierUnavailable(
                f"Model server returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            self._error_count += 1
            raise InvalidClassifierResponse(f"Model server returned non-JSON body: {e}")

        text = (data or {}).get("response", "") if isinstance(data, dict) else ""
        if not isinstance(text, str) or not text.strip():
            self._error_count += 1
            raise InvalidClassifierResponse("Model response is empty")

        try:
            clear = parse_vicinity_answer(text)
        except InvalidClassifierResponse:
            self._error_count += 1
            raise

        logger.debug(
            f"LLM verdict: frame={frame.frame_id}, clear={clear}, "
            f"elapsed={(time.monotonic() - t0) * 1000:.0f}ms"
        )
        return clear

    def close(self) -> None:
        self._session.close()

    def get_metrics(self) -> dict:
        """Get engine metrics for observability."""
        return {
            "call_count": self._call_count,
            "error_count": self._error_count,
            "model": self.model,
        }
