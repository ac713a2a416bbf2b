"""
Vision Classifier Engine
========================

Classifier backend using Google Cloud Vision object localization.

This engine:
    - Sends the frame to the Vision API for object detection
    - Reports BLOCKED if any blocking label is found with enough confidence
    - Reports CLEAR otherwise
    - Maps API errors onto the ClassifierError hierarchy

Design Rules:
    - Fail fast on misconfiguration (missing library, bad credentials)
    - Never crash on API errors
    - The prompt is not used; the label list encodes the question
"""

import logging
from typing import Iterable, Optional

from vicinity_condition.classifier.engine import (
    ClassifierTimeout,
    ClassifierUnavailable,
    InvalidClassifierResponse,
)
from vicinity_condition.stream.frame import Frame
from vicinity_condition.stream.image_codec import ImageEncodeError, encode_frame_png


logger = logging.getLogger(__name__)


DEFAULT_BLOCKING_LABELS = ("person", "dog", "cat", "bicycle", "car", "chair", "box")


class VisionClassifierEngine:
    """
    Google Cloud Vision classifier.

    Attributes:
        blocking_labels: Lower-cased object names that block the vicinity
        confidence_threshold: Minimum detection score to count an object
    """

    def __init__(
        self,
        blocking_labels: Iterable[str] = DEFAULT_BLOCKING_LABELS,
        confidence_threshold: float = 0.6,
        credentials_path: Optional[str] = None,
        client: Optional[object] = None,
    ) -> None:
        """
        Initialize Vision classifier engine.

        Args:
            blocking_labels: Object names that make the vicinity blocked
            confidence_threshold: Minimum confidence for a detection
            credentials_path: Path to service account JSON (optional)
            client: Pre-built ImageAnnotatorClient (skips client setup)

        Raises:
            ImportError: If google-cloud-vision is not installed
        """
        self.blocking_labels = frozenset(label.lower() for label in blocking_labels)
        self.confidence_threshold = confidence_threshold

        self._client = client
        if self._client is None:
            self._init_client(credentials_path)

        logger.info(
            f"VisionClassifierEngine initialized: "
            f"labels={sorted(self.blocking_labels)}, "
            f"threshold={confidence_threshold}"
        )

    def _init_client(self, credentials_path: Optional[str]) -> None:
        """Initialize Google Cloud Vision client."""
        try:
            from google.cloud import vision
        except ImportError:
            raise ImportError(
                "google-cloud-vision is required for VisionClassifierEngine. "
                "Install with: pip install 'vicinity-condition[vision]'"
            )

        if credentials_path:
            self._client = vision.ImageAnnotatorClient.from_service_account_json(
                credentials_path
            )
            logger.info(f"Vision client initialized from: {credentials_path}")
        else:
            # Use default credentials (ADC)
            self._client = vision.ImageAnnotatorClient()
            logger.info("Vision client initialized with default credentials")

    def classify(self, frame: Frame, prompt: str, timeout: float) -> bool:
        """
        Detect blocking objects in frame.

        Args:
            frame: Frame to judge
            prompt: Unused by this backend
            timeout: RPC deadline in seconds

        Returns:
            True if no blocking object was detected
        """
        from google.api_core import exceptions as gexc
        from google.cloud import vision

        try:
            content = encode_frame_png(frame)
        except ImageEncodeError as e:
            raise InvalidClassifierResponse(f"Could not encode frame for Vision API: {e}")

        try:
            response = self._client.object_localization(
                image=vision.Image(content=content),
                timeout=timeout,
            )
        except gexc.DeadlineExceeded as e:
            raise ClassifierTimeout(f"Vision API deadline exceeded: {e}")
        except gexc.GoogleAPIError as e:
            raise ClassifierUnavailable(f"Vision API call failed: {e}")

        if response.error.message:
            raise InvalidClassifierResponse(f"Vision API: {response.error.message}")

        return self.is_clear(
            (obj.name, obj.score) for obj in response.localized_object_annotations
        )

    def is_clear(self, detections: Iterable[tuple]) -> bool:
        """
        Decide the verdict from (name, score) detections.

        Args:
            detections: Iterable of (object name, confidence score)

        Returns:
            False if any blocking label meets the threshold, else True
        """
        for name, score in detections:
            if name.lower() in self.blocking_labels and score >= self.confidence_threshold:
                logger.debug(f"Blocking object detected: {name} ({score:.2f})")
                return False
        return True

    def close(self) -> None:
        transport = getattr(self._client, "transport", None)
        if transport is not None:
            transport.close()
