"""
Vision client base class and retry mixin

Defines the abstract base class inherited by all vision-inference clients
and the RetryMixin that consolidates shared retry logic.
"""

import base64
import time
from abc import ABC, abstractmethod

from meter_lab_core.domain.value_objects import VisionResponse


class RetryMixin:
    """Exponential backoff retry. Subclasses set self.max_retries."""

    max_retries: int = 3
    retry_delay_seconds: float = 1.0

    def _with_retry(self, fn, retryable_exceptions=(Exception,)):
        """
        Execute with exponential backoff retry.

        Args:
            fn: The function to retry (a callable with no arguments)
            retryable_exceptions: Tuple of exception types eligible for retry

        Returns:
            The return value of fn()

        Raises:
            ValueError: If max_retries is less than 1
            Exception: The last exception if max retries are exceeded
        """
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1.")

        last_exception: Exception | None = None
        for attempt in range(self.max_retries):
            try:
                return fn()
            except retryable_exceptions as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay_seconds * 2 ** attempt)

        assert last_exception is not None
        raise last_exception


def guess_media_type(data: bytes) -> str:
    """Guess the image media type from its magic bytes (defaults to JPEG)"""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def encode_image(data: bytes) -> str:
    """Base64-encode image bytes for JSON transport"""
    return base64.b64encode(data).decode("ascii")


class VisionClient(ABC):
    """Abstract base class for vision-inference clients"""

    model_name: str

    @abstractmethod
    def infer(
        self,
        images: list[bytes],
        instruction: str,
        *,
        labels: list[str] | None = None,
        max_tokens: int | None = None,
    ) -> VisionResponse:
        """
        Send images plus an instruction and retrieve the response

        Args:
            images: Raw image bytes, in presentation order
            instruction: Instruction text placed after the images
            labels: Optional caption emitted before each image (same length as images)
            max_tokens: Output token limit (client default if not specified)

        Returns:
            VisionResponse: The model's response
        """
        pass
