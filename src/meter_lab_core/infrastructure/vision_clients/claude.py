"""
Anthropic Claude vision client
"""

import os
import time

from anthropic import Anthropic, APIConnectionError, RateLimitError, APIStatusError

from meter_lab_core.domain.value_objects import VisionResponse
from meter_lab_core.infrastructure.vision_clients.base import (
    RetryMixin,
    VisionClient,
    encode_image,
    guess_media_type,
)


class ClaudeVisionClient(RetryMixin, VisionClient):
    """Claude vision client using the Anthropic API"""

    def __init__(
        self,
        model_name: str,
        api_key: str | None = None,
        timeout_seconds: int = 120,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        max_tokens: int = 1024,
    ):
        """
        Args:
            model_name: Model name (e.g. claude-sonnet-4-20250514)
            api_key: Anthropic API key (falls back to environment variable if not specified)
            timeout_seconds: Request timeout in seconds (default: 120)
            max_retries: Maximum number of retries (default: 3)
            retry_delay_seconds: Base delay for exponential backoff (default: 1.0)
            max_tokens: Default output token limit (default: 1024)
        """
        self.model_name = model_name
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.max_tokens = max_tokens

        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY is not set")

        self.client = Anthropic(api_key=self.api_key, timeout=timeout_seconds)

    def _build_content(
        self,
        images: list[bytes],
        instruction: str,
        labels: list[str] | None,
    ) -> list[dict]:
        """Build the message content blocks (optional label, image, ..., instruction)"""
        content: list[dict] = []
        for i, data in enumerate(images):
            if labels:
                content.append({"type": "text", "text": labels[i]})
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": guess_media_type(data),
                    "data": encode_image(data),
                },
            })
        content.append({"type": "text", "text": instruction})
        return content

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

        Raises:
            Exception: If the maximum number of retries is exceeded
        """
        content = self._build_content(images, instruction, labels)

        def _call():
            start_time = time.time()
            response = self.client.messages.create(
                model=self.model_name,
                max_tokens=max_tokens or self.max_tokens,
                temperature=0.0,
                messages=[{"role": "user", "content": content}],
            )
            end_time = time.time()

            latency_ms = int((end_time - start_time) * 1000)
            output = "".join(
                block.text for block in response.content if getattr(block, "type", "") == "text"
            ).strip()

            # Retrieve token usage
            input_tokens = getattr(response.usage, "input_tokens", 0) or 0
            output_tokens = getattr(response.usage, "output_tokens", 0) or 0

            return VisionResponse(
                output=output,
                latency_ms=latency_ms,
                model_name=self.model_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )

        return self._with_retry(
            _call,
            retryable_exceptions=(APIConnectionError, RateLimitError, APIStatusError),
        )
