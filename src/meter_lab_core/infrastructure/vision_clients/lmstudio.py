"""
LMStudio (OpenAI-compatible API) vision client
"""

import os
import time

import openai
from openai import OpenAI

from meter_lab_core.domain.value_objects import VisionResponse
from meter_lab_core.infrastructure.vision_clients.base import (
    RetryMixin,
    VisionClient,
    encode_image,
    guess_media_type,
)


class LMStudioVisionClient(RetryMixin, VisionClient):
    """Vision client using LMStudio (OpenAI-compatible API)"""

    def __init__(
        self,
        model_name: str,
        base_url: str | None = None,
        api_key: str | None = None,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        max_tokens: int = 1024,
    ):
        """
        Args:
            model_name: Model name (e.g. lmstudio/qwen2.5-vl-7b)
            base_url: LMStudio API endpoint (falls back to LMSTUDIO_BASE_URL env var if not specified)
            api_key: API key (falls back to LMSTUDIO_API_KEY env var if not specified; usually not required for LMStudio)
            max_retries: Maximum number of retries (default: 3)
            retry_delay_seconds: Base delay for exponential backoff (default: 1.0)
            max_tokens: Default output token limit (default: 1024)
        """
        self.model_name = model_name
        # Strip the lmstudio/ prefix to get the model name for the API
        self.api_model_name = model_name.removeprefix("lmstudio/")
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.max_tokens = max_tokens

        # Configuration priority: argument > environment variable > default value
        base_url = base_url or os.environ.get("LMSTUDIO_BASE_URL", "http://localhost:1234/v1")
        api_key = api_key or os.environ.get("LMSTUDIO_API_KEY", "lm-studio")

        self.base_url = base_url
        self.client = OpenAI(base_url=base_url, api_key=api_key)

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
        content: list[dict] = []
        for i, data in enumerate(images):
            if labels:
                content.append({"type": "text", "text": labels[i]})
            data_url = f"data:{guess_media_type(data)};base64,{encode_image(data)}"
            content.append({"type": "image_url", "image_url": {"url": data_url}})
        content.append({"type": "text", "text": instruction})

        def _call():
            start_time = time.time()
            response = self.client.chat.completions.create(
                model=self.api_model_name,
                messages=[{"role": "user", "content": content}],
                temperature=0.0,
                max_tokens=max_tokens or self.max_tokens,
            )
            end_time = time.time()

            latency_ms = int((end_time - start_time) * 1000)
            output = (response.choices[0].message.content or "").strip()

            # Retrieve token usage
            input_tokens = 0
            output_tokens = 0
            if response.usage:
                input_tokens = response.usage.prompt_tokens or 0
                output_tokens = response.usage.completion_tokens or 0

            return VisionResponse(
                output=output,
                latency_ms=latency_ms,
                model_name=self.model_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )

        return self._with_retry(
            _call,
            retryable_exceptions=(
                openai.APIConnectionError,
                openai.RateLimitError,
                openai.APIStatusError,
            ),
        )
