"""
Vertex AI (Google GenAI SDK) vision client
"""

import os
import time

from google import genai
from google.api_core import exceptions as google_exceptions
from google.genai.types import GenerateContentConfig, HttpOptions, Part

from meter_lab_core.domain.value_objects import VisionResponse
from meter_lab_core.infrastructure.vision_clients.base import RetryMixin, VisionClient, guess_media_type


class VertexAIVisionClient(RetryMixin, VisionClient):
    """Vision client using Google GenAI SDK (via Vertex AI)"""

    def __init__(
        self,
        model_name: str,
        project_id: str | None = None,
        location: str | None = None,
        timeout_seconds: int = 120,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        max_tokens: int = 1024,
    ):
        """
        Args:
            model_name: Model name (e.g. gemini-2.5-pro, gemini-2.5-flash)
            project_id: GCP project ID (falls back to environment variable if not specified)
            location: Region (defaults to "global")
            timeout_seconds: Timeout in seconds (default: 120)
            max_retries: Maximum number of retries (default: 3)
            retry_delay_seconds: Base delay for exponential backoff (default: 1.0)
            max_tokens: Default output token limit (default: 1024)
        """
        self.model_name = model_name
        self.project_id = project_id or os.environ.get("GCP_PROJECT_ID")
        self.location = location or "global"
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.max_tokens = max_tokens

        if not self.project_id:
            raise ValueError("GCP_PROJECT_ID is not set")

        # Timeout is configured via HttpOptions (milliseconds)
        self.client = genai.Client(
            vertexai=True,
            project=self.project_id,
            location=self.location,
            http_options=HttpOptions(timeout=timeout_seconds * 1000),
        )

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
        contents: list = []
        for i, data in enumerate(images):
            if labels:
                contents.append(labels[i])
            contents.append(Part.from_bytes(data=data, mime_type=guess_media_type(data)))
        contents.append(instruction)

        # temperature=0 for reproducibility
        generation_config = GenerateContentConfig(
            temperature=0.0,
            max_output_tokens=max_tokens or self.max_tokens,
        )

        def _call():
            start_time = time.time()
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=generation_config,
            )
            end_time = time.time()

            latency_ms = int((end_time - start_time) * 1000)

            # Retrieve token usage
            input_tokens = 0
            output_tokens = 0
            if hasattr(response, "usage_metadata") and response.usage_metadata:
                input_tokens = getattr(response.usage_metadata, "prompt_token_count", 0) or 0
                output_tokens = getattr(response.usage_metadata, "candidates_token_count", 0) or 0

            return VisionResponse(
                output=(response.text or "").strip(),
                latency_ms=latency_ms,
                model_name=self.model_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )

        return self._with_retry(
            _call,
            retryable_exceptions=(
                google_exceptions.DeadlineExceeded,
                google_exceptions.ServiceUnavailable,
                google_exceptions.ResourceExhausted,
            ),
        )
