"""
Vision client factory

Creates the appropriate client instance based on the model name.
"""

from __future__ import annotations

from meter_lab_core.lab_config import LabConfig, load_config
from meter_lab_core.infrastructure.vision_clients.base import VisionClient
from meter_lab_core.infrastructure.vision_clients.vertex_ai import VertexAIVisionClient
from meter_lab_core.infrastructure.vision_clients.claude import ClaudeVisionClient
from meter_lab_core.infrastructure.vision_clients.lmstudio import LMStudioVisionClient


def create_client(model_name: str, config: LabConfig | None = None) -> VisionClient:
    """
    Create the appropriate client based on the model name

    Args:
        model_name: Model name
        config: LabConfig (loads from env if not provided)

    Returns:
        VisionClient: The appropriate client instance
    """
    if config is None:
        config = load_config()

    timeout = config.isolation.timeout_seconds
    retries = config.isolation.max_retries
    retry_delay = config.isolation.retry_delay_seconds
    max_tokens = config.recognition.max_tokens

    if model_name.startswith("lmstudio/"):
        return LMStudioVisionClient(
            model_name,
            base_url=config.lmstudio.base_url,
            api_key=config.lmstudio.api_key,
            max_retries=retries,
            retry_delay_seconds=retry_delay,
            max_tokens=max_tokens,
        )
    elif model_name.startswith("claude"):
        return ClaudeVisionClient(
            model_name,
            timeout_seconds=timeout,
            max_retries=retries,
            retry_delay_seconds=retry_delay,
            max_tokens=max_tokens,
        )
    else:
        return VertexAIVisionClient(
            model_name,
            timeout_seconds=timeout,
            max_retries=retries,
            retry_delay_seconds=retry_delay,
            max_tokens=max_tokens,
        )
