"""
Health Check

Performs connectivity checks for vision models before a batch is started.
"""

from typing import Callable

from meter_lab_core.domain.entities import HealthCheckResult
from meter_lab_core.infrastructure.vision_clients.base import VisionClient


HEALTH_CHECK_INSTRUCTION = "Reply with only 'OK' if you can read this message."


def health_check_model(
    model_name: str,
    create_client_fn: Callable[[str], VisionClient],
) -> HealthCheckResult:
    """
    Execute a health check for a single model.

    Args:
        model_name: Name of the model to check
        create_client_fn: Function to create a vision client

    Returns:
        HealthCheckResult: Health check result
    """
    try:
        client = create_client_fn(model_name)
        response = client.infer([], HEALTH_CHECK_INSTRUCTION, max_tokens=16)
        if not response.output:
            return HealthCheckResult(
                model_name=model_name,
                success=False,
                latency_ms=response.latency_ms,
                error="Empty response",
            )
        return HealthCheckResult(
            model_name=model_name,
            success=True,
            latency_ms=response.latency_ms,
            error=None,
        )
    except Exception as e:
        return HealthCheckResult(
            model_name=model_name,
            success=False,
            latency_ms=None,
            error=str(e),
        )


def run_health_check(
    models: list[str],
    create_client_fn: Callable[[str], VisionClient] | None = None,
) -> tuple[list[str], list[HealthCheckResult]]:
    """
    Execute health checks for all models.

    Uses meter_lab_core.infrastructure.vision_clients.create_client if create_client_fn is not specified.

    Args:
        models: List of model names to check
        create_client_fn: Function to create a vision client (optional)

    Returns:
        tuple: (list of available models, list of all check results)
    """
    if create_client_fn is None:
        from meter_lab_core.infrastructure.vision_clients import create_client
        create_client_fn = create_client

    print("=== Vision Model Health Check ===\n")
    results = []
    available_models = []

    for model_name in models:
        print(f"  {model_name}... ", end="", flush=True)
        result = health_check_model(model_name, create_client_fn)
        results.append(result)

        if result.success:
            print(f"OK ({result.latency_ms}ms)")
            available_models.append(model_name)
        else:
            # Display only the first 100 characters of the error message
            error_short = result.error[:100] if result.error else "Unknown error"
            print("FAILED")
            print(f"    Error: {error_short}")

    print()
    return available_models, results
