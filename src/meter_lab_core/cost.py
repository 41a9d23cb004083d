"""
Cost Calculation

Token cost of recognition runs.
"""

import logging

from meter_lab_core.domain.constants import DEFAULT_MODEL, MODEL_PRICING, _LOCAL_MODEL_PRICING
from meter_lab_core.domain.value_objects import CostMetrics

logger = logging.getLogger(__name__)


def get_model_pricing(model_name: str) -> dict[str, float]:
    """
    Look up USD per 1M token pricing for a model

    Local models are free. Unknown hosted models fall back to the default
    model's pricing.

    Args:
        model_name: Model name as reported by the vision client

    Returns:
        {"input": price, "output": price}
    """
    if model_name.startswith("lmstudio/"):
        return _LOCAL_MODEL_PRICING
    if model_name in MODEL_PRICING:
        return MODEL_PRICING[model_name]
    for known, pricing in MODEL_PRICING.items():
        if model_name and (model_name.startswith(known) or known.startswith(model_name)):
            return pricing
    logger.warning("No pricing for model '%s', using %s pricing", model_name, DEFAULT_MODEL)
    return MODEL_PRICING[DEFAULT_MODEL]


def calculate_cost(input_tokens: int, output_tokens: int, model_name: str) -> float:
    """
    Calculate the token cost of one or more inference calls

    Cost = input_tokens / 1e6 * input price + output_tokens / 1e6 * output price

    Args:
        input_tokens: Input token count
        output_tokens: Output token count
        model_name: Model name

    Returns:
        Cost in USD
    """
    pricing = get_model_pricing(model_name)
    metrics = CostMetrics(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        input_price_per_m=pricing["input"],
        output_price_per_m=pricing["output"],
    )
    return metrics.total_cost
