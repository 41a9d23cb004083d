"""
Ground-truth comparison

Decides run correctness by exact match on the primary field after
normalisation.
"""

from __future__ import annotations

import re
import unicodedata

from meter_lab_core.domain.constants import PRIMARY_FIELD


def normalize_reading(value) -> str:
    """
    Normalize a meter reading for comparison

    - Unicode normalization (NFKC)
    - Remove all whitespace
    - Treat "," and "." as the same decimal separator

    Args:
        value: Reading as returned by the model or entered by a human

    Returns:
        Normalized string ("" for None)
    """
    if value is None:
        return ""
    text = unicodedata.normalize("NFKC", str(value))
    text = re.sub(r"\s+", "", text)
    return text.replace(",", ".")


def is_correct(
    actual: dict | None,
    ground_truth: dict | None,
    primary_field: str = PRIMARY_FIELD,
) -> bool | None:
    """
    Compare an extracted payload against the ground truth

    Args:
        actual: Extracted payload
        ground_truth: Expected payload
        primary_field: Field compared

    Returns:
        True/False, or None when the ground truth does not define the field
    """
    if not ground_truth or ground_truth.get(primary_field) is None:
        return None
    expected = normalize_reading(ground_truth[primary_field])
    got = normalize_reading((actual or {}).get(primary_field))
    return expected == got
