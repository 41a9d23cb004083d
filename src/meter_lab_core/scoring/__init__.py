"""
Scoring sub-package

Provides response parsing, ground-truth comparison, and plausibility validation.
"""

from meter_lab_core.scoring.ground_truth import is_correct, normalize_reading
from meter_lab_core.scoring.response_parser import extract_json_object, find_json_object
from meter_lab_core.scoring.validation import ValidationReport, validate_reading

__all__ = [
    # response parsing
    "extract_json_object",
    "find_json_object",
    # ground truth
    "is_correct",
    "normalize_reading",
    # validation
    "ValidationReport",
    "validate_reading",
]
