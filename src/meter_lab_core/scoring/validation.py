"""
Result validation

Plausibility checks on an extracted reading. Issues are informational: they
are recorded with the run and never change its status.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field

from meter_lab_core.domain.constants import CONFIDENCE_LOW, CONFIDENCE_MEDIUM, MAX_PLAUSIBLE_READING, PRIMARY_FIELD

ISSUE_NO_RESULT = "No result"
ISSUE_FORMAT = "Reading format mismatch"
ISSUE_NUMERIC = "Invalid numeric value"
ISSUE_TOO_HIGH = "Reading seems too high"
ISSUE_LOW_CONFIDENCE = "Low confidence"


@dataclass
class ValidationReport:
    """Outcome of validate_reading"""
    issues: list[str] = field(default_factory=list)
    format_ok: bool = True
    plausible: bool = True
    confident: bool = False

    @property
    def valid(self) -> bool:
        return not self.issues

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "issues": list(self.issues),
            "checks": {
                "format": self.format_ok,
                "plausibility": self.plausible,
                "confidence": self.confident,
            },
        }


def _parse_number(reading: str) -> float | None:
    try:
        return float(reading.replace(",", ".", 1).replace(" ", ""))
    except ValueError:
        return None


def validate_reading(
    result: dict | None,
    format_regex: str | None = None,
    *,
    primary_field: str = PRIMARY_FIELD,
) -> ValidationReport:
    """
    Check an extracted payload for plausibility

    Args:
        result: Payload with the primary field and "confidence"
        format_regex: Expected reading format (search semantics)
        primary_field: Key of the reading in the payload

    Returns:
        ValidationReport
    """
    report = ValidationReport()
    if not result:
        report.issues.append(ISSUE_NO_RESULT)
        report.plausible = False
        return report

    reading = result.get(primary_field)
    if reading:
        reading = str(reading)
        if format_regex and not re.search(format_regex, reading):
            report.issues.append(ISSUE_FORMAT)
            report.format_ok = False

        number = _parse_number(reading)
        if number is None or number < 0:
            report.issues.append(ISSUE_NUMERIC)
            report.plausible = False
        elif number > MAX_PLAUSIBLE_READING:
            report.issues.append(ISSUE_TOO_HIGH)
            report.plausible = False

    try:
        confidence = float(result.get("confidence") or 0.0)
    except (TypeError, ValueError):
        confidence = 0.0
    if not math.isfinite(confidence):
        confidence = 0.0
    if confidence < CONFIDENCE_LOW:
        report.issues.append(ISSUE_LOW_CONFIDENCE)
    report.confident = confidence >= CONFIDENCE_MEDIUM

    return report
