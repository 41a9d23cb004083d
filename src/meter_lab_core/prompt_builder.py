"""
Prompt Builder

Builds the instructions sent to the vision model.

- recognition: composed layer prompt + fixed output-schema instruction
  (+ a stricter suffix on extra multi-pass passes)
- model fragment: generated from a meter model's structured fields
  (extraction zones, display characteristics, legacy index format)
- duplicate check: candidate vs. an enumerated batch of reference models
"""

from __future__ import annotations

OUTPUT_SCHEMA_INSTRUCTION = """Respond ONLY with a valid JSON object:
{
  "type": "gas | water | electricity | unknown",
  "serial_number": "string or null",
  "reading": "the index exactly as displayed, decimals separated by a comma",
  "reading_day": "string or null",
  "reading_night": "string or null",
  "confidence": 0.0 to 1.0,
  "explanation": "short explanation"
}"""

STRICT_PASS_SUFFIX = (
    "CAUTION: Check every digit with extreme precision. "
    "When in doubt about a digit, report the LOWER one."
)

_ZONE_DESCRIPTIONS = {
    "index": ("INDEX", "The main index display is located here."),
    "serial": ("SERIAL NUMBER", "The meter serial number is visible here."),
    "ean": ("EAN CODE", "The EAN code / barcode is visible here."),
    "meter": ("METER", "Overall meter area."),
}


def build_recognition_prompt(effective_prompt: str, strict: bool = False) -> str:
    """
    Build the recognition instruction

    Args:
        effective_prompt: Composed layer prompt
        strict: Append the stricter re-check suffix (extra multi-pass passes)

    Returns:
        Instruction string
    """
    parts = [p for p in (effective_prompt, OUTPUT_SCHEMA_INSTRUCTION) if p]
    if strict:
        parts.append(STRICT_PASS_SUFFIX)
    return "\n\n".join(parts)


def _format_zone(zone: dict) -> str:
    position = (
        f"Position [{zone.get('x', 0)}%, {zone.get('y', 0)}%], "
        f"Size [{zone.get('width', 0)}% x {zone.get('height', 0)}%]."
    )
    known = _ZONE_DESCRIPTIONS.get(zone.get("type", ""))
    if known:
        title, hint = known
        return f"- {title} ZONE: {position} {hint}"
    label = (zone.get("label") or "custom").upper()
    return f"- {label} ZONE: {position}"


def _zones_section(zones: list[dict]) -> str:
    lines = [
        "=== REGIONS OF INTEREST ===",
        "The following zones have been identified on this meter model:",
    ]
    lines.extend(_format_zone(z) for z in zones)
    lines.append("")
    lines.append("Focus your analysis on these zones.")
    return "\n".join(lines)


def _display_section(vc: dict) -> str:
    lines = ["=== DISPLAY CHARACTERISTICS ==="]
    if vc.get("display_type"):
        lines.append(f"- Display type: {vc['display_type']}")
    if vc.get("num_digits") is not None:
        lines.append(f"- Expected INTEGER digits: {vc['num_digits']}")
    if vc.get("num_decimals") is not None:
        lines.append(f"- Expected DECIMAL digits: {vc['num_decimals']}")
    if vc.get("decimal_color"):
        lines.append(f"- Decimal digit color: {vc['decimal_color']}")
    if vc.get("format_regex"):
        lines.append(f"- Expected format (regex): {vc['format_regex']}")

    if vc.get("num_digits") is not None or vc.get("num_decimals") is not None:
        digits = vc.get("num_digits") or 5
        decimals = vc.get("num_decimals") or 3
        lines.append("")
        lines.append(
            f"CHECK: the index should have about {digits} integer digits "
            f"and {decimals} decimals (format: {'X' * digits},{'X' * decimals})."
        )
    return "\n".join(lines)


def _index_section(ic: dict) -> str | None:
    lines = []
    if ic.get("integerDigits"):
        lines.append(f"- Integer digits: {ic['integerDigits']}")
    if ic.get("decimalDigits"):
        lines.append(f"- Decimals: {ic['decimalDigits']}")
    if not lines:
        return None
    return "\n".join(["=== INDEX FORMAT ===", *lines])


def build_model_fragment(
    specific_prompt: str = "",
    extraction_zones: list[dict] | None = None,
    visual_characteristics: dict | None = None,
    index_config: dict | None = None,
) -> str:
    """
    Build the model layer's prompt fragment

    The legacy index format is only used when no display characteristics
    are defined.

    Args:
        specific_prompt: Manually written model instructions
        extraction_zones: Zones with type, x, y, width, height (percent) and optional label
        visual_characteristics: display_type, num_digits, num_decimals, decimal_color, format_regex
        index_config: Legacy format with integerDigits / decimalDigits

    Returns:
        Fragment string (empty when the model defines nothing)
    """
    sections = []
    if specific_prompt:
        sections.append(specific_prompt)
    if extraction_zones:
        sections.append(_zones_section(extraction_zones))
    if visual_characteristics:
        sections.append(_display_section(visual_characteristics))
    elif index_config:
        section = _index_section(index_config)
        if section:
            sections.append(section)
    return "\n\n".join(sections)


def build_duplicate_prompt(reference_descriptions: list[str]) -> str:
    """
    Build the duplicate-model check instruction

    The first image is the candidate; the following images are the references,
    numbered from 1 in the order of reference_descriptions.

    Args:
        reference_descriptions: One description per reference image

    Returns:
        Instruction string
    """
    listing = "\n".join(f"Model {i}: {desc}" for i, desc in enumerate(reference_descriptions, start=1))
    return f"""You are an expert in utility meter recognition.

Compare the first photo (the candidate) with the existing meter models shown after it.

Existing models:
{listing}

Decide whether the candidate is the same meter model as one of the existing models.

Comparison criteria:
- Visible brand / manufacturer
- Shape and design of the casing
- Display type (mechanical, digital)
- Layout of the elements
- Characteristic colors

Respond ONLY with a valid JSON object:
{{
  "isDuplicate": true or false,
  "matchedModelIndex": number or null,
  "confidence": 0 to 100,
  "reason": "short explanation"
}}

If isDuplicate is true, matchedModelIndex is the 1-based index of the matching model."""


def duplicate_labels(count: int) -> list[str]:
    """Captions placed before each image of a duplicate check (candidate first)"""
    return ["Candidate photo:"] + [f"Model {i}:" for i in range(1, count + 1)]
