"""
Response parser

Extracts the first balanced JSON object from free-text model output.

The scan is a single linear pass over at most MAX_SCAN_CHARS characters that
tracks brace depth and skips braces inside JSON string literals. Leading
prose, markdown fences and trailing commentary are tolerated.
"""

from __future__ import annotations

import json

from meter_lab_core.domain.errors import ParseError

MAX_SCAN_CHARS = 200_000
MAX_DEPTH = 64


def find_json_object(text: str, max_chars: int = MAX_SCAN_CHARS) -> str | None:
    """
    Locate the first balanced {...} substring

    Args:
        text: Free-text response
        max_chars: Scan bound; braces beyond it are not considered

    Returns:
        The substring, or None when no balanced object starts within the bound
    """
    start = text.find("{", 0, max_chars)
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    end = min(len(text), max_chars)

    for i in range(start, end):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
            if depth > MAX_DEPTH:
                return None
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def extract_json_object(text: str) -> dict:
    """
    Parse the first balanced JSON object in a response

    Args:
        text: Free-text response

    Returns:
        The decoded object

    Raises:
        ParseError: If no balanced object is found or it is not valid JSON
    """
    candidate = find_json_object(text or "")
    if candidate is None:
        raise ParseError("No JSON object found in response", raw=text or "")
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in response: {e.msg}", raw=text) from e
    if not isinstance(data, dict):
        raise ParseError("JSON payload is not an object", raw=text)
    return data
