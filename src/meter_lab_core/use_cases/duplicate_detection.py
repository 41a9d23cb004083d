"""
Duplicate-Model Detection

Asks the vision model whether a candidate photo shows a meter model that
already exists among the reference images.

References are checked in fixed-size batches (one call per batch, candidate
first). The scan stops at the first batch reporting a valid match.
"""

from __future__ import annotations

import logging

from meter_lab_core.domain.constants import DUPLICATE_BATCH_SIZE
from meter_lab_core.domain.errors import ParseError
from meter_lab_core.domain.value_objects import DuplicateCheckResult, ReferenceImage
from meter_lab_core.infrastructure.image_source import ImageSource
from meter_lab_core.infrastructure.vision_clients.base import VisionClient
from meter_lab_core.prompt_builder import build_duplicate_prompt, duplicate_labels
from meter_lab_core.scoring.response_parser import extract_json_object

logger = logging.getLogger(__name__)


def describe_reference(ref: ReferenceImage) -> str:
    """One-line description of a reference model for the prompt"""
    text = " ".join(part for part in (ref.manufacturer, ref.name) if part)
    if ref.meter_type:
        text += f" ({ref.meter_type})"
    return text


def partition(references: list[ReferenceImage], size: int) -> list[list[ReferenceImage]]:
    """Split references into consecutive batches of at most size items"""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [references[i:i + size] for i in range(0, len(references), size)]


def _confidence_percent(value) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if 0.0 < confidence <= 1.0:
        confidence *= 100.0
    return min(max(confidence, 0.0), 100.0)


def _matched_index(payload: dict, batch_len: int) -> int | None:
    """0-based index of the matched reference, None for no (valid) match"""
    if payload.get("isDuplicate") is not True:
        return None
    index = payload.get("matchedModelIndex")
    if isinstance(index, bool) or not isinstance(index, (int, float)) or int(index) != index:
        return None
    index = int(index)
    if not 1 <= index <= batch_len:
        return None
    return index - 1


def detect_duplicate(
    candidate_image: bytes,
    references: list[ReferenceImage],
    client: VisionClient,
    *,
    image_source: ImageSource | None = None,
    batch_size: int = DUPLICATE_BATCH_SIZE,
    max_tokens: int | None = 500,
) -> DuplicateCheckResult:
    """
    Check a candidate photo against existing reference models

    Unreadable references are dropped from their batch. A batch whose call
    fails or whose response cannot be parsed counts as "no match" and the scan
    moves on.

    Args:
        candidate_image: Candidate photo bytes
        references: Existing reference images, in scan order
        client: Vision client
        image_source: Fetches reference bytes
        batch_size: References per call
        max_tokens: Output token limit per call

    Returns:
        DuplicateCheckResult (not_applicable when no reference could be used;
        confidence on a 0-100 scale)
    """
    image_source = image_source or ImageSource()
    usable = 0
    calls = 0

    for batch in partition(references, batch_size):
        loaded = []
        for ref in batch:
            data = image_source.try_fetch(ref.image_ref)
            if data is not None:
                loaded.append((ref, data))
        if not loaded:
            continue
        usable += len(loaded)

        instruction = build_duplicate_prompt([describe_reference(ref) for ref, _ in loaded])
        images = [candidate_image] + [data for _, data in loaded]
        calls += 1
        try:
            response = client.infer(
                images,
                instruction,
                labels=duplicate_labels(len(loaded)),
                max_tokens=max_tokens,
            )
            payload = extract_json_object(response.output)
        except ParseError as e:
            logger.warning("Duplicate check batch %d unparseable, treated as no match: %s", calls, e)
            continue
        except Exception as e:
            logger.warning("Duplicate check batch %d failed, treated as no match: %s", calls, e)
            continue

        index = _matched_index(payload, len(loaded))
        if index is not None:
            matched = loaded[index][0]
            logger.info("Duplicate found in batch %d: %s", calls, matched.ref_id)
            return DuplicateCheckResult(
                is_duplicate=True,
                confidence=_confidence_percent(payload.get("confidence")),
                matched_ref=matched,
                reason=payload.get("reason"),
                batches_checked=calls,
            )

    if usable == 0:
        return DuplicateCheckResult(
            is_duplicate=False,
            confidence=0.0,
            reason="No usable reference images",
            not_applicable=True,
        )

    return DuplicateCheckResult(is_duplicate=False, confidence=0.0, batches_checked=calls)
