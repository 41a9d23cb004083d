"""
Recognition Execution

Runs one photo through the vision model under an EffectiveConfig and records
the outcome as a RunResult.

Run lifecycle: pending -> running -> completed | failed (-> evaluated when the
photo carries ground truth).
"""

from __future__ import annotations

import logging
import math
import time

from meter_lab_core.config_composer import EffectiveConfig
from meter_lab_core.cost import calculate_cost
from meter_lab_core.domain.constants import MULTI_PASS_AGREEMENT_BONUS, PRIMARY_FIELD
from meter_lab_core.domain.entities import Photo, RunResult, RunStatus, utcnow
from meter_lab_core.domain.errors import ParseError, TransportError
from meter_lab_core.domain.value_objects import VisionResponse
from meter_lab_core.infrastructure.image_source import ImageSource
from meter_lab_core.infrastructure.vision_clients.base import VisionClient
from meter_lab_core.prompt_builder import build_recognition_prompt
from meter_lab_core.scoring.ground_truth import is_correct, normalize_reading
from meter_lab_core.scoring.response_parser import extract_json_object
from meter_lab_core.scoring.validation import validate_reading

logger = logging.getLogger(__name__)


def normalize_confidence(value) -> float:
    """Coerce a model-reported confidence into [0, 1] (percentages are scaled down)"""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(confidence):
        return 0.0
    if 1.0 < confidence <= 100.0:
        confidence /= 100.0
    return min(max(confidence, 0.0), 1.0)


class RecognitionRunner:
    """Executes recognition runs against one vision client"""

    def __init__(
        self,
        client: VisionClient,
        image_source: ImageSource | None = None,
        *,
        primary_field: str = PRIMARY_FIELD,
        max_tokens: int | None = None,
    ) -> None:
        self.client = client
        self.image_source = image_source or ImageSource()
        self.primary_field = primary_field
        self.max_tokens = max_tokens

    def _infer(self, image: bytes, instruction: str) -> VisionResponse:
        try:
            return self.client.infer([image], instruction, max_tokens=self.max_tokens)
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

    def execute(
        self,
        photo: Photo,
        config: EffectiveConfig,
        run: RunResult | None = None,
        image: bytes | None = None,
    ) -> RunResult:
        """
        Execute a recognition run

        Args:
            photo: Photo under test
            config: Composed configuration
            run: Pending RunResult to fill in (a new one is created if omitted)
            image: Image bytes (fetched from photo.image_ref if omitted)

        Returns:
            RunResult in status completed, evaluated or failed
        """
        if run is None:
            run = RunResult(photo_id=photo.id, config_id=config.config_id)
        run.status = RunStatus.RUNNING
        run.model_name = getattr(self.client, "model_name", "")

        try:
            if image is None:
                image = self.image_source.fetch(photo.image_ref)
            responses, latency_ms = self._run_passes(image, config)
        except TransportError as e:
            logger.warning("Run %s failed for photo %s: %s", run.id, photo.id, e)
            run.status = RunStatus.FAILED
            run.actual_result = {"error": str(e)}
            run.confidence = None
            return run

        run.latency_ms = latency_ms
        run.model_name = responses[0].model_name or run.model_name
        run.input_tokens = sum(r.input_tokens for r in responses)
        run.output_tokens = sum(r.output_tokens for r in responses)
        run.cost_usd = calculate_cost(run.input_tokens, run.output_tokens, run.model_name)

        run.status = RunStatus.COMPLETED
        payloads = []
        for i, response in enumerate(responses):
            try:
                payloads.append(extract_json_object(response.output))
            except ParseError as e:
                if i == 0:
                    logger.info("Run %s returned no usable JSON: %s", run.id, e)
                    run.actual_result = {"error": str(e), "raw": e.raw}
                    run.confidence = 0.0
                    run.needs_review = True
                    return run
                payloads.append({"error": str(e), "raw": e.raw})

        primary = payloads[0]

        result = dict(primary)
        confidence = normalize_confidence(primary.get("confidence"))

        if len(payloads) > 1:
            readings = [normalize_reading(p.get(self.primary_field)) for p in payloads]
            agreed = all(r and r == readings[0] for r in readings)
            if agreed:
                confidence = min(1.0, confidence + MULTI_PASS_AGREEMENT_BONUS)
            result["multi_pass"] = {
                "passes": [
                    {
                        "pass": "original" if i == 0 else "strict",
                        "reading": p.get(self.primary_field),
                        "confidence": normalize_confidence(p.get("confidence")),
                    }
                    for i, p in enumerate(payloads)
                ],
                "results_match": agreed,
            }

        result["confidence"] = confidence
        result["validation"] = validate_reading(
            primary, config.reading_format_regex, primary_field=self.primary_field,
        ).to_dict()
        run.actual_result = result
        run.confidence = confidence
        run.needs_review = confidence < config.min_confidence

        correct = is_correct(primary, photo.ground_truth, self.primary_field)
        if correct is not None:
            run.is_correct = correct
            run.status = RunStatus.EVALUATED
            run.evaluated_at = utcnow()

        return run

    def _run_passes(self, image: bytes, config: EffectiveConfig) -> tuple[list[VisionResponse], int]:
        """
        Call the model once per configured pass

        The first pass uses the plain instruction; extra passes append the
        stricter re-check suffix. A transport failure on an extra pass ends
        the multi-pass early and keeps the passes already made.

        Returns:
            (responses, total latency in ms)
        """
        passes = max(1, config.multi_pass_count)
        responses: list[VisionResponse] = []
        start = time.perf_counter()

        responses.append(self._infer(image, build_recognition_prompt(config.prompt)))
        strict_instruction = build_recognition_prompt(config.prompt, strict=True)
        for _ in range(passes - 1):
            try:
                responses.append(self._infer(image, strict_instruction))
            except TransportError as e:
                logger.warning("Extra recognition pass failed, keeping %d pass(es): %s", len(responses), e)
                break

        latency_ms = int((time.perf_counter() - start) * 1000)
        return responses, latency_ms
