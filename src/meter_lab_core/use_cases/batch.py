"""
Batch Execution

Drives batches of recognition runs sequentially against the vision model,
isolating per-photo failures and supporting cooperative cancellation.

Batch lifecycle: draft -> running -> completed, with cancelled reachable from
draft and running. A batch whose runs did not all complete stays running and
can be resumed.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from meter_lab_core.config_composer import EffectiveConfig
from meter_lab_core.domain.constants import AB_MATERIALITY_THRESHOLD
from meter_lab_core.domain.entities import (
    Batch,
    BatchStatus,
    CorrectionRecord,
    Photo,
    PhotoStatus,
    RunResult,
    RunStatus,
    utcnow,
)
from meter_lab_core.domain.errors import InvalidTransitionError
from meter_lab_core.domain.value_objects import Comparison, Stats
from meter_lab_core.infrastructure.store import ExperimentStore
from meter_lab_core.use_cases.metrics import aggregate, batch_counters, compare_configs, window_since
from meter_lab_core.use_cases.recognition import RecognitionRunner

logger = logging.getLogger(__name__)


def dedup_photos(photos: list[Photo]) -> list[Photo]:
    """Drop photos whose content hash was already submitted (photos without a hash are kept)"""
    seen: set[str] = set()
    unique = []
    for photo in photos:
        if photo.content_hash:
            if photo.content_hash in seen:
                logger.info("Skipping duplicate photo %s (%s)", photo.id, photo.image_ref)
                continue
            seen.add(photo.content_hash)
        unique.append(photo)
    return unique


class BatchOrchestrator:
    """Sequential batch runner; the error boundary for per-photo failures"""

    def __init__(
        self,
        store: ExperimentStore,
        runner: RecognitionRunner,
        *,
        ab_threshold: float = AB_MATERIALITY_THRESHOLD,
    ) -> None:
        self.store = store
        self.runner = runner
        self.ab_threshold = ab_threshold

    def run_batch(
        self,
        photos: list[Photo],
        config: EffectiveConfig,
        *,
        name: str | None = None,
        folder_id: str | None = None,
        dedup: bool = False,
    ) -> Batch:
        """
        Run every photo under one config

        All runs are created pending before the first inference call, in
        submission order.

        Args:
            photos: Photos to run, in submission order
            config: Composed configuration
            name: Batch label
            folder_id: Folder this batch tests (counts as a folder test)
            dedup: Skip photos whose content hash repeats within the submission

        Returns:
            The batch with recomputed counters
        """
        if dedup:
            photos = dedup_photos(photos)

        batch = Batch(
            config_id=config.config_id,
            name=name or f"Batch {utcnow():%Y-%m-%d %H:%M}",
            folder_id=folder_id,
        )
        self.store.save_batch(batch)

        runs = [
            self.store.save_run(RunResult(photo_id=photo.id, config_id=config.config_id, batch_id=batch.id))
            for photo in photos
        ]
        batch.total_runs = len(runs)
        batch.status = BatchStatus.RUNNING
        batch.started_at = utcnow()
        self.store.save_batch(batch)

        logger.info("Batch %s started with %d run(s) under config %s", batch.id, len(runs), config.config_id)
        return self._execute(batch.id, list(zip(photos, runs)), config)

    def run_single(self, photo: Photo, config: EffectiveConfig) -> RunResult:
        """Ad-hoc run outside any batch"""
        run = self.store.save_run(RunResult(photo_id=photo.id, config_id=config.config_id))
        self.runner.execute(photo, config, run)
        self.store.save_run(run)
        self._mark_tested(photo)
        return run

    def cancel(self, batch_id: str) -> Batch:
        """
        Stop further submissions for a batch

        The run currently in flight, if any, finishes normally.

        Raises:
            InvalidTransitionError: If the batch is already completed or cancelled
        """
        batch = self.store.get_batch(batch_id)
        if batch.status not in (BatchStatus.DRAFT, BatchStatus.RUNNING):
            raise InvalidTransitionError("Batch", batch.status.value, BatchStatus.CANCELLED.value)
        batch.status = BatchStatus.CANCELLED
        batch.completed_at = utcnow()
        logger.info("Batch %s cancelled", batch_id)
        return self.store.save_batch(batch)

    def resume(
        self,
        batch_id: str,
        photos_by_id: dict[str, Photo] | None,
        config: EffectiveConfig,
    ) -> Batch:
        """
        Re-execute the pending and failed runs of a running batch

        Args:
            batch_id: Batch to resume
            photos_by_id: Photos keyed by id (looked up in the store when missing)
            config: The batch's configuration

        Raises:
            InvalidTransitionError: If the batch is not running
            ValueError: If config is not the batch's configuration
        """
        batch = self.store.get_batch(batch_id)
        if batch.status != BatchStatus.RUNNING:
            raise InvalidTransitionError("Batch", batch.status.value, BatchStatus.RUNNING.value)
        if config.config_id != batch.config_id:
            raise ValueError(f"Batch {batch_id} was created for config {batch.config_id}, got {config.config_id}")

        photos_by_id = photos_by_id or {}
        pairs = []
        for run in sorted(self.store.list_runs(batch_id=batch_id), key=lambda r: r.created_at):
            if run.status not in (RunStatus.PENDING, RunStatus.FAILED):
                continue
            photo = photos_by_id.get(run.photo_id) or self.store.get_photo(run.photo_id)
            run.status = RunStatus.PENDING
            run.actual_result = None
            run.confidence = None
            pairs.append((photo, self.store.save_run(run)))

        logger.info("Resuming batch %s with %d run(s)", batch_id, len(pairs))
        return self._execute(batch_id, pairs, config)

    def _execute(self, batch_id: str, pairs: list[tuple[Photo, RunResult]], config: EffectiveConfig) -> Batch:
        for i, (photo, run) in enumerate(pairs, start=1):
            if self.store.get_batch(batch_id).status == BatchStatus.CANCELLED:
                logger.info("Batch %s cancelled, %d run(s) left pending", batch_id, len(pairs) - i + 1)
                break

            try:
                self.runner.execute(photo, config, run)
            except Exception as e:
                logger.error("Run %s crashed for photo %s: %s", run.id, photo.id, e)
                run.status = RunStatus.FAILED
                run.actual_result = {"error": str(e)}
                run.confidence = None
            self.store.save_run(run)
            self._mark_tested(photo)
            logger.info("[%d/%d] batch %s photo %s -> %s", i, len(pairs), batch_id, photo.id, run.status.value)

        return self.refresh(batch_id)

    def _mark_tested(self, photo: Photo) -> None:
        if photo.status == PhotoStatus.PENDING:
            photo.status = PhotoStatus.TESTED
            self.store.save_photo(photo)

    def refresh(self, batch_id: str) -> Batch:
        """
        Recompute a batch's counters from its runs

        A running batch moves to completed once every run completed; a
        cancelled batch keeps its status.
        """
        batch = self.store.get_batch(batch_id)
        counters = batch_counters(self.store.list_runs(batch_id=batch_id))
        for key, value in counters.items():
            setattr(batch, key, value)

        if batch.status == BatchStatus.RUNNING and batch.completed_runs >= batch.total_runs:
            batch.status = BatchStatus.COMPLETED
            batch.completed_at = utcnow()
            logger.info(
                "Batch %s completed: %d/%d run(s), accuracy %s",
                batch_id, batch.completed_runs, batch.total_runs,
                "n/a" if batch.accuracy_rate is None else f"{batch.accuracy_rate:.1%}",
            )
        return self.store.save_batch(batch)

    def evaluate_run(
        self,
        run_id: str,
        is_correct: bool,
        error_type: str | None = None,
        error_details: str | None = None,
        corrected_values: dict | None = None,
    ) -> RunResult:
        """
        Attach a human correctness judgment to a run

        When the run is incorrect, one CorrectionRecord is stored per
        corrected field.

        Args:
            run_id: Run to evaluate
            is_correct: Judgment
            error_type: Error category
            error_details: Free-text details
            corrected_values: Correct value per payload field

        Raises:
            InvalidTransitionError: If the run has not completed
        """
        run = self.store.get_run(run_id)
        if run.status not in (RunStatus.COMPLETED, RunStatus.EVALUATED):
            raise InvalidTransitionError("RunResult", run.status.value, RunStatus.EVALUATED.value)

        run.is_correct = is_correct
        run.error_type = None if is_correct else error_type
        run.error_details = None if is_correct else error_details
        run.status = RunStatus.EVALUATED
        run.evaluated_at = utcnow()
        self.store.save_run(run)

        if not is_correct and corrected_values:
            original = run.actual_result or {}
            for field_name, value in corrected_values.items():
                self.store.save_correction(CorrectionRecord(
                    run_id=run.id,
                    field=field_name,
                    original_value=original.get(field_name),
                    corrected_value=value,
                    error_category=error_type,
                    error_details=error_details,
                ))

        if run.batch_id:
            self.refresh(run.batch_id)
        return run

    def batch_stats(self, batch_id: str) -> Stats:
        """Stats over one batch"""
        runs = self.store.list_runs(batch_id=batch_id)
        corrections = self.store.list_corrections({r.id for r in runs})
        return aggregate(runs, corrections=corrections)

    def config_stats(self, config_id: str, window: timedelta | None = None) -> Stats:
        """
        Stats over one config, optionally within a trailing time window

        Includes the comparison against the baseline config when one is set.
        """
        since = window_since(window) if window is not None else None
        runs = self.store.list_runs(config_id=config_id, since=since)
        corrections = self.store.list_corrections({r.id for r in runs})

        baseline_id = self.store.get_baseline_config()
        baseline_runs = None
        if baseline_id is not None:
            baseline_runs = self.store.list_runs(config_id=baseline_id)

        return aggregate(
            runs,
            corrections=corrections,
            window=window,
            baseline_runs=baseline_runs,
            is_baseline=baseline_id == config_id,
        )

    def compare(self, config_a_id: str, config_b_id: str, name: str = "") -> Comparison | None:
        """
        A/B comparison of two configs over all their runs, persisted

        Returns None (nothing persisted) unless both configs have evaluated runs.
        """
        comparison = compare_configs(
            self.config_stats(config_a_id),
            self.config_stats(config_b_id),
            config_a_id=config_a_id,
            config_b_id=config_b_id,
            threshold=self.ab_threshold,
            name=name,
        )
        if comparison is None:
            logger.info("Comparison %s vs %s omitted: both configs need evaluated runs", config_a_id, config_b_id)
            return None
        logger.info("Comparison %s vs %s: %s", config_a_id, config_b_id, comparison.conclusion)
        return self.store.save_comparison(comparison)
