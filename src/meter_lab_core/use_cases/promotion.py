"""
Promotion Gate

Folder lifecycle and the rules gating promotion of a tested configuration to
a production meter model.

Folder lifecycle:
    draft -> testing -> ready | validated -> promoted
    ignored / cancelled are absorbing and reachable from draft, testing and ready

A folder's tests are the batches run with its folder_id; a test counts once
its batch completed.
"""

from __future__ import annotations

import logging

from meter_lab_core.domain.constants import PROMOTION_MIN_ACCURACY
from meter_lab_core.domain.entities import (
    Batch,
    BatchStatus,
    Folder,
    FolderStatus,
    PhotoStatus,
    ProductionModel,
)
from meter_lab_core.domain.errors import (
    InsufficientSamplesError,
    InvalidTransitionError,
    NotEligibleError,
)
from meter_lab_core.domain.value_objects import PromotionEligibility, PromotionOutcome
from meter_lab_core.infrastructure.store import ExperimentStore

logger = logging.getLogger(__name__)

MAX_REFERENCE_PHOTOS = 5

_TESTABLE = (FolderStatus.DRAFT, FolderStatus.READY, FolderStatus.VALIDATED)
_PROMOTABLE = (FolderStatus.READY, FolderStatus.VALIDATED)
_SET_ASIDE_FROM = (FolderStatus.DRAFT, FolderStatus.TESTING, FolderStatus.READY)


class PromotionGate:
    """Folder state machine backed by an ExperimentStore"""

    def __init__(self, store: ExperimentStore, *, min_accuracy: float = PROMOTION_MIN_ACCURACY) -> None:
        self.store = store
        self.min_accuracy = min_accuracy

    def photo_count(self, folder: Folder) -> int:
        return len(self.store.list_photos(folder_id=folder.id))

    def completed_tests(self, folder: Folder) -> list[Batch]:
        return [b for b in self.store.list_batches(folder_id=folder.id) if b.status == BatchStatus.COMPLETED]

    def _transition(self, folder: Folder, target: FolderStatus, allowed: tuple[FolderStatus, ...]) -> Folder:
        if folder.status not in allowed:
            raise InvalidTransitionError("Folder", folder.status.value, target.value)
        logger.info("Folder %s: %s -> %s", folder.id, folder.status.value, target.value)
        folder.status = target
        return self.store.save_folder(folder)

    def start_testing(self, folder_id: str) -> Folder:
        """
        Move a folder into testing

        Raises:
            InvalidTransitionError: If the folder is not draft, ready or validated
            InsufficientSamplesError: If it holds fewer than min_photos_required photos
        """
        folder = self.store.get_folder(folder_id)
        if folder.status not in _TESTABLE:
            raise InvalidTransitionError("Folder", folder.status.value, FolderStatus.TESTING.value)
        count = self.photo_count(folder)
        if count < folder.min_photos_required:
            raise InsufficientSamplesError(count, folder.min_photos_required)
        return self._transition(folder, FolderStatus.TESTING, _TESTABLE)

    def complete_testing(self, folder_id: str, test: Batch) -> Folder:
        """
        Close a testing phase from its batch

        The folder becomes validated when the test had successful runs and no
        failures, ready otherwise.
        """
        folder = self.store.get_folder(folder_id)
        if test.folder_id != folder.id:
            raise ValueError(f"Batch {test.id} does not belong to folder {folder.id}")
        target = (
            FolderStatus.VALIDATED
            if test.completed_runs > 0 and test.failed_runs == 0
            else FolderStatus.READY
        )
        return self._transition(folder, target, (FolderStatus.TESTING,))

    def ignore(self, folder_id: str) -> Folder:
        return self._transition(self.store.get_folder(folder_id), FolderStatus.IGNORED, _SET_ASIDE_FROM)

    def cancel(self, folder_id: str) -> Folder:
        return self._transition(self.store.get_folder(folder_id), FolderStatus.CANCELLED, _SET_ASIDE_FROM)

    def can_promote(self, folder_id: str) -> PromotionEligibility:
        """
        Evaluate each promotion condition independently

        Returns:
            PromotionEligibility with has_enough_photos, has_completed_tests and
            has_good_accuracy (best completed-test accuracy >= min_accuracy)
        """
        folder = self.store.get_folder(folder_id)
        count = self.photo_count(folder)
        tests = self.completed_tests(folder)
        best_accuracy = max((t.accuracy_rate or 0.0 for t in tests), default=0.0)

        return PromotionEligibility(
            has_enough_photos=count >= folder.min_photos_required,
            has_completed_tests=bool(tests),
            has_good_accuracy=bool(tests) and best_accuracy >= self.min_accuracy,
            best_accuracy=best_accuracy,
            photo_count=count,
            is_linked_to_existing=folder.linked_model_id is not None,
        )

    def promote(
        self,
        folder_id: str,
        *,
        name: str | None = None,
        meter_type: str | None = None,
        manufacturer: str | None = None,
        display_type: str = "mechanical",
    ) -> PromotionOutcome:
        """
        Promote a folder to production

        A folder linked to a production model updates that model's config
        reference; otherwise a new model is created from the folder (with up to
        5 reference/validated photos) and linked to it.

        Args:
            folder_id: Folder to promote
            name: Name of a newly created model (defaults to the folder name)
            meter_type: Meter type of a newly created model (defaults to the detected type)
            manufacturer: Manufacturer of a newly created model
            display_type: Display type of a newly created model

        Raises:
            NotEligibleError: If any promotion condition is unmet
            InvalidTransitionError: If the folder is not ready or validated
        """
        eligibility = self.can_promote(folder_id)
        if not eligibility.can_promote:
            raise NotEligibleError(eligibility.unmet_conditions)

        folder = self.store.get_folder(folder_id)
        if folder.status not in _PROMOTABLE:
            raise InvalidTransitionError("Folder", folder.status.value, FolderStatus.PROMOTED.value)

        if folder.linked_model_id:
            model = self.store.get_model(folder.linked_model_id)
            model.model_config_id = folder.config_model_id
            self.store.save_model(model)
            action = "updated"
        else:
            references = [
                p.image_ref
                for p in self.store.list_photos(folder_id=folder.id)
                if p.status in (PhotoStatus.REFERENCE, PhotoStatus.VALIDATED)
            ]
            detected = folder.detected_type if folder.detected_type != "unknown" else None
            model = self.store.save_model(ProductionModel(
                name=name or folder.name,
                meter_type=meter_type or detected or "gas",
                manufacturer=manufacturer,
                display_type=display_type,
                model_config_id=folder.config_model_id,
                reference_photos=references[:MAX_REFERENCE_PHOTOS],
            ))
            folder.linked_model_id = model.id
            action = "created"

        self._transition(folder, FolderStatus.PROMOTED, _PROMOTABLE)
        logger.info("Folder %s promoted (%s model %s)", folder.id, action, model.id)
        return PromotionOutcome(action=action, model=model)
