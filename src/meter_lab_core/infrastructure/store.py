"""
Experiment store

Abstract interface over the relational store holding photos, folders, batches,
runs, corrections, comparisons, production models, and recognition versions,
plus an in-memory implementation used by the CLI and tests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from meter_lab_core.domain.entities import (
    Batch,
    CorrectionRecord,
    Folder,
    Photo,
    PhotoStatus,
    ProductionModel,
    RecognitionVersion,
    RunResult,
    utcnow,
)
from meter_lab_core.domain.errors import NotFoundError
from meter_lab_core.domain.value_objects import Comparison

logger = logging.getLogger(__name__)


class ExperimentStore(ABC):
    """Persistence seam for the recognition lab"""

    # --- photos ---

    @abstractmethod
    def save_photo(self, photo: Photo) -> Photo: ...

    @abstractmethod
    def get_photo(self, photo_id: str) -> Photo: ...

    @abstractmethod
    def find_photo_by_hash(self, content_hash: str) -> Photo | None: ...

    @abstractmethod
    def list_photos(
        self,
        folder_id: str | None = None,
        status: PhotoStatus | None = None,
    ) -> list[Photo]: ...

    # --- folders ---

    @abstractmethod
    def save_folder(self, folder: Folder) -> Folder: ...

    @abstractmethod
    def get_folder(self, folder_id: str) -> Folder: ...

    # --- batches and runs ---

    @abstractmethod
    def save_batch(self, batch: Batch) -> Batch: ...

    @abstractmethod
    def get_batch(self, batch_id: str) -> Batch: ...

    @abstractmethod
    def list_batches(self, folder_id: str | None = None) -> list[Batch]: ...

    @abstractmethod
    def delete_batch(self, batch_id: str) -> None:
        """Delete a batch together with its runs and their corrections"""

    @abstractmethod
    def save_run(self, run: RunResult) -> RunResult: ...

    @abstractmethod
    def get_run(self, run_id: str) -> RunResult: ...

    @abstractmethod
    def list_runs(
        self,
        batch_id: str | None = None,
        config_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[RunResult]:
        """Runs matching every given filter, in creation order"""

    @abstractmethod
    def save_correction(self, correction: CorrectionRecord) -> CorrectionRecord: ...

    @abstractmethod
    def list_corrections(self, run_ids: set[str] | None = None) -> list[CorrectionRecord]: ...

    # --- comparisons ---

    @abstractmethod
    def save_comparison(self, comparison: Comparison) -> Comparison: ...

    @abstractmethod
    def list_comparisons(self) -> list[Comparison]: ...

    # --- production models ---

    @abstractmethod
    def save_model(self, model: ProductionModel) -> ProductionModel: ...

    @abstractmethod
    def get_model(self, model_id: str) -> ProductionModel: ...

    @abstractmethod
    def list_models(self) -> list[ProductionModel]: ...

    # --- singletons ---

    @abstractmethod
    def save_version(self, version: RecognitionVersion) -> RecognitionVersion: ...

    @abstractmethod
    def set_active_version(self, version_id: str) -> RecognitionVersion:
        """Deactivate every version and activate the given one in a single operation"""

    @abstractmethod
    def get_active_version(self) -> RecognitionVersion | None: ...

    @abstractmethod
    def set_baseline_config(self, config_id: str | None) -> None: ...

    @abstractmethod
    def get_baseline_config(self) -> str | None: ...


class InMemoryExperimentStore(ExperimentStore):
    """Dictionary-backed store (single process, single writer)"""

    def __init__(self) -> None:
        self._photos: dict[str, Photo] = {}
        self._folders: dict[str, Folder] = {}
        self._batches: dict[str, Batch] = {}
        self._runs: dict[str, RunResult] = {}
        self._corrections: dict[str, CorrectionRecord] = {}
        self._comparisons: dict[str, Comparison] = {}
        self._models: dict[str, ProductionModel] = {}
        self._versions: dict[str, RecognitionVersion] = {}
        self._baseline_config_id: str | None = None

    @staticmethod
    def _require(table: dict, entity: str, entity_id: str):
        try:
            return table[entity_id]
        except KeyError:
            raise NotFoundError(entity, entity_id) from None

    def save_photo(self, photo: Photo) -> Photo:
        self._photos[photo.id] = photo
        return photo

    def get_photo(self, photo_id: str) -> Photo:
        return self._require(self._photos, "Photo", photo_id)

    def find_photo_by_hash(self, content_hash: str) -> Photo | None:
        for photo in self._photos.values():
            if photo.content_hash and photo.content_hash == content_hash:
                return photo
        return None

    def list_photos(
        self,
        folder_id: str | None = None,
        status: PhotoStatus | None = None,
    ) -> list[Photo]:
        return [
            p for p in self._photos.values()
            if (folder_id is None or p.folder_id == folder_id)
            and (status is None or p.status == status)
        ]

    def save_folder(self, folder: Folder) -> Folder:
        folder.updated_at = utcnow()
        self._folders[folder.id] = folder
        return folder

    def get_folder(self, folder_id: str) -> Folder:
        return self._require(self._folders, "Folder", folder_id)

    def save_batch(self, batch: Batch) -> Batch:
        self._batches[batch.id] = batch
        return batch

    def get_batch(self, batch_id: str) -> Batch:
        return self._require(self._batches, "Batch", batch_id)

    def list_batches(self, folder_id: str | None = None) -> list[Batch]:
        return [b for b in self._batches.values() if folder_id is None or b.folder_id == folder_id]

    def delete_batch(self, batch_id: str) -> None:
        self._require(self._batches, "Batch", batch_id)
        run_ids = {r.id for r in self._runs.values() if r.batch_id == batch_id}
        self._corrections = {k: c for k, c in self._corrections.items() if c.run_id not in run_ids}
        self._runs = {k: r for k, r in self._runs.items() if k not in run_ids}
        del self._batches[batch_id]
        logger.info("Deleted batch %s with %d run(s)", batch_id, len(run_ids))

    def save_run(self, run: RunResult) -> RunResult:
        self._runs[run.id] = run
        return run

    def get_run(self, run_id: str) -> RunResult:
        return self._require(self._runs, "RunResult", run_id)

    def list_runs(
        self,
        batch_id: str | None = None,
        config_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[RunResult]:
        return [
            r for r in self._runs.values()
            if (batch_id is None or r.batch_id == batch_id)
            and (config_id is None or r.config_id == config_id)
            and (since is None or r.created_at >= since)
            and (until is None or r.created_at <= until)
        ]

    def save_correction(self, correction: CorrectionRecord) -> CorrectionRecord:
        self._corrections[correction.id] = correction
        return correction

    def list_corrections(self, run_ids: set[str] | None = None) -> list[CorrectionRecord]:
        return [c for c in self._corrections.values() if run_ids is None or c.run_id in run_ids]

    def save_comparison(self, comparison: Comparison) -> Comparison:
        self._comparisons[comparison.id] = comparison
        return comparison

    def list_comparisons(self) -> list[Comparison]:
        return list(self._comparisons.values())

    def save_model(self, model: ProductionModel) -> ProductionModel:
        model.updated_at = utcnow()
        self._models[model.id] = model
        return model

    def get_model(self, model_id: str) -> ProductionModel:
        return self._require(self._models, "ProductionModel", model_id)

    def list_models(self) -> list[ProductionModel]:
        return list(self._models.values())

    def save_version(self, version: RecognitionVersion) -> RecognitionVersion:
        self._versions[version.id] = version
        return version

    def set_active_version(self, version_id: str) -> RecognitionVersion:
        target = self._require(self._versions, "RecognitionVersion", version_id)
        for version in self._versions.values():
            version.is_active = False
        target.is_active = True
        return target

    def get_active_version(self) -> RecognitionVersion | None:
        return next((v for v in self._versions.values() if v.is_active), None)

    def set_baseline_config(self, config_id: str | None) -> None:
        self._baseline_config_id = config_id

    def get_baseline_config(self) -> str | None:
        return self._baseline_config_id
