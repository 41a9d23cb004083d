"""Tests for the in-memory experiment store"""

from datetime import timedelta

import pytest

from meter_lab_core.domain.entities import (
    Batch,
    CorrectionRecord,
    Photo,
    PhotoStatus,
    RecognitionVersion,
    RunResult,
)
from meter_lab_core.domain.errors import NotFoundError
from meter_lab_core.infrastructure.store import InMemoryExperimentStore


class TestPhotos:
    def test_get_missing(self):
        with pytest.raises(NotFoundError, match="Photo"):
            InMemoryExperimentStore().get_photo("nope")

    def test_find_by_hash(self):
        store = InMemoryExperimentStore()
        photo = store.save_photo(Photo(image_ref="a", content_hash="abc"))
        assert store.find_photo_by_hash("abc") is photo
        assert store.find_photo_by_hash("xyz") is None

    def test_list_filters(self):
        store = InMemoryExperimentStore()
        store.save_photo(Photo(image_ref="a", folder_id="f1"))
        store.save_photo(Photo(image_ref="b", folder_id="f1", status=PhotoStatus.TESTED))
        store.save_photo(Photo(image_ref="c", folder_id="f2"))
        assert len(store.list_photos(folder_id="f1")) == 2
        assert [p.image_ref for p in store.list_photos("f1", PhotoStatus.TESTED)] == ["b"]


class TestRuns:
    def test_list_runs_filters(self):
        store = InMemoryExperimentStore()
        old = RunResult(photo_id="p", config_id="A", batch_id="b1")
        old.created_at = old.created_at - timedelta(days=3)
        store.save_run(old)
        store.save_run(RunResult(photo_id="p", config_id="A", batch_id="b2"))
        store.save_run(RunResult(photo_id="p", config_id="B", batch_id="b2"))

        assert len(store.list_runs(config_id="A")) == 2
        assert len(store.list_runs(batch_id="b2")) == 2
        since = old.created_at + timedelta(days=1)
        assert len(store.list_runs(config_id="A", since=since)) == 1
        assert store.list_runs(until=since) == [old]

    def test_delete_batch_cascades(self):
        """バッチ削除時に配下のrunと訂正記録も削除される"""
        store = InMemoryExperimentStore()
        batch = store.save_batch(Batch(config_id="A"))
        kept = store.save_batch(Batch(config_id="A"))
        run = store.save_run(RunResult(photo_id="p", config_id="A", batch_id=batch.id))
        other = store.save_run(RunResult(photo_id="p", config_id="A", batch_id=kept.id))
        store.save_correction(CorrectionRecord(run_id=run.id, field="reading", original_value="1", corrected_value="2"))
        store.save_correction(CorrectionRecord(run_id=other.id, field="reading", original_value="1", corrected_value="2"))

        store.delete_batch(batch.id)

        with pytest.raises(NotFoundError):
            store.get_batch(batch.id)
        assert store.list_runs() == [other]
        assert [c.run_id for c in store.list_corrections()] == [other.id]

    def test_delete_missing_batch(self):
        with pytest.raises(NotFoundError):
            InMemoryExperimentStore().delete_batch("nope")


class TestVersions:
    def test_exactly_one_active(self):
        store = InMemoryExperimentStore()
        v1 = store.save_version(RecognitionVersion(name="v1", is_active=True))
        v2 = store.save_version(RecognitionVersion(name="v2"))

        store.set_active_version(v2.id)

        assert v1.is_active is False
        assert store.get_active_version() is v2

    def test_no_active_version(self):
        assert InMemoryExperimentStore().get_active_version() is None


class TestBaseline:
    def test_set_and_clear(self):
        store = InMemoryExperimentStore()
        store.set_baseline_config("1:-:-")
        assert store.get_baseline_config() == "1:-:-"
        store.set_baseline_config(None)
        assert store.get_baseline_config() is None
