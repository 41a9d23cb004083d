"""Tests for domain entities, value objects and errors"""

import pytest

from meter_lab_core.domain.entities import (
    Batch,
    Folder,
    FolderStatus,
    HealthCheckResult,
    Photo,
    PhotoStatus,
    RunResult,
    RunStatus,
)
from meter_lab_core.domain.errors import (
    InsufficientSamplesError,
    InvalidTransitionError,
    MeterLabError,
    NotEligibleError,
    ParseError,
)
from meter_lab_core.domain.value_objects import (
    CostMetrics,
    PromotionEligibility,
)


class TestPhoto:
    def test_defaults(self):
        photo = Photo(image_ref="photos/001.jpg")
        assert photo.status == PhotoStatus.PENDING
        assert photo.ground_truth is None
        assert photo.folder_id is None
        assert photo.created_at.tzinfo is not None

    def test_ids_are_unique(self):
        assert Photo(image_ref="a").id != Photo(image_ref="a").id


class TestFolder:
    def test_defaults(self):
        folder = Folder(name="Itron G4")
        assert folder.status == FolderStatus.DRAFT
        assert folder.min_photos_required == 5
        assert folder.linked_model_id is None


class TestRunResult:
    def test_defaults(self):
        run = RunResult(photo_id="p1", config_id="1:-:-")
        assert run.status == RunStatus.PENDING
        assert run.is_correct is None
        assert run.cost_usd == 0.0

    @pytest.mark.parametrize("status,terminal", [
        (RunStatus.PENDING, False),
        (RunStatus.RUNNING, False),
        (RunStatus.COMPLETED, True),
        (RunStatus.FAILED, True),
        (RunStatus.EVALUATED, True),
    ])
    def test_is_terminal(self, status, terminal):
        run = RunResult(photo_id="p1", config_id="c", status=status)
        assert run.is_terminal is terminal


class TestBatch:
    def test_accuracy_is_none_without_evaluations(self):
        """評価済みrunが0件のとき accuracy_rate は None (0% ではない)"""
        batch = Batch(config_id="c", total_runs=3, completed_runs=3)
        assert batch.accuracy_rate is None

    def test_accuracy_rate(self):
        batch = Batch(config_id="c", evaluated_runs=4, correct_runs=3)
        assert batch.accuracy_rate == 0.75


class TestHealthCheckResult:
    def test_success(self):
        r = HealthCheckResult(model_name="m", success=True, latency_ms=100, error=None)
        assert r.success is True
        assert r.error is None


class TestCostMetrics:
    def test_total_cost(self):
        m = CostMetrics(input_tokens=1_000_000, output_tokens=1_000_000,
                        input_price_per_m=3.0, output_price_per_m=15.0)
        assert m.total_cost == pytest.approx(18.0)

    def test_negative_tokens_rejected(self):
        with pytest.raises(ValueError, match="input_tokens"):
            CostMetrics(input_tokens=-1, output_tokens=0)
        with pytest.raises(ValueError, match="output_tokens"):
            CostMetrics(input_tokens=0, output_tokens=-1)


class TestPromotionEligibility:
    def test_all_conditions_met(self):
        e = PromotionEligibility(
            has_enough_photos=True, has_completed_tests=True, has_good_accuracy=True,
            best_accuracy=0.8, photo_count=6, is_linked_to_existing=False,
        )
        assert e.can_promote is True
        assert e.unmet_conditions == []

    def test_unmet_conditions_are_listed_individually(self):
        e = PromotionEligibility(
            has_enough_photos=False, has_completed_tests=True, has_good_accuracy=False,
            best_accuracy=0.5, photo_count=2, is_linked_to_existing=False,
        )
        assert e.can_promote is False
        assert e.unmet_conditions == ["has_enough_photos", "has_good_accuracy"]


class TestErrors:
    def test_hierarchy(self):
        for exc in (ParseError("x"), InsufficientSamplesError(1, 5), NotEligibleError(["a"])):
            assert isinstance(exc, MeterLabError)

    def test_parse_error_keeps_raw(self):
        assert ParseError("bad", raw="text").raw == "text"

    def test_insufficient_samples_message(self):
        e = InsufficientSamplesError(4, 5)
        assert e.photo_count == 4
        assert e.min_required == 5
        assert "4" in str(e) and "5" in str(e)

    def test_not_eligible_lists_conditions(self):
        e = NotEligibleError(["has_completed_tests"])
        assert e.unmet == ["has_completed_tests"]
        assert "has_completed_tests" in str(e)

    def test_invalid_transition_message(self):
        e = InvalidTransitionError("Batch", "completed", "cancelled")
        assert "completed" in str(e) and "cancelled" in str(e)
