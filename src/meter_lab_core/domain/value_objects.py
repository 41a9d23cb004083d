"""
Domain Value Objects

Defines immutable data structures representing values such as vision responses,
fingerprints, aggregated statistics, and promotion decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from meter_lab_core.domain.entities import ProductionModel, new_id


@dataclass
class VisionResponse:
    """Vision model response"""
    output: str
    latency_ms: int
    model_name: str
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class CostMetrics:
    """Cost calculation metrics"""
    input_tokens: int
    output_tokens: int

    # Pricing (USD per 1M tokens)
    input_price_per_m: float = 0.0
    output_price_per_m: float = 0.0

    def __post_init__(self):
        if self.input_tokens < 0:
            raise ValueError("input_tokens must be non-negative")
        if self.output_tokens < 0:
            raise ValueError("output_tokens must be non-negative")

    @property
    def total_cost(self) -> float:
        return (
            (self.input_tokens / 1_000_000) * self.input_price_per_m +
            (self.output_tokens / 1_000_000) * self.output_price_per_m
        )


@dataclass(frozen=True)
class Fingerprint:
    """Exact and perceptual identity of an image"""
    content_hash: str
    perceptual_hash: str | None = None


@dataclass(frozen=True)
class ReferenceImage:
    """Existing reference image considered during duplicate detection"""
    ref_id: str
    name: str
    image_ref: str
    manufacturer: str | None = None
    meter_type: str | None = None


@dataclass(frozen=True)
class DuplicateCheckResult:
    """Outcome of a duplicate-model check"""
    is_duplicate: bool
    confidence: float = 0.0
    matched_ref: ReferenceImage | None = None
    reason: str | None = None
    not_applicable: bool = False
    batches_checked: int = 0


@dataclass(frozen=True)
class ConfidenceDistribution:
    """Run counts per confidence bucket"""
    high: int = 0        # >= 0.9
    medium: int = 0      # [0.7, 0.9)
    low: int = 0         # [0.5, 0.7)
    very_low: int = 0    # < 0.5


@dataclass(frozen=True)
class TimelinePoint:
    """Runs and accuracy for one UTC day"""
    day: date
    runs: int
    accuracy: float


@dataclass
class ErrorPattern:
    """Corrections sharing one error category"""
    count: int = 0
    examples: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BaselineComparison:
    """Signed deltas between a config and the baseline config"""
    baseline_accuracy: float
    current_accuracy: float | None
    accuracy_diff: float | None
    baseline_confidence: float
    current_confidence: float | None
    confidence_diff: float | None
    improved: bool


@dataclass
class Stats:
    """Aggregated statistics over a RunResult collection"""
    total_runs: int = 0
    completed_runs: int = 0
    failed_runs: int = 0
    evaluated_runs: int = 0
    correct_runs: int = 0
    matched_runs: int = 0
    accuracy_rate: float | None = None
    match_rate: float | None = None
    avg_confidence: float | None = None
    avg_processing_time_ms: int = 0
    total_cost_usd: float = 0.0
    confidence_distribution: ConfidenceDistribution = field(default_factory=ConfidenceDistribution)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    error_patterns: dict[str, ErrorPattern] = field(default_factory=dict)
    timeline: list[TimelinePoint] = field(default_factory=list)
    baseline_comparison: BaselineComparison | None = None


@dataclass(frozen=True)
class Comparison:
    """A/B comparison between two configs"""
    config_a_id: str
    config_b_id: str
    winner: str                 # "A", "B" or "TIE"
    accuracy_a: float
    accuracy_b: float
    accuracy_diff: float        # accuracy_b - accuracy_a
    confidence_a: float | None
    confidence_b: float | None
    samples_a: int
    samples_b: int
    conclusion: str
    name: str = ""
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class PromotionEligibility:
    """Independently reported promotion conditions"""
    has_enough_photos: bool
    has_completed_tests: bool
    has_good_accuracy: bool
    best_accuracy: float
    photo_count: int
    is_linked_to_existing: bool

    @property
    def can_promote(self) -> bool:
        return self.has_enough_photos and self.has_completed_tests and self.has_good_accuracy

    @property
    def unmet_conditions(self) -> list[str]:
        conditions = {
            "has_enough_photos": self.has_enough_photos,
            "has_completed_tests": self.has_completed_tests,
            "has_good_accuracy": self.has_good_accuracy,
        }
        return [name for name, met in conditions.items() if not met]


@dataclass(frozen=True)
class PromotionOutcome:
    """Result of promoting a folder"""
    action: str                 # "updated" or "created"
    model: ProductionModel
