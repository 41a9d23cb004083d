"""
Metrics Aggregation

Pure folds over RunResult collections: accuracy, confidence distribution,
daily timeline, error patterns, baseline deltas, and A/B comparison.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict
from datetime import datetime, timedelta, timezone

import pandas as pd

from meter_lab_core.domain.constants import (
    AB_MATERIALITY_THRESHOLD,
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    ERROR_PATTERN_EXAMPLES,
)
from meter_lab_core.domain.entities import CorrectionRecord, RunResult, RunStatus
from meter_lab_core.domain.value_objects import (
    BaselineComparison,
    Comparison,
    ConfidenceDistribution,
    ErrorPattern,
    Stats,
    TimelinePoint,
)

# Windows at or below this span get no daily timeline
TIMELINE_MIN_WINDOW = timedelta(hours=24)


def batch_counters(runs: Iterable[RunResult]) -> dict[str, int]:
    """
    Counters denormalized onto a Batch

    completed counts runs that reached a successful terminal state
    (completed or evaluated); failed runs are counted separately.
    """
    counters = {"total_runs": 0, "completed_runs": 0, "failed_runs": 0, "evaluated_runs": 0, "correct_runs": 0}
    for run in runs:
        counters["total_runs"] += 1
        if run.status in (RunStatus.COMPLETED, RunStatus.EVALUATED):
            counters["completed_runs"] += 1
        elif run.status == RunStatus.FAILED:
            counters["failed_runs"] += 1
        if run.is_correct is not None:
            counters["evaluated_runs"] += 1
            if run.is_correct:
                counters["correct_runs"] += 1
    return counters


def confidence_distribution(confidences: Iterable[float]) -> ConfidenceDistribution:
    """Bucket defined confidences: high >= 0.9, medium >= 0.7, low >= 0.5, very_low below"""
    high = medium = low = very_low = 0
    for c in confidences:
        if c >= CONFIDENCE_HIGH:
            high += 1
        elif c >= CONFIDENCE_MEDIUM:
            medium += 1
        elif c >= CONFIDENCE_LOW:
            low += 1
        else:
            very_low += 1
    return ConfidenceDistribution(high=high, medium=medium, low=low, very_low=very_low)


def _is_matched(run: RunResult) -> bool:
    return bool(run.actual_result and run.actual_result.get("matched_model_id"))


def runs_to_dataframe(runs: Iterable[RunResult]) -> pd.DataFrame:
    """
    Flatten runs into a DataFrame (one row per run)

    Enum columns hold their string values and created_at is a UTC timestamp.
    """
    rows = []
    for run in runs:
        row = asdict(run)
        row["status"] = run.status.value
        rows.append(row)
    df = pd.DataFrame(rows, columns=list(RunResult.__dataclass_fields__))
    if not df.empty:
        df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    return df


def build_timeline(runs: list[RunResult]) -> list[TimelinePoint]:
    """
    Runs and accuracy per UTC day, ascending

    Daily accuracy is correct runs over all runs of that day.
    """
    df = runs_to_dataframe(runs)
    if df.empty:
        return []
    df["day"] = df["created_at"].dt.date
    df["correct"] = df["is_correct"].eq(True)
    daily = df.groupby("day").agg(runs=("id", "count"), correct=("correct", "sum")).sort_index()
    return [
        TimelinePoint(day=day, runs=int(row["runs"]), accuracy=float(row["correct"]) / int(row["runs"]))
        for day, row in daily.iterrows()
    ]


def error_patterns(corrections: Iterable[CorrectionRecord]) -> dict[str, ErrorPattern]:
    """Group corrections by error category keeping the first few detail examples"""
    patterns: dict[str, ErrorPattern] = {}
    for correction in corrections:
        if not correction.error_category:
            continue
        pattern = patterns.setdefault(correction.error_category, ErrorPattern())
        pattern.count += 1
        if correction.error_details and len(pattern.examples) < ERROR_PATTERN_EXAMPLES:
            pattern.examples.append(correction.error_details)
    return patterns


def baseline_comparison(
    current_accuracy: float | None,
    current_confidence: float | None,
    baseline_runs: Iterable[RunResult],
) -> BaselineComparison | None:
    """
    Signed deltas against the baseline config

    Returns:
        None when the baseline has no evaluated runs
    """
    evaluated = [r for r in baseline_runs if r.is_correct is not None]
    if not evaluated:
        return None

    baseline_accuracy = sum(1 for r in evaluated if r.is_correct) / len(evaluated)
    baseline_confidence = sum(r.confidence or 0.0 for r in evaluated) / len(evaluated)

    accuracy_diff = None if current_accuracy is None else current_accuracy - baseline_accuracy
    confidence_diff = None if current_confidence is None else current_confidence - baseline_confidence

    return BaselineComparison(
        baseline_accuracy=baseline_accuracy,
        current_accuracy=current_accuracy,
        accuracy_diff=accuracy_diff,
        baseline_confidence=baseline_confidence,
        current_confidence=current_confidence,
        confidence_diff=confidence_diff,
        improved=accuracy_diff is not None and accuracy_diff > 0,
    )


def aggregate(
    runs: Iterable[RunResult],
    *,
    corrections: Iterable[CorrectionRecord] = (),
    window: timedelta | None = None,
    baseline_runs: Iterable[RunResult] | None = None,
    is_baseline: bool = False,
) -> Stats:
    """
    Aggregate a run collection into Stats

    Args:
        runs: Runs in scope (a batch, a config, or a time window)
        corrections: Corrections attached to those runs
        window: Length of the time window the runs were selected with (None = unbounded)
        baseline_runs: Runs of the baseline config, when the scope is a single config
        is_baseline: The scope IS the baseline config (comparison omitted)

    Returns:
        Stats
    """
    runs = list(runs)
    counters = batch_counters(runs)
    total = counters["total_runs"]
    evaluated = counters["evaluated_runs"]

    matched = sum(1 for r in runs if _is_matched(r))
    confidences = [r.confidence for r in runs if r.confidence is not None]
    succeeded = [r for r in runs if r.status in (RunStatus.COMPLETED, RunStatus.EVALUATED)]

    errors_by_type: dict[str, int] = {}
    for run in runs:
        if run.error_type:
            errors_by_type[run.error_type] = errors_by_type.get(run.error_type, 0) + 1

    accuracy_rate = counters["correct_runs"] / evaluated if evaluated else None
    avg_confidence = sum(confidences) / len(confidences) if confidences else None

    timeline: list[TimelinePoint] = []
    if runs and (window is None or window > TIMELINE_MIN_WINDOW):
        timeline = build_timeline(runs)

    comparison = None
    if baseline_runs is not None and not is_baseline:
        comparison = baseline_comparison(accuracy_rate, avg_confidence, baseline_runs)

    return Stats(
        total_runs=total,
        completed_runs=counters["completed_runs"],
        failed_runs=counters["failed_runs"],
        evaluated_runs=evaluated,
        correct_runs=counters["correct_runs"],
        matched_runs=matched,
        accuracy_rate=accuracy_rate,
        match_rate=matched / total if total else None,
        avg_confidence=avg_confidence,
        avg_processing_time_ms=(
            int(sum(r.latency_ms for r in succeeded) / len(succeeded)) if succeeded else 0
        ),
        total_cost_usd=sum(r.cost_usd for r in runs),
        confidence_distribution=confidence_distribution(confidences),
        errors_by_type=errors_by_type,
        error_patterns=error_patterns(corrections),
        timeline=timeline,
        baseline_comparison=comparison,
    )


def compare_configs(
    stats_a: Stats,
    stats_b: Stats,
    *,
    config_a_id: str = "A",
    config_b_id: str = "B",
    threshold: float = AB_MATERIALITY_THRESHOLD,
    name: str = "",
) -> Comparison | None:
    """
    Decide the A/B winner

    The higher-accuracy side wins only when |accuracy_b - accuracy_a| exceeds
    the materiality threshold; otherwise the result is a TIE. The difference is
    rounded to 10 decimals so that an exact threshold gap is a TIE.

    Args:
        stats_a: Stats of config A
        stats_b: Stats of config B
        config_a_id: Config A identifier
        config_b_id: Config B identifier
        threshold: Materiality threshold (strictly exceeded)
        name: Comparison label

    Returns:
        Comparison, or None when either side has no evaluated runs
    """
    if not stats_a.evaluated_runs or not stats_b.evaluated_runs:
        return None
    accuracy_a = stats_a.accuracy_rate
    accuracy_b = stats_b.accuracy_rate
    if accuracy_a is None or accuracy_b is None:
        return None
    diff = round(accuracy_b - accuracy_a, 10)

    if abs(diff) > threshold:
        winner = "B" if diff > 0 else "A"
        conclusion = (
            f"Config {winner} wins by {abs(diff) * 100:.1f} accuracy points "
            f"({accuracy_a:.1%} vs {accuracy_b:.1%})"
        )
    else:
        winner = "TIE"
        conclusion = (
            f"No significant difference ({accuracy_a:.1%} vs {accuracy_b:.1%}, "
            f"threshold {threshold * 100:.0f} points)"
        )

    return Comparison(
        config_a_id=config_a_id,
        config_b_id=config_b_id,
        winner=winner,
        accuracy_a=accuracy_a,
        accuracy_b=accuracy_b,
        accuracy_diff=diff,
        confidence_a=stats_a.avg_confidence,
        confidence_b=stats_b.avg_confidence,
        samples_a=stats_a.evaluated_runs,
        samples_b=stats_b.evaluated_runs,
        conclusion=conclusion,
        name=name,
    )


def stats_to_dict(stats: Stats) -> dict:
    """Serialize Stats into plain JSON-compatible types"""
    data = asdict(stats)
    data["timeline"] = [
        {"date": p["day"].isoformat(), "runs": p["runs"], "accuracy": p["accuracy"]}
        for p in data["timeline"]
    ]
    return data


def window_since(window: timedelta, now: datetime | None = None) -> datetime:
    """Start of a trailing window ending now (UTC)"""
    return (now or datetime.now(timezone.utc)) - window
