"""
Use Cases Layer

Aggregates business logic and provides use cases called from the runner.
"""

from meter_lab_core.use_cases.batch import BatchOrchestrator, dedup_photos
from meter_lab_core.use_cases.duplicate_detection import detect_duplicate
from meter_lab_core.use_cases.health_check import (
    HEALTH_CHECK_INSTRUCTION,
    health_check_model,
    run_health_check,
)
from meter_lab_core.use_cases.metrics import (
    aggregate,
    batch_counters,
    compare_configs,
    runs_to_dataframe,
    stats_to_dict,
)
from meter_lab_core.use_cases.promotion import PromotionGate
from meter_lab_core.use_cases.recognition import RecognitionRunner

__all__ = [
    # batch
    "BatchOrchestrator",
    "dedup_photos",
    # duplicate detection
    "detect_duplicate",
    # health_check
    "HEALTH_CHECK_INSTRUCTION",
    "health_check_model",
    "run_health_check",
    # metrics
    "aggregate",
    "batch_counters",
    "compare_configs",
    "runs_to_dataframe",
    "stats_to_dict",
    # promotion
    "PromotionGate",
    # recognition
    "RecognitionRunner",
]
