"""
Domain Layer

Defines constants, entities, value objects, and errors that form the core of the business logic.
Has no dependencies on external libraries.
"""

from meter_lab_core.domain.constants import (
    AB_MATERIALITY_THRESHOLD,
    DEFAULT_MIN_PHOTOS,
    DEFAULT_MODEL,
    MODEL_PRICING,
    PROMOTION_MIN_ACCURACY,
    _LOCAL_MODEL_PRICING,
)
from meter_lab_core.domain.entities import (
    Batch,
    BatchStatus,
    CorrectionRecord,
    Folder,
    FolderStatus,
    HealthCheckResult,
    Photo,
    PhotoStatus,
    ProductionModel,
    RecognitionVersion,
    RunResult,
    RunStatus,
)
from meter_lab_core.domain.errors import (
    DecodeError,
    InsufficientSamplesError,
    InvalidTransitionError,
    MeterLabError,
    NotEligibleError,
    NotFoundError,
    ParseError,
    TransportError,
)
from meter_lab_core.domain.value_objects import (
    Comparison,
    CostMetrics,
    DuplicateCheckResult,
    Fingerprint,
    PromotionEligibility,
    PromotionOutcome,
    Stats,
    VisionResponse,
)

__all__ = [
    # constants
    "AB_MATERIALITY_THRESHOLD",
    "DEFAULT_MIN_PHOTOS",
    "DEFAULT_MODEL",
    "MODEL_PRICING",
    "PROMOTION_MIN_ACCURACY",
    "_LOCAL_MODEL_PRICING",
    # entities
    "Batch",
    "BatchStatus",
    "CorrectionRecord",
    "Folder",
    "FolderStatus",
    "HealthCheckResult",
    "Photo",
    "PhotoStatus",
    "ProductionModel",
    "RecognitionVersion",
    "RunResult",
    "RunStatus",
    # errors
    "DecodeError",
    "InsufficientSamplesError",
    "InvalidTransitionError",
    "MeterLabError",
    "NotEligibleError",
    "NotFoundError",
    "ParseError",
    "TransportError",
    # value objects
    "Comparison",
    "CostMetrics",
    "DuplicateCheckResult",
    "Fingerprint",
    "PromotionEligibility",
    "PromotionOutcome",
    "Stats",
    "VisionResponse",
]
