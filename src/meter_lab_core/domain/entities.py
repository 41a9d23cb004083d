"""
Domain Entities

Defines the primary records handled by the recognition lab: photos, folders,
batches, run results and the records derived from them.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from meter_lab_core.domain.constants import DEFAULT_MIN_PHOTOS


def new_id() -> str:
    """Generate a new entity id"""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime"""
    return datetime.now(timezone.utc)


class PhotoStatus(str, Enum):
    PENDING = "pending"
    TESTED = "tested"
    REFERENCE = "reference"
    VALIDATED = "validated"


class FolderStatus(str, Enum):
    DRAFT = "draft"
    TESTING = "testing"
    READY = "ready"
    VALIDATED = "validated"
    PROMOTED = "promoted"
    IGNORED = "ignored"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    EVALUATED = "evaluated"


class BatchStatus(str, Enum):
    DRAFT = "draft"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class Photo:
    """Reference to an image under test"""
    image_ref: str                         # URL or local path, resolved by ImageSource
    content_hash: str = ""                 # Exact-dedup key
    perceptual_hash: str | None = None     # Near-duplicate pre-filter
    ground_truth: dict | None = None       # Expected extraction result
    status: PhotoStatus = PhotoStatus.PENDING
    folder_id: str | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Folder:
    """Named collection of photos moving through the promotion lifecycle"""
    name: str
    status: FolderStatus = FolderStatus.DRAFT
    min_photos_required: int = DEFAULT_MIN_PHOTOS
    detected_type: str = "unknown"
    config_model_id: str | None = None
    linked_model_id: str | None = None     # Production model this folder feeds
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class RunResult:
    """Outcome of one EffectiveConfig executed against one Photo"""
    photo_id: str
    config_id: str
    batch_id: str | None = None
    status: RunStatus = RunStatus.PENDING
    actual_result: dict | None = None
    confidence: float | None = None
    is_correct: bool | None = None
    needs_review: bool = False
    latency_ms: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    model_name: str = ""
    error_type: str | None = None
    error_details: str | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    evaluated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.EVALUATED)


@dataclass
class Batch:
    """RunResults created together under one EffectiveConfig"""
    config_id: str
    name: str = ""
    folder_id: str | None = None
    status: BatchStatus = BatchStatus.DRAFT
    # Denormalized counters, recomputed from the runs
    total_runs: int = 0
    completed_runs: int = 0
    failed_runs: int = 0
    evaluated_runs: int = 0
    correct_runs: int = 0
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def accuracy_rate(self) -> float | None:
        if self.evaluated_runs == 0:
            return None
        return self.correct_runs / self.evaluated_runs


@dataclass
class CorrectionRecord:
    """Human correction of one field of an evaluated run"""
    run_id: str
    field: str
    original_value: object
    corrected_value: object
    error_category: str | None = None
    error_details: str | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ProductionModel:
    """Production meter model a validated folder is promoted into"""
    name: str
    meter_type: str = "gas"
    manufacturer: str | None = None
    display_type: str = "mechanical"
    model_config_id: str | None = None
    reference_photos: list[str] = field(default_factory=list)
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class RecognitionVersion:
    """Named recognition version; exactly one may be active at a time"""
    name: str
    description: str = ""
    is_active: bool = False
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class HealthCheckResult:
    """Health check result"""
    model_name: str
    success: bool
    latency_ms: int | None
    error: str | None
