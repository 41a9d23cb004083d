"""
Recognition Lab Configuration

Manages loading from environment variables and default values.
"""

import os
from dataclasses import dataclass, field, asdict

from meter_lab_core.domain.constants import (
    AB_MATERIALITY_THRESHOLD,
    DEFAULT_MIN_PHOTOS,
    DEFAULT_MODEL,
    DUPLICATE_BATCH_SIZE,
    PROMOTION_MIN_ACCURACY,
)


def _env_bool(key: str, default: bool) -> bool:
    """Convert an environment variable to bool"""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int) -> int:
    """Convert an environment variable to int"""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' cannot be converted to an integer.")


def _env_float(key: str, default: float) -> float:
    """Convert an environment variable to float"""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' cannot be converted to a number.")


def _env_str(key: str, default: str) -> str:
    """Get an environment variable as a string"""
    return os.environ.get(key, default)


@dataclass
class RecognitionConfig:
    """Recognition run configuration"""
    model_name: str = DEFAULT_MODEL
    max_tokens: int = 1024
    primary_field: str = "reading"
    dedup_uploads: bool = True


@dataclass
class IsolationConfig:
    """Collaborator call isolation configuration"""
    timeout_seconds: int = 120
    max_retries: int = 3
    retry_delay_seconds: float = 1.0


@dataclass
class PolicyConfig:
    """Business policy thresholds (tunable, defaults preserved for compatibility)"""
    min_photos_required: int = DEFAULT_MIN_PHOTOS
    promotion_min_accuracy: float = PROMOTION_MIN_ACCURACY
    ab_materiality_threshold: float = AB_MATERIALITY_THRESHOLD


@dataclass
class DuplicateConfig:
    """Duplicate-model detection configuration"""
    batch_size: int = DUPLICATE_BATCH_SIZE
    max_tokens: int = 500
    phash_max_distance: int = 100


@dataclass
class LMStudioConfig:
    """LMStudio (OpenAI-compatible local LLM) configuration"""
    base_url: str = "http://localhost:1234/v1"
    api_key: str = "lm-studio"


@dataclass
class LabConfig:
    """Overall recognition lab configuration"""
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    isolation: IsolationConfig = field(default_factory=IsolationConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    duplicate: DuplicateConfig = field(default_factory=DuplicateConfig)
    lmstudio: LMStudioConfig = field(default_factory=LMStudioConfig)

    def to_dict(self) -> dict:
        """Convert to dictionary format"""
        return {"lab_config": asdict(self)}

    @classmethod
    def from_dict(cls, data: dict) -> "LabConfig":
        """Create from dictionary (handles presence/absence of lab_config key)"""
        config_data = data.get("lab_config", data)
        return cls(
            recognition=RecognitionConfig(**config_data.get("recognition", {})),
            isolation=IsolationConfig(**config_data.get("isolation", {})),
            policy=PolicyConfig(**config_data.get("policy", {})),
            duplicate=DuplicateConfig(**config_data.get("duplicate", {})),
            lmstudio=LMStudioConfig(**config_data.get("lmstudio", {})),
        )


def load_config() -> LabConfig:
    """
    Load configuration from environment variables

    Uses default values when environment variables are not set.

    Returns:
        LabConfig
    """
    recognition = RecognitionConfig(
        model_name=_env_str("METER_LAB_MODEL", DEFAULT_MODEL),
        max_tokens=_env_int("METER_LAB_MAX_TOKENS", 1024),
        primary_field=_env_str("METER_LAB_PRIMARY_FIELD", "reading"),
        dedup_uploads=_env_bool("METER_LAB_DEDUP_UPLOADS", True),
    )
    isolation = IsolationConfig(
        timeout_seconds=_env_int("METER_LAB_TIMEOUT_SECONDS", 120),
        max_retries=_env_int("METER_LAB_MAX_RETRIES", 3),
        retry_delay_seconds=_env_float("METER_LAB_RETRY_DELAY_SECONDS", 1.0),
    )
    policy = PolicyConfig(
        min_photos_required=_env_int("METER_LAB_MIN_PHOTOS", DEFAULT_MIN_PHOTOS),
        promotion_min_accuracy=_env_float("METER_LAB_PROMOTION_MIN_ACCURACY", PROMOTION_MIN_ACCURACY),
        ab_materiality_threshold=_env_float("METER_LAB_AB_THRESHOLD", AB_MATERIALITY_THRESHOLD),
    )
    duplicate = DuplicateConfig(
        batch_size=_env_int("METER_LAB_DUPLICATE_BATCH_SIZE", DUPLICATE_BATCH_SIZE),
        max_tokens=_env_int("METER_LAB_DUPLICATE_MAX_TOKENS", 500),
        phash_max_distance=_env_int("METER_LAB_PHASH_MAX_DISTANCE", 100),
    )
    lmstudio = LMStudioConfig(
        base_url=_env_str("LMSTUDIO_BASE_URL", "http://localhost:1234/v1"),
        api_key=_env_str("LMSTUDIO_API_KEY", "lm-studio"),
    )
    return LabConfig(
        recognition=recognition,
        isolation=isolation,
        policy=policy,
        duplicate=duplicate,
        lmstudio=lmstudio,
    )
