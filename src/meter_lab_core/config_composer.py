"""
Config Composer

Merges the three configuration layers (universal -> meter type -> model) into
one EffectiveConfig.

Merge rules:
- prompt fragments concatenate in layer order, separated by a blank line;
  empty fragments are skipped
- preprocessing overrides overlay key by key, later layers win, and each key
  replaces the previous value whole (nested values included)
- thresholds come from the universal layer only
"""

from __future__ import annotations

from dataclasses import dataclass, field

from meter_lab_core.preprocessing import ImagePreprocessSpec
from meter_lab_core.prompt_builder import build_model_fragment

PROMPT_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class UniversalConfig:
    """Base layer shared by every meter type"""
    version: str = "1"
    base_prompt: str = ""
    default_preprocessing: dict = field(default_factory=dict, hash=False)
    min_confidence: float = 0.7
    multi_pass_count: int = 1

    @property
    def prompt_fragment(self) -> str | None:
        return self.base_prompt or None

    @property
    def preprocessing_override(self) -> dict | None:
        return self.default_preprocessing or None


@dataclass(frozen=True)
class TypeConfig:
    """Meter-type layer (gas, water, electricity, ...)"""
    id: str
    meter_type: str
    additional_prompt: str = ""
    preprocessing_override: dict | None = field(default=None, hash=False)
    reading_format_regex: str | None = None

    @property
    def prompt_fragment(self) -> str | None:
        return self.additional_prompt or None


@dataclass(frozen=True)
class ModelConfig:
    """Meter-model layer; its fragment is the manual prompt plus sections generated from its structured fields"""
    id: str
    specific_prompt: str = ""
    extraction_zones: list[dict] = field(default_factory=list, hash=False)
    visual_characteristics: dict | None = field(default=None, hash=False)
    index_config: dict | None = field(default=None, hash=False)
    preprocessing_override: dict | None = field(default=None, hash=False)
    manufacturer: str | None = None
    reading_format_regex: str | None = None

    @property
    def prompt_fragment(self) -> str | None:
        return build_model_fragment(
            specific_prompt=self.specific_prompt,
            extraction_zones=self.extraction_zones,
            visual_characteristics=self.visual_characteristics,
            index_config=self.index_config,
        ) or None


@dataclass(frozen=True)
class EffectiveConfig:
    """Immutable result of composing the layer chain"""
    universal_version: str
    type_config_id: str | None
    model_config_id: str | None
    prompt: str
    preprocessing: dict = field(hash=False)
    min_confidence: float = 0.7
    multi_pass_count: int = 1
    meter_type: str | None = None
    reading_format_regex: str | None = None

    @property
    def identity(self) -> tuple[str, str | None, str | None]:
        """(universal version, type-config id, model-config id)"""
        return (self.universal_version, self.type_config_id, self.model_config_id)

    @property
    def config_id(self) -> str:
        """Identity flattened into a single key for run records"""
        return ":".join(part or "-" for part in self.identity)

    def preprocessing_spec(self) -> ImagePreprocessSpec:
        """Validated preprocessing parameters (defaults filled in)"""
        return ImagePreprocessSpec.from_mapping(self.preprocessing)


def compose(
    universal: UniversalConfig,
    type_config: TypeConfig | None = None,
    model_config: ModelConfig | None = None,
    *,
    universal_only: bool = False,
) -> EffectiveConfig:
    """
    Compose the configuration layers

    Args:
        universal: Universal layer (always applied)
        type_config: Meter-type layer, if any
        model_config: Meter-model layer, if any
        universal_only: Ignore the type and model layers

    Returns:
        EffectiveConfig
    """
    layers = [universal]
    if not universal_only:
        layers.extend(layer for layer in (type_config, model_config) if layer is not None)

    fragments: list[str] = []
    preprocessing: dict = {}
    for layer in layers:
        if layer.prompt_fragment:
            fragments.append(layer.prompt_fragment)
        if layer.preprocessing_override:
            preprocessing.update(layer.preprocessing_override)

    applied_type = type_config if not universal_only else None
    applied_model = model_config if not universal_only else None

    # Most specific format wins
    reading_format_regex = None
    for layer in (applied_type, applied_model):
        if layer is not None and layer.reading_format_regex:
            reading_format_regex = layer.reading_format_regex

    return EffectiveConfig(
        universal_version=universal.version,
        type_config_id=applied_type.id if applied_type else None,
        model_config_id=applied_model.id if applied_model else None,
        prompt=PROMPT_SEPARATOR.join(fragments),
        preprocessing=preprocessing,
        min_confidence=universal.min_confidence,
        multi_pass_count=universal.multi_pass_count,
        meter_type=applied_type.meter_type if applied_type else None,
        reading_format_regex=reading_format_regex,
    )
