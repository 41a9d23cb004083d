"""
Layer Loader

Loads configuration layers and photo manifests from JSON files.

Layers file:
    {
      "universal": {"version": "3", "base_prompt": "...", "default_preprocessing": {...},
                    "min_confidence": 0.7, "multi_pass_count": 1},
      "types": [{"id": "...", "meter_type": "gas", "additional_prompt": "...", ...}],
      "models": [{"id": "...", "specific_prompt": "...", "extraction_zones": [...], ...}]
    }

Manifest file (or a bare list of photo entries):
    {"photos": [{"image_ref": "photos/001.jpg", "ground_truth": {"reading": "01234,567"}}]}
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from meter_lab_core.config_composer import ModelConfig, TypeConfig, UniversalConfig
from meter_lab_core.domain.value_objects import ReferenceImage


@dataclass
class LayerSet:
    """All configuration layers read from one file"""
    universal: UniversalConfig
    types: dict[str, TypeConfig] = field(default_factory=dict)     # keyed by meter_type
    models: dict[str, ModelConfig] = field(default_factory=dict)   # keyed by id

    def type_for(self, meter_type: str | None) -> TypeConfig | None:
        if meter_type is None:
            return None
        return self.types.get(meter_type)

    def model(self, model_id: str | None) -> ModelConfig | None:
        if model_id is None:
            return None
        if model_id not in self.models:
            raise KeyError(f"Unknown model config: {model_id}")
        return self.models[model_id]


@dataclass
class ManifestEntry:
    """One photo listed in a manifest"""
    image_ref: str
    ground_truth: dict | None = None


def _parse_universal(data: dict) -> UniversalConfig:
    return UniversalConfig(
        version=str(data.get("version", "1")),
        base_prompt=data.get("base_prompt", ""),
        default_preprocessing=data.get("default_preprocessing") or {},
        min_confidence=float(data.get("min_confidence", 0.7)),
        multi_pass_count=int(data.get("multi_pass_count", 1)),
    )


def _parse_type(data: dict) -> TypeConfig:
    return TypeConfig(
        id=data["id"],
        meter_type=data["meter_type"],
        additional_prompt=data.get("additional_prompt", ""),
        preprocessing_override=data.get("preprocessing_override"),
        reading_format_regex=data.get("reading_format_regex"),
    )


def _parse_model(data: dict) -> ModelConfig:
    return ModelConfig(
        id=data["id"],
        specific_prompt=data.get("specific_prompt", ""),
        extraction_zones=data.get("extraction_zones") or [],
        visual_characteristics=data.get("visual_characteristics"),
        index_config=data.get("index_config"),
        preprocessing_override=data.get("preprocessing_override"),
        manufacturer=data.get("manufacturer"),
        reading_format_regex=data.get("reading_format_regex"),
    )


def parse_layers(data: dict) -> LayerSet:
    """
    Create a LayerSet from dictionary data

    Raises:
        KeyError: If the universal layer or a layer id is missing
    """
    if "universal" not in data:
        raise KeyError("Required field 'universal' is missing")
    types = [_parse_type(t) for t in data.get("types", [])]
    models = [_parse_model(m) for m in data.get("models", [])]
    return LayerSet(
        universal=_parse_universal(data["universal"]),
        types={t.meter_type: t for t in types},
        models={m.id: m for m in models},
    )


def load_layers(file_path: str) -> LayerSet:
    """
    Load configuration layers from a JSON file

    Args:
        file_path: Path to the layers JSON file

    Returns:
        LayerSet

    Raises:
        FileNotFoundError: If the file does not exist
        KeyError: If a required field is missing
    """
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    try:
        return parse_layers(data)
    except KeyError as e:
        raise KeyError(f"{e.args[0]}: {file_path}") from e


def _resolve_ref(ref: str, base_dir: Path) -> str:
    if ref.startswith(("http://", "https://", "data:")) or Path(ref).is_absolute():
        return ref
    return str(base_dir / ref)


def load_manifest(file_path: str) -> list[ManifestEntry]:
    """
    Load a photo manifest

    Relative local paths are resolved against the manifest's directory;
    URLs are kept as-is.

    Args:
        file_path: Path to the manifest JSON file

    Returns:
        list[ManifestEntry]

    Raises:
        FileNotFoundError: If the file does not exist
        KeyError: If an entry has no image_ref
    """
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    entries = data["photos"] if isinstance(data, dict) else data
    base_dir = Path(file_path).parent

    manifest = []
    for entry in entries:
        if "image_ref" not in entry:
            raise KeyError(f"Required field 'image_ref' is missing: {file_path}")
        manifest.append(ManifestEntry(
            image_ref=_resolve_ref(entry["image_ref"], base_dir),
            ground_truth=entry.get("ground_truth")))
    return manifest


def load_references(file_path: str) -> list[ReferenceImage]:
    """
    Load existing reference models for the duplicate-model check

    File format (or a bare list of entries):
        {"references": [{"ref_id": "...", "name": "...", "image_ref": "...",
                         "manufacturer": "...", "meter_type": "gas"}]}

    Args:
        file_path: Path to the references JSON file

    Returns:
        list[ReferenceImage] in file order

    Raises:
        FileNotFoundError: If the file does not exist
        KeyError: If an entry has no ref_id, name or image_ref
    """
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    entries = data["references"] if isinstance(data, dict) else data
    base_dir = Path(file_path).parent

    references = []
    for entry in entries:
        for key in ("ref_id", "name", "image_ref"):
            if key not in entry:
                raise KeyError(f"Required field '{key}' is missing: {file_path}")
        references.append(ReferenceImage(
            ref_id=str(entry["ref_id"]),
            name=entry["name"],
            image_ref=_resolve_ref(entry["image_ref"], base_dir),
            manufacturer=entry.get("manufacturer"),
            meter_type=entry.get("meter_type"),
        ))
    return references
