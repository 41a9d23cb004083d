"""
Image Preprocessing

Declarative, validated image adjustments. The parameters are resolved on top
of the lab defaults and emitted as an ordered transform list for the external
image pipeline; no pixels are touched here.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from meter_lab_core.domain.constants import DEFAULT_PREPROCESSING

# Inclusive numeric bounds per parameter
_RANGES: dict[str, tuple[int, int]] = {
    "contrast": (0, 100),
    "brightness": (-100, 100),
    "sharpness": (0, 100),
    "saturation": (0, 200),
}

BINARIZATION_METHODS = ("otsu", "sauvola")
DENOISE_METHODS = ("median", "bilateral")


@dataclass(frozen=True)
class ImagePreprocessSpec:
    """Resolved preprocessing parameters"""
    grayscale: bool = False
    contrast: int = 30
    brightness: int = 0
    sharpness: int = 20
    saturation: int = 100
    binarization: str | None = None
    denoise: str | None = None

    def __post_init__(self):
        for name, (low, high) in _RANGES.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not low <= value <= high:
                raise ValueError(f"{name} must be between {low} and {high}, got {value}")
        if not isinstance(self.grayscale, bool):
            raise ValueError(f"grayscale must be a boolean, got {self.grayscale!r}")
        if self.binarization is not None and self.binarization not in BINARIZATION_METHODS:
            raise ValueError(f"Unknown binarization method: {self.binarization}")
        if self.denoise is not None and self.denoise not in DENOISE_METHODS:
            raise ValueError(f"Unknown denoise method: {self.denoise}")

    @classmethod
    def from_mapping(cls, values: dict | None) -> "ImagePreprocessSpec":
        """
        Resolve a (possibly sparse) preprocessing map on top of the defaults

        Unknown keys are ignored so that layers may carry pipeline-specific
        settings this class does not model.

        Raises:
            ValueError: If a known parameter is out of range
        """
        merged = {**DEFAULT_PREPROCESSING, **(values or {})}
        known = {k: v for k, v in merged.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def to_dict(self) -> dict:
        return asdict(self)

    def differs_from_defaults(self) -> bool:
        """Whether any adjustment deviates from the lab defaults"""
        return self != ImagePreprocessSpec()

    def transforms(self) -> list[tuple[str, object]]:
        """
        Ordered transform list for the image pipeline

        Neutral adjustments are omitted. Order: denoise, grayscale, brightness,
        contrast, saturation, sharpness, binarization.
        """
        steps: list[tuple[str, object]] = []
        if self.denoise:
            steps.append(("denoise", self.denoise))
        if self.grayscale:
            steps.append(("grayscale", True))
        if self.brightness != 0:
            steps.append(("brightness", self.brightness))
        if self.contrast != 0:
            steps.append(("contrast", self.contrast))
        if self.saturation != 100 and not self.grayscale:
            steps.append(("saturation", self.saturation))
        if self.sharpness != 0:
            steps.append(("sharpness", self.sharpness))
        if self.binarization:
            steps.append(("binarization", self.binarization))
        return steps
