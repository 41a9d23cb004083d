"""Tests for preprocessing"""

import pytest

from meter_lab_core.preprocessing import ImagePreprocessSpec


class TestImagePreprocessSpec:
    def test_defaults(self):
        spec = ImagePreprocessSpec()
        assert spec.contrast == 30
        assert spec.sharpness == 20
        assert spec.differs_from_defaults() is False

    @pytest.mark.parametrize("field,value", [
        ("contrast", 101),
        ("contrast", -1),
        ("brightness", -101),
        ("sharpness", 150),
        ("saturation", 201),
    ])
    def test_out_of_range(self, field, value):
        with pytest.raises(ValueError, match=field):
            ImagePreprocessSpec(**{field: value})

    def test_bool_is_not_a_number(self):
        with pytest.raises(ValueError, match="contrast"):
            ImagePreprocessSpec(contrast=True)

    def test_unknown_methods(self):
        with pytest.raises(ValueError, match="binarization"):
            ImagePreprocessSpec(binarization="adaptive")
        with pytest.raises(ValueError, match="denoise"):
            ImagePreprocessSpec(denoise="gaussian")


class TestFromMapping:
    def test_none_gives_defaults(self):
        assert ImagePreprocessSpec.from_mapping(None) == ImagePreprocessSpec()

    def test_sparse_override(self):
        spec = ImagePreprocessSpec.from_mapping({"contrast": 60, "grayscale": True})
        assert spec.contrast == 60
        assert spec.grayscale is True
        assert spec.sharpness == 20
        assert spec.differs_from_defaults() is True

    def test_unknown_keys_ignored(self):
        spec = ImagePreprocessSpec.from_mapping({"crop": {"x": 1}})
        assert spec == ImagePreprocessSpec()

    def test_invalid_value_raises(self):
        with pytest.raises(ValueError):
            ImagePreprocessSpec.from_mapping({"brightness": 500})


class TestTransforms:
    def test_default_transforms(self):
        assert ImagePreprocessSpec().transforms() == [("contrast", 30), ("sharpness", 20)]

    def test_full_order(self):
        spec = ImagePreprocessSpec(
            grayscale=True, contrast=40, brightness=10, sharpness=0,
            saturation=150, binarization="otsu", denoise="median",
        )
        assert spec.transforms() == [
            ("denoise", "median"),
            ("grayscale", True),
            ("brightness", 10),
            ("contrast", 40),
            ("binarization", "otsu"),
        ]

    def test_saturation_without_grayscale(self):
        steps = dict(ImagePreprocessSpec(saturation=150).transforms())
        assert steps["saturation"] == 150
