"""ドメイン定数のテスト"""

from meter_lab_core.domain.constants import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    DEFAULT_MODEL,
    DEFAULT_PREPROCESSING,
    MODEL_PRICING,
    _LOCAL_MODEL_PRICING,
)


def test_default_model_has_pricing():
    """DEFAULT_MODELがMODEL_PRICINGに存在すること"""
    assert DEFAULT_MODEL in MODEL_PRICING


def test_local_model_pricing():
    """_LOCAL_MODEL_PRICINGがinput/outputキーを持ち両方0であること"""
    assert _LOCAL_MODEL_PRICING["input"] == 0.0
    assert _LOCAL_MODEL_PRICING["output"] == 0.0


def test_model_pricing_has_input_output():
    """MODEL_PRICINGの各エントリがinput/outputキーを持つこと"""
    for model, pricing in MODEL_PRICING.items():
        assert "input" in pricing, f"{model} missing input pricing"
        assert "output" in pricing, f"{model} missing output pricing"


def test_confidence_buckets_are_ordered():
    """信頼度バケットの下限が high > medium > low の順であること"""
    assert CONFIDENCE_HIGH > CONFIDENCE_MEDIUM > CONFIDENCE_LOW > 0


def test_default_preprocessing():
    """デフォルト前処理がコントラスト30・シャープネス20であること"""
    assert DEFAULT_PREPROCESSING["contrast"] == 30
    assert DEFAULT_PREPROCESSING["sharpness"] == 20
    assert DEFAULT_PREPROCESSING["grayscale"] is False
