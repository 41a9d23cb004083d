"""
lab_config.pyのテスト
"""

import pytest

from meter_lab_core.lab_config import (
    DuplicateConfig,
    IsolationConfig,
    LabConfig,
    PolicyConfig,
    RecognitionConfig,
    load_config,
)

_ENV_KEYS = [
    "METER_LAB_MODEL", "METER_LAB_MAX_TOKENS", "METER_LAB_PRIMARY_FIELD",
    "METER_LAB_DEDUP_UPLOADS", "METER_LAB_TIMEOUT_SECONDS",
    "METER_LAB_MAX_RETRIES", "METER_LAB_RETRY_DELAY_SECONDS",
    "METER_LAB_MIN_PHOTOS", "METER_LAB_PROMOTION_MIN_ACCURACY",
    "METER_LAB_AB_THRESHOLD", "METER_LAB_DUPLICATE_BATCH_SIZE",
    "METER_LAB_DUPLICATE_MAX_TOKENS", "METER_LAB_PHASH_MAX_DISTANCE",
    "LMSTUDIO_BASE_URL", "LMSTUDIO_API_KEY",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestPolicyConfig:
    """PolicyConfig dataclassのテスト"""

    def test_defaults(self):
        config = PolicyConfig()
        assert config.min_photos_required == 5
        assert config.promotion_min_accuracy == 0.70
        assert config.ab_materiality_threshold == 0.02


class TestIsolationConfig:
    """IsolationConfig dataclassのテスト"""

    def test_defaults(self):
        config = IsolationConfig()
        assert config.timeout_seconds == 120
        assert config.max_retries == 3
        assert config.retry_delay_seconds == 1.0


class TestLabConfig:
    """LabConfig dataclassのテスト"""

    def test_defaults(self):
        config = LabConfig()
        assert isinstance(config.recognition, RecognitionConfig)
        assert isinstance(config.duplicate, DuplicateConfig)
        assert config.duplicate.batch_size == 5

    def test_to_dict(self):
        d = LabConfig().to_dict()
        assert "lab_config" in d
        assert d["lab_config"]["recognition"]["primary_field"] == "reading"
        assert d["lab_config"]["policy"]["min_photos_required"] == 5

    def test_from_dict_with_key(self):
        data = {
            "lab_config": {
                "policy": {"promotion_min_accuracy": 0.8},
                "isolation": {"timeout_seconds": 60},
            }
        }
        config = LabConfig.from_dict(data)
        assert config.policy.promotion_min_accuracy == 0.8
        assert config.isolation.timeout_seconds == 60
        # デフォルト値は維持される
        assert config.policy.ab_materiality_threshold == 0.02

    def test_from_dict_without_key(self):
        config = LabConfig.from_dict({"duplicate": {"batch_size": 3}})
        assert config.duplicate.batch_size == 3

    def test_roundtrip(self):
        original = LabConfig(policy=PolicyConfig(min_photos_required=8))
        restored = LabConfig.from_dict(original.to_dict())
        assert restored.policy.min_photos_required == 8


class TestLoadConfig:
    """load_config関数のテスト（環境変数ベース）"""

    def test_defaults_without_env(self, clean_env):
        """環境変数未設定時はデフォルト値を返す"""
        config = load_config()
        assert config.recognition.max_tokens == 1024
        assert config.recognition.dedup_uploads is True
        assert config.policy.min_photos_required == 5
        assert config.lmstudio.base_url == "http://localhost:1234/v1"

    def test_custom_env_values(self, clean_env):
        """環境変数から値を読み込む"""
        clean_env.setenv("METER_LAB_MODEL", "gemini-2.5-flash")
        clean_env.setenv("METER_LAB_DEDUP_UPLOADS", "false")
        clean_env.setenv("METER_LAB_MIN_PHOTOS", "8")
        clean_env.setenv("METER_LAB_AB_THRESHOLD", "0.05")
        clean_env.setenv("LMSTUDIO_API_KEY", "custom-key")

        config = load_config()
        assert config.recognition.model_name == "gemini-2.5-flash"
        assert config.recognition.dedup_uploads is False
        assert config.policy.min_photos_required == 8
        assert config.policy.ab_materiality_threshold == 0.05
        assert config.lmstudio.api_key == "custom-key"

    def test_invalid_int(self, clean_env):
        """整数に変換できない値はValueError"""
        clean_env.setenv("METER_LAB_MIN_PHOTOS", "five")
        with pytest.raises(ValueError, match="METER_LAB_MIN_PHOTOS"):
            load_config()

    def test_invalid_float(self, clean_env):
        """数値に変換できない値はValueError"""
        clean_env.setenv("METER_LAB_PROMOTION_MIN_ACCURACY", "high")
        with pytest.raises(ValueError, match="METER_LAB_PROMOTION_MIN_ACCURACY"):
            load_config()
