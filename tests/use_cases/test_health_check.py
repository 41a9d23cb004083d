"""
ヘルスチェックのテスト
"""

from unittest.mock import MagicMock

from meter_lab_core.domain.value_objects import VisionResponse
from meter_lab_core.use_cases.health_check import (
    HEALTH_CHECK_INSTRUCTION,
    health_check_model,
    run_health_check,
)


def _factory(output="OK", error=None):
    def create(model_name):
        if error is not None:
            raise error
        client = MagicMock()
        client.infer.return_value = VisionResponse(output=output, latency_ms=42, model_name=model_name)
        return client
    return create


class TestHealthCheckModel:
    def test_success(self):
        result = health_check_model("gemini-2.5-flash", _factory())
        assert result.success is True
        assert result.latency_ms == 42
        assert result.error is None

    def test_sends_text_only_request(self):
        client = MagicMock()
        client.infer.return_value = VisionResponse(output="OK", latency_ms=1, model_name="m")
        health_check_model("m", lambda name: client)
        client.infer.assert_called_once_with([], HEALTH_CHECK_INSTRUCTION, max_tokens=16)

    def test_empty_response(self):
        result = health_check_model("m", _factory(output=""))
        assert result.success is False
        assert result.error == "Empty response"

    def test_client_creation_error(self):
        """クライアント生成時の例外は失敗として記録される"""
        result = health_check_model("claude-sonnet-4-20250514", _factory(error=ValueError("ANTHROPIC_API_KEY is not set")))
        assert result.success is False
        assert result.latency_ms is None
        assert "ANTHROPIC_API_KEY" in result.error


class TestRunHealthCheck:
    def test_partitions_models(self, capsys):
        def create(model_name):
            if model_name == "broken":
                raise ConnectionError("unreachable")
            return _factory()(model_name)

        available, results = run_health_check(["gemini-2.5-flash", "broken"], create)

        assert available == ["gemini-2.5-flash"]
        assert [r.success for r in results] == [True, False]
        out = capsys.readouterr().out
        assert "OK (42ms)" in out
        assert "FAILED" in out
