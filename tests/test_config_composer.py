"""Tests for config_composer"""

from meter_lab_core.config_composer import (
    PROMPT_SEPARATOR,
    ModelConfig,
    TypeConfig,
    UniversalConfig,
    compose,
)


def _universal(**kwargs):
    defaults = dict(
        version="3",
        base_prompt="You read utility meters.",
        default_preprocessing={"contrast": 30},
        min_confidence=0.8,
        multi_pass_count=2,
    )
    defaults.update(kwargs)
    return UniversalConfig(**defaults)


GAS = TypeConfig(
    id="t-gas",
    meter_type="gas",
    additional_prompt="Gas meters show m3.",
    preprocessing_override={"contrast": 50, "crop": {"x": 1, "y": 2}},
    reading_format_regex=r"^\d{5},\d{3}$",
)

ITRON = ModelConfig(
    id="m-itron",
    specific_prompt="The red drums are decimals.",
    preprocessing_override={"crop": {"x": 9}},
)


class TestCompose:
    def test_universal_only(self):
        effective = compose(_universal())
        assert effective.prompt == "You read utility meters."
        assert effective.preprocessing == {"contrast": 30}
        assert effective.identity == ("3", None, None)
        assert effective.config_id == "3:-:-"

    def test_layer_order(self):
        """プロンプト断片は universal -> type -> model の順に連結される"""
        effective = compose(_universal(), GAS, ITRON)
        assert effective.prompt == PROMPT_SEPARATOR.join([
            "You read utility meters.",
            "Gas meters show m3.",
            "The red drums are decimals.",
        ])
        assert effective.identity == ("3", "t-gas", "m-itron")
        assert effective.config_id == "3:t-gas:m-itron"
        assert effective.meter_type == "gas"

    def test_empty_fragments_are_skipped(self):
        effective = compose(_universal(), TypeConfig(id="t", meter_type="water"), ModelConfig(id="m"))
        assert effective.prompt == "You read utility meters."
        assert PROMPT_SEPARATOR not in effective.prompt

    def test_preprocessing_later_layer_wins_whole_value(self):
        """後のレイヤーがキー単位で上書きし、ネストした値は丸ごと置き換わる"""
        effective = compose(_universal(), GAS, ITRON)
        assert effective.preprocessing == {"contrast": 50, "crop": {"x": 9}}

    def test_thresholds_from_universal(self):
        effective = compose(_universal(), GAS, ITRON)
        assert effective.min_confidence == 0.8
        assert effective.multi_pass_count == 2

    def test_universal_only_ignores_layers(self):
        universal = _universal()
        assert compose(universal, GAS, ITRON, universal_only=True) == compose(universal)

    def test_reading_format_most_specific_wins(self):
        assert compose(_universal(), GAS).reading_format_regex == r"^\d{5},\d{3}$"
        model = ModelConfig(id="m", reading_format_regex=r"^\d{6}$")
        assert compose(_universal(), GAS, model).reading_format_regex == r"^\d{6}$"

    def test_model_fragment_from_structured_fields(self):
        model = ModelConfig(id="m", extraction_zones=[{"type": "index", "x": 1, "y": 2, "width": 3, "height": 4}])
        effective = compose(_universal(), model_config=model)
        assert "REGIONS OF INTEREST" in effective.prompt
        assert effective.config_id == "3:-:m"

    def test_preprocessing_spec(self):
        spec = compose(_universal(), GAS).preprocessing_spec()
        assert spec.contrast == 50
        assert spec.sharpness == 20

    def test_same_inputs_same_identity(self):
        assert compose(_universal(), GAS).identity == compose(_universal(), GAS).identity
