"""Tests for prompt_builder"""

from meter_lab_core.prompt_builder import (
    OUTPUT_SCHEMA_INSTRUCTION,
    STRICT_PASS_SUFFIX,
    build_duplicate_prompt,
    build_model_fragment,
    build_recognition_prompt,
    duplicate_labels,
)


class TestBuildRecognitionPrompt:
    def test_appends_output_schema(self):
        prompt = build_recognition_prompt("Read the gas meter.")
        assert prompt.startswith("Read the gas meter.")
        assert prompt.endswith(OUTPUT_SCHEMA_INSTRUCTION)
        assert STRICT_PASS_SUFFIX not in prompt

    def test_strict_pass(self):
        prompt = build_recognition_prompt("Read the gas meter.", strict=True)
        assert prompt.endswith(STRICT_PASS_SUFFIX)

    def test_empty_effective_prompt(self):
        """空のレイヤープロンプトでも出力スキーマだけは含まれる"""
        assert build_recognition_prompt("") == OUTPUT_SCHEMA_INSTRUCTION


class TestBuildModelFragment:
    def test_nothing_defined(self):
        assert build_model_fragment() == ""

    def test_specific_prompt_only(self):
        assert build_model_fragment(specific_prompt="Red drum is decimals.") == "Red drum is decimals."

    def test_zones(self):
        fragment = build_model_fragment(extraction_zones=[
            {"type": "index", "x": 10, "y": 20, "width": 50, "height": 15},
            {"type": "other", "label": "logo", "x": 0, "y": 0, "width": 5, "height": 5},
        ])
        assert "=== REGIONS OF INTEREST ===" in fragment
        assert "- INDEX ZONE: Position [10%, 20%], Size [50% x 15%]." in fragment
        assert "- LOGO ZONE: Position [0%, 0%], Size [5% x 5%]." in fragment

    def test_display_characteristics(self):
        fragment = build_model_fragment(visual_characteristics={
            "display_type": "mechanical", "num_digits": 5, "num_decimals": 3,
        })
        assert "- Display type: mechanical" in fragment
        assert "format: XXXXX,XXX" in fragment

    def test_index_config_used_without_display_characteristics(self):
        fragment = build_model_fragment(index_config={"integerDigits": 6, "decimalDigits": 2})
        assert "=== INDEX FORMAT ===" in fragment
        assert "- Integer digits: 6" in fragment

    def test_index_config_ignored_with_display_characteristics(self):
        fragment = build_model_fragment(
            visual_characteristics={"display_type": "digital"},
            index_config={"integerDigits": 6},
        )
        assert "INDEX FORMAT" not in fragment

    def test_section_order(self):
        fragment = build_model_fragment(
            specific_prompt="Manual.",
            extraction_zones=[{"type": "serial"}],
            visual_characteristics={"display_type": "digital"},
        )
        assert fragment.index("Manual.") < fragment.index("REGIONS") < fragment.index("DISPLAY")


class TestDuplicatePrompt:
    def test_models_are_numbered_from_one(self):
        prompt = build_duplicate_prompt(["Itron G4 (gas)", "Elster BK (gas)"])
        assert "Model 1: Itron G4 (gas)" in prompt
        assert "Model 2: Elster BK (gas)" in prompt
        assert '"matchedModelIndex"' in prompt

    def test_labels(self):
        assert duplicate_labels(2) == ["Candidate photo:", "Model 1:", "Model 2:"]
