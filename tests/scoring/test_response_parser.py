"""Tests for response_parser"""

import pytest

from meter_lab_core.domain.errors import ParseError
from meter_lab_core.scoring.response_parser import (
    MAX_DEPTH,
    extract_json_object,
    find_json_object,
)


class TestFindJsonObject:
    """find_json_object のテスト"""

    def test_plain_object(self):
        assert find_json_object('{"reading": "1"}') == '{"reading": "1"}'

    def test_leading_prose_and_fence(self):
        """前置きの文章やMarkdownフェンスがあっても抽出できる"""
        text = 'Here is the result:\n```json\n{"reading": "01234,567"}\n```\nDone.'
        assert find_json_object(text) == '{"reading": "01234,567"}'

    def test_braces_inside_strings(self):
        text = '{"explanation": "looks like } or {", "reading": "1"} trailing {'
        assert find_json_object(text) == '{"explanation": "looks like } or {", "reading": "1"}'

    def test_escaped_quote_inside_string(self):
        text = '{"explanation": "a \\"quoted\\" } brace"}'
        assert find_json_object(text) == text

    def test_nested(self):
        text = 'x {"a": {"b": {}}} y {"c": 1}'
        assert find_json_object(text) == '{"a": {"b": {}}}'

    def test_no_object(self):
        assert find_json_object("no json here") is None

    def test_unbalanced(self):
        assert find_json_object('{"reading": "1"') is None

    def test_scan_bound(self):
        text = "x" * 50 + '{"reading": "1"}'
        assert find_json_object(text, max_chars=40) is None
        assert find_json_object(text, max_chars=100) == '{"reading": "1"}'

    def test_too_deep(self):
        text = "{" * (MAX_DEPTH + 1) + "}" * (MAX_DEPTH + 1)
        assert find_json_object(text) is None


class TestExtractJsonObject:
    """extract_json_object のテスト"""

    def test_decodes(self):
        assert extract_json_object('Sure: {"reading": "123", "confidence": 0.9}') == {
            "reading": "123",
            "confidence": 0.9,
        }

    def test_no_object_raises_with_raw(self):
        with pytest.raises(ParseError) as exc_info:
            extract_json_object("I cannot read this meter.")
        assert exc_info.value.raw == "I cannot read this meter."

    def test_invalid_json(self):
        with pytest.raises(ParseError, match="Invalid JSON"):
            extract_json_object("{reading: 123}")

    def test_empty_and_none(self):
        with pytest.raises(ParseError):
            extract_json_object("")
        with pytest.raises(ParseError):
            extract_json_object(None)
