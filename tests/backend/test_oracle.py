"""Tests for oracle reply parsing and construction."""

import pytest

from hatchmatch.exceptions import ConfigurationError, ExtractionError
from hatchmatch.services.oracle import AnthropicOracle, extract_json_array, extract_json_object


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_markdown_fence(self):
        reply = 'Here you go:\n```json\n{"flies": ["RS2"]}\n```\nGood luck!'
        assert extract_json_object(reply) == {"flies": ["RS2"]}

    def test_leading_prose_and_trailing_commentary(self):
        reply = 'Sure. {"reportDate": "January 28, 2026", "flies": []} Let me know.'
        assert extract_json_object(reply)["reportDate"] == "January 28, 2026"

    def test_trailing_commas_repaired(self):
        assert extract_json_object('{"flies": ["A", "B",], "x": 1,}') == {"flies": ["A", "B"], "x": 1}

    def test_no_object_raises(self):
        with pytest.raises(ExtractionError):
            extract_json_object("I could not find a report.")

    def test_empty_reply_raises(self):
        with pytest.raises(ExtractionError):
            extract_json_object("")

    def test_malformed_json_raises(self):
        with pytest.raises(ExtractionError):
            extract_json_object('{"flies": [unquoted]}')

    def test_array_is_not_an_object(self):
        # The object inside the array is found first.
        assert extract_json_object('[{"a": 1}]') == {"a": 1}


class TestExtractJsonArray:
    def test_plain_array(self):
        assert extract_json_array('[{"fly_name": "RS2"}]') == [{"fly_name": "RS2"}]

    def test_fenced_array(self):
        assert extract_json_array("```\n[1, 2, 3]\n```") == [1, 2, 3]

    def test_missing_array_raises(self):
        with pytest.raises(ExtractionError):
            extract_json_array('{"not": "an array"}')


class TestAnthropicOracle:
    def test_missing_key_fails_fast(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AnthropicOracle(api_key="", model="claude-haiku-4-5-20251001")
        assert exc_info.value.missing_credentials is True
        assert "ANTHROPIC_API_KEY" in str(exc_info.value)

    def test_constructs_with_key(self):
        oracle = AnthropicOracle(api_key="test-key", model="claude-haiku-4-5-20251001")
        assert oracle is not None
