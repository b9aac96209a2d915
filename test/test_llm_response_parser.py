"""
Unit tests for JSON-mode reply parsing.
"""

import pytest

from betterphone.llm.models import LLMResponseFormatError
from betterphone.llm.parser import parse_json_object


class TestParseJsonObject:
    def test_plain_object(self) -> None:
        assert parse_json_object('{"urgency_level": 8}') == {"urgency_level": 8}

    def test_fenced_object(self) -> None:
        raw = '```json\n{"summary": "tired parent"}\n```'
        assert parse_json_object(raw) == {"summary": "tired parent"}

    def test_bare_fence(self) -> None:
        assert parse_json_object('```\n{"a": 1}\n```') == {"a": 1}

    @pytest.mark.parametrize("raw", [None, "", "   \n"])
    def test_empty_reply(self, raw: str | None) -> None:
        assert parse_json_object(raw) == {}

    @pytest.mark.parametrize("raw", ["[1, 2]", '"text"', "42"])
    def test_non_object_json(self, raw: str) -> None:
        with pytest.raises(LLMResponseFormatError):
            parse_json_object(raw)

    def test_invalid_json(self) -> None:
        with pytest.raises(LLMResponseFormatError, match="not valid JSON"):
            parse_json_object("Sure! Here is the data: {urgency: high}")
