"""Tests for structured OCR response parsing (pagequote/extraction/parsing.py)."""

import pytest

from pagequote.exceptions import MalformedResponseError
from pagequote.extraction.parsing import (
    coerce_structured_result,
    decode_structured_json,
    parse_structured_response,
    result_from_mapping,
    strip_code_fence,
)
from pagequote.models import PageMetadata, ParsedFallback, ParsedOk

FULL_RESPONSE = """{
  "paragraphs": ["첫 번째 문단입니다.", "두 번째 문단입니다."],
  "underlinedSentences": ["밑줄 친 문장"],
  "bookTitle": "어린 왕자",
  "pageNumber": 42
}"""


class TestStripCodeFence:
    """Tests for strip_code_fence()."""

    def test_json_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_json_fence_with_surrounding_prose(self):
        text = 'Here is the result:\n```json\n{"a": 1}\n```\nDone.'
        assert strip_code_fence(text) == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


class TestDecodeStructuredJson:
    """Tests for the strict decoder."""

    def test_decodes_object(self):
        assert decode_structured_json(FULL_RESPONSE)["pageNumber"] == 42

    def test_invalid_json(self):
        with pytest.raises(MalformedResponseError):
            decode_structured_json("not json at all")

    def test_non_object(self):
        with pytest.raises(MalformedResponseError, match="JSON object"):
            decode_structured_json('["a", "b"]')


class TestParseStructuredResponse:
    """Tests for parse_structured_response()."""

    def test_full_response(self):
        result = parse_structured_response(FULL_RESPONSE)

        assert isinstance(result, ParsedOk)
        assert result.paragraphs == ["첫 번째 문단입니다.", "두 번째 문단입니다."]
        assert result.underlined_sentences == ["밑줄 친 문장"]
        assert result.metadata == PageMetadata(book_title="어린 왕자", page_number=42)

    def test_fenced_response(self):
        result = parse_structured_response(f"```json\n{FULL_RESPONSE}\n```")
        assert isinstance(result, ParsedOk)
        assert result.metadata.page_number == 42

    def test_missing_fields_default_empty(self):
        result = parse_structured_response("{}")

        assert result == ParsedOk()

    def test_wrong_field_types_ignored(self):
        result = parse_structured_response(
            '{"paragraphs": "one string", "underlinedSentences": [1, "ok", null],'
            ' "bookTitle": 7, "pageNumber": "12"}'
        )

        assert result.paragraphs == []
        assert result.underlined_sentences == ["ok"]
        assert result.metadata.book_title is None
        assert result.metadata.page_number is None

    def test_plain_text_falls_back(self):
        """Prose is kept as raw text so it can still become a paragraph."""
        result = parse_structured_response("  그냥 인식된 텍스트입니다.  ")

        assert result == ParsedFallback(raw_text="그냥 인식된 텍스트입니다.")

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_response(self, text):
        assert parse_structured_response(text) == ParsedFallback(raw_text="")

    def test_json_array_falls_back(self):
        assert isinstance(parse_structured_response('["a"]'), ParsedFallback)


class TestPageNumber:
    """Page number validation."""

    @pytest.mark.parametrize(
        "value,expected",
        [(12, 12), (12.0, 12), (12.5, None), (True, None), ("12", None), (None, None)],
    )
    def test_page_number(self, value, expected):
        result = result_from_mapping({"pageNumber": value})
        assert result.metadata.page_number == expected


class TestCoerceStructuredResult:
    """Tests for coerce_structured_result()."""

    def test_tagged_results_pass_through(self):
        ok = ParsedOk(paragraphs=["a"])
        fallback = ParsedFallback(raw_text="b")

        assert coerce_structured_result(ok) is ok
        assert coerce_structured_result(fallback) is fallback

    def test_mapping_is_validated(self):
        result = coerce_structured_result({"paragraphs": ["문단"], "pageNumber": 3})

        assert result.paragraphs == ["문단"]
        assert result.metadata.page_number == 3

    def test_string_is_parsed(self):
        assert coerce_structured_result(FULL_RESPONSE).metadata.page_number == 42

    @pytest.mark.parametrize("value", [None, 42, object()])
    def test_other_values_are_empty(self, value):
        assert coerce_structured_result(value) == ParsedOk()
