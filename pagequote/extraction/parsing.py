"""
Parsing of loosely-typed structured OCR responses.

Vision models are asked for a JSON object like:

    {
      "paragraphs": ["...", "..."],
      "underlinedSentences": ["..."],
      "bookTitle": "..." | null,
      "pageNumber": 12 | null
    }

but may wrap it in a markdown code fence, omit fields, or return plain
prose. Nothing here trusts field presence: each field is validated on
its own, and undecodable responses become ParsedFallback so that the
raw text is still offered to the user as one paragraph.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from pagequote.exceptions import MalformedResponseError
from pagequote.models import PageMetadata, ParsedFallback, ParsedOk, StructuredResult

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```")


def strip_code_fence(text: str) -> str:
    """
    Remove a markdown code fence around a JSON payload.

    Handles ```json ... ``` anywhere in the text and a bare ``` ... ```
    around the whole text.
    """
    text = text.strip()
    match = _JSON_FENCE.search(text)
    if match:
        return match.group(1)
    if text.startswith("```") and text.endswith("```") and len(text) >= 6:
        return text[3:-3].strip()
    return text


def decode_structured_json(text: str) -> dict[str, Any]:
    """
    Strictly decode a structured OCR response into a JSON object.

    Args:
        text: Raw response text.

    Returns:
        The decoded object.

    Raises:
        MalformedResponseError: If the text is not a JSON object.
    """
    payload = strip_code_fence(text or "")
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Response is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(parsed).__name__}"
        )
    return parsed


def _string_list(value: Any, field_name: str) -> list[str]:
    if not isinstance(value, list):
        if value is not None:
            logger.debug("Ignoring non-list %s: %r", field_name, type(value).__name__)
        return []
    strings = [item for item in value if isinstance(item, str)]
    if len(strings) < len(value):
        logger.debug("Dropped %d non-string %s entries", len(value) - len(strings), field_name)
    return strings


def _page_number(value: Any) -> int | None:
    # bool is an int subclass; a model answering `true` is not a page number
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def result_from_mapping(data: Mapping[str, Any]) -> ParsedOk:
    """
    Validate a decoded response field by field.

    Args:
        data: Decoded JSON object.

    Returns:
        ParsedOk with every invalid field replaced by its empty value.
    """
    title = data.get("bookTitle")
    return ParsedOk(
        paragraphs=_string_list(data.get("paragraphs"), "paragraphs"),
        underlined_sentences=_string_list(
            data.get("underlinedSentences"), "underlinedSentences"
        ),
        metadata=PageMetadata(
            book_title=title if isinstance(title, str) else None,
            page_number=_page_number(data.get("pageNumber")),
        ),
    )


def parse_structured_response(text: str | None) -> StructuredResult:
    """
    Parse a structured OCR response, falling back to raw text.

    Args:
        text: Raw response text, possibly fenced.

    Returns:
        ParsedOk when the response decodes to an object,
        ParsedFallback holding the trimmed raw text otherwise.

    Example:
        >>> parse_structured_response('```json\\n{"paragraphs": ["a b c"]}\\n```')
        ParsedOk(paragraphs=['a b c'], underlined_sentences=[], metadata=...)
        >>> parse_structured_response("just prose")
        ParsedFallback(raw_text='just prose')
    """
    if not text or not text.strip():
        return ParsedFallback(raw_text="")

    try:
        data = decode_structured_json(text)
    except MalformedResponseError as e:
        logger.warning("Structured OCR response unparseable, keeping raw text: %s", e)
        return ParsedFallback(raw_text=text.strip())

    return result_from_mapping(data)


def coerce_structured_result(value: Any) -> StructuredResult:
    """
    Accept whatever a structured recognizer returned.

    Tagged results pass through, mappings are validated, strings are
    parsed, and anything else is treated as an empty response.
    """
    if isinstance(value, (ParsedOk, ParsedFallback)):
        return value
    if isinstance(value, Mapping):
        return result_from_mapping(value)
    if isinstance(value, str):
        return parse_structured_response(value)
    if value is not None:
        logger.warning("Unexpected structured OCR result type: %s", type(value).__name__)
    return ParsedOk()
