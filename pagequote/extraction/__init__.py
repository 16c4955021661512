"""
Structured OCR extraction: parsing, normalization and batching.

Example:
    >>> from pagequote.extraction import StructuredNormalizer, parse_structured_response
    >>> result = parse_structured_response(response_text)
    >>> candidates = StructuredNormalizer().normalize("img-1", result)
"""

from pagequote.extraction.batch import BatchExtractor, BatchResult
from pagequote.extraction.normalizer import (
    NormalizeStats,
    StructuredNormalizer,
    overlaps,
    sort_underlined_first,
)
from pagequote.extraction.parsing import (
    coerce_structured_result,
    decode_structured_json,
    parse_structured_response,
    strip_code_fence,
)

__all__ = [
    # Batch
    "BatchExtractor",
    "BatchResult",
    # Normalizer
    "StructuredNormalizer",
    "NormalizeStats",
    "overlaps",
    "sort_underlined_first",
    # Parsing
    "parse_structured_response",
    "coerce_structured_result",
    "decode_structured_json",
    "strip_code_fence",
]
