"""
Text processing for recognized page text.

Example:
    >>> from pagequote.text import process_ocr_text
    >>> process_ocr_text("첫 문장입니다.\\n이어지는 줄입니다. 12")
    ['첫 문장입니다.', '이어지는 줄입니다.']
"""

from pagequote.text.segmenter import (
    MIN_SENTENCE_LENGTH,
    clean_sentence,
    is_quotation,
    merge_sentences,
    process_ocr_text,
    segment,
)

__all__ = [
    "MIN_SENTENCE_LENGTH",
    "segment",
    "clean_sentence",
    "process_ocr_text",
    "is_quotation",
    "merge_sentences",
]
