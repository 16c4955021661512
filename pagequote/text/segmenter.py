"""
Sentence segmentation for OCR text.

Turns a recognized text blob into quote-sized sentences:
1. Single newlines are soft wraps and become spaces
2. Blank lines are paragraph boundaries and always split
3. Sentences end at . ! ? 。 ！ ？ followed by whitespace
4. Fragments shorter than MIN_SENTENCE_LENGTH are OCR noise and dropped

All functions are pure and never raise on empty or degenerate input.

Example:
    >>> segment("두려움 그 자체뿐이다. 용기란 두려움을 극복하는 것이다.")
    ['두려움 그 자체뿐이다.', '용기란 두려움을 극복하는 것이다.']
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Shorter fragments are stray page numbers, running heads, single glyphs
MIN_SENTENCE_LENGTH = 5

# Used by merge_sentences
DEFAULT_MERGE_LENGTH = 20

SENTENCE_TERMINALS = ".!?。！？"

# Private-use char; cannot collide with recognized text
_PARAGRAPH_MARK = "\ue000"

_LINE_ENDINGS = re.compile(r"\r\n?")
_PARAGRAPH_BREAK = re.compile(r"\n(?:[ \t]*\n)+")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_BOUNDARY = re.compile(rf"(?<=[{re.escape(SENTENCE_TERMINALS)}])\s+")

# Allow-list: word chars, Hangul syllables and jamo, whitespace,
# common punctuation, brackets and quotes. Everything else is deleted.
_DISALLOWED = re.compile(
    r"[^\w\s가-힣ㄱ-ㅎㅏ-ㅣ"
    r".,!?;:'\"“”‘’()\[\]{}<>~@#$%&*\-_=+/\\"
    r"。！？、「」『』《》〈〉…·]"
)

_QUOTE_PAIRS = (('"', '"'), ("'", "'"), ("“", "”"), ("‘", "’"))


# =============================================================================
# SEGMENTATION
# =============================================================================


def _split_paragraphs(text: str) -> list[str]:
    """
    Split text into paragraphs, joining soft-wrapped lines.

    Paragraph breaks are marked before single newlines are collapsed,
    so a blank line can never be mistaken for a soft wrap.
    """
    text = _LINE_ENDINGS.sub("\n", text)
    text = _PARAGRAPH_BREAK.sub(_PARAGRAPH_MARK, text)
    text = text.replace("\n", " ")

    paragraphs = []
    for paragraph in text.split(_PARAGRAPH_MARK):
        paragraph = _WHITESPACE.sub(" ", paragraph).strip()
        if paragraph:
            paragraphs.append(paragraph)
    return paragraphs


def segment(text: str | None, min_length: int = MIN_SENTENCE_LENGTH) -> list[str]:
    """
    Split text into sentences.

    Terminal punctuation stays with its sentence. A trailing fragment
    without terminal punctuation is still a sentence.

    Args:
        text: Recognized text, possibly with soft-wrapped lines.
        min_length: Sentences shorter than this are dropped.

    Returns:
        Sentences in reading order. Empty input gives an empty list.
    """
    if not text or not text.strip():
        return []

    sentences = []
    for paragraph in _split_paragraphs(text):
        for sentence in _SENTENCE_BOUNDARY.split(paragraph):
            sentence = sentence.strip()
            if sentence:
                sentences.append(sentence)

    kept = [s for s in sentences if len(s) >= min_length]
    if len(kept) < len(sentences):
        logger.debug("Dropped %d short fragments", len(sentences) - len(kept))
    return kept


def clean_sentence(sentence: str | None) -> str:
    """
    Remove characters outside the allow-list and normalize spacing.

    Disallowed characters are deleted, not replaced. Deletion happens
    before whitespace is collapsed, so cleaning twice changes nothing.

    Args:
        sentence: A single sentence.

    Returns:
        The cleaned sentence (possibly empty).
    """
    if not sentence:
        return ""
    sentence = _DISALLOWED.sub("", sentence)
    return _WHITESPACE.sub(" ", sentence).strip()


def process_ocr_text(text: str | None, min_length: int = MIN_SENTENCE_LENGTH) -> list[str]:
    """
    Full text-to-sentences pipeline: segment, clean, filter.

    Cleaning can shrink a sentence below the minimum, so the length
    filter runs again afterwards.

    Args:
        text: Recognized text.
        min_length: Minimum sentence length, applied before and after cleaning.

    Returns:
        Cleaned sentences, none shorter than `min_length`.
    """
    cleaned = (clean_sentence(s) for s in segment(text, min_length))
    return [s for s in cleaned if len(s) >= min_length]


# =============================================================================
# HELPERS
# =============================================================================


def is_quotation(sentence: str) -> bool:
    """Check whether a sentence is wrapped in matching quotes."""
    trimmed = sentence.strip()
    if len(trimmed) < 2:
        return False
    return any(trimmed.startswith(o) and trimmed.endswith(c) for o, c in _QUOTE_PAIRS)


def merge_sentences(sentences: list[str], min_length: int = DEFAULT_MERGE_LENGTH) -> list[str]:
    """
    Greedily join short neighbouring sentences.

    A run is flushed once adding the next sentence would reach
    `min_length`. Flushed runs shorter than half of `min_length` are
    dropped; the final run is always kept.

    Args:
        sentences: Sentences in reading order.
        min_length: Target minimum length of a merged unit.

    Returns:
        Merged sentences.
    """
    merged: list[str] = []
    buffer = ""

    for sentence in sentences:
        if not buffer:
            buffer = sentence
        elif len(buffer) + len(sentence) < min_length:
            buffer = f"{buffer} {sentence}"
        else:
            if len(buffer) >= min_length / 2:
                merged.append(buffer)
            buffer = sentence

    if buffer:
        merged.append(buffer)

    return merged
