"""
Structured extraction normalizer.

Reconciles one page's structured OCR result (paragraphs plus separately
reported underlined sentences) into a single ordered candidate list:

1. Underlined sentences become pre-selected candidates first
2. Paragraphs overlapping an underline are skipped or trimmed
   (see ExtractionConfig.overlap_policy)
3. Retained paragraphs are optionally split into sentences
4. A stable sort puts underlined candidates ahead of the rest

Overlap is substring containment in either direction, since OCR
paragraph boundaries and underline boundaries rarely line up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pagequote.config import ExtractionConfig, SegmenterConfig
from pagequote.models import Candidate, ParsedFallback, ParsedOk, StructuredResult
from pagequote.text.segmenter import process_ocr_text

logger = logging.getLogger(__name__)


# =============================================================================
# DATA STRUCTURES
# =============================================================================


@dataclass
class NormalizeStats:
    """Statistics for one normalize() call."""

    underlined_emitted: int = 0
    paragraphs_kept: int = 0
    paragraphs_trimmed: int = 0
    paragraphs_skipped: int = 0
    duplicates_dropped: int = 0


# =============================================================================
# NORMALIZER
# =============================================================================


def overlaps(paragraph: str, underlined: str) -> bool:
    """Substring containment in either direction."""
    return underlined in paragraph or paragraph in underlined


def sort_underlined_first(candidates: list[Candidate]) -> list[Candidate]:
    """Stable sort: underlined candidates first, emission order otherwise kept."""
    return sorted(candidates, key=lambda c: not c.is_underlined)


@dataclass
class StructuredNormalizer:
    """
    Turns structured OCR results into ordered, deduplicated candidates.

    Attributes:
        config: Overlap policy, granularity and thresholds.
        segmenter: Sentence length settings used for sentence granularity.

    Example:
        >>> normalizer = StructuredNormalizer()
        >>> result = ParsedOk(
        ...     paragraphs=["오늘 나는 인생은 짧다 라고 생각했다"],
        ...     underlined_sentences=["인생은 짧다"],
        ... )
        >>> [c.content for c in normalizer.normalize("img-1", result)]
        ['인생은 짧다', '오늘 나는  라고 생각했다']
    """

    config: ExtractionConfig = field(default_factory=ExtractionConfig)
    segmenter: SegmenterConfig = field(default_factory=SegmenterConfig)
    last_stats: NormalizeStats = field(default_factory=NormalizeStats, repr=False)

    def normalize(self, image_id: str, result: StructuredResult) -> list[Candidate]:
        """
        Normalize one page's structured OCR result.

        Args:
            image_id: Id of the page image, recorded on every candidate.
            result: Parsed or fallback OCR result.

        Returns:
            Candidates with underlined ones first. Empty results give [].
        """
        self.last_stats = NormalizeStats()

        fallback = isinstance(result, ParsedFallback)
        if fallback:
            # Undecodable response: the whole text is one plain paragraph
            result = ParsedOk(paragraphs=[result.raw_text] if result.raw_text.strip() else [])

        seen: set[str] = set()
        candidates = self._emit_underlined(image_id, result.underlined_sentences, seen)
        claimed = [c.content for c in candidates]

        for paragraph in result.paragraphs:
            text = self._resolve_overlap(paragraph, claimed)
            if text is None:
                continue
            for unit in [text] if fallback else self._units(text):
                if unit in seen:
                    self.last_stats.duplicates_dropped += 1
                    continue
                seen.add(unit)
                candidates.append(
                    Candidate.create(unit, image_id, selected=True, is_underlined=False)
                )

        logger.debug(
            "Image %s: %d underlined, %d kept, %d trimmed, %d skipped paragraphs",
            image_id,
            self.last_stats.underlined_emitted,
            self.last_stats.paragraphs_kept,
            self.last_stats.paragraphs_trimmed,
            self.last_stats.paragraphs_skipped,
        )
        return sort_underlined_first(candidates)

    def _emit_underlined(
        self, image_id: str, underlined: list[str], seen: set[str]
    ) -> list[Candidate]:
        emitted = []
        for sentence in underlined:
            sentence = sentence.strip()
            if not sentence:
                continue
            if sentence in seen:
                self.last_stats.duplicates_dropped += 1
                continue
            seen.add(sentence)
            emitted.append(
                Candidate.create(
                    sentence,
                    image_id,
                    selected=self.config.preselect_underlined,
                    is_underlined=True,
                    prefix="underlined",
                )
            )
        self.last_stats.underlined_emitted = len(emitted)
        return emitted

    def _resolve_overlap(self, paragraph: str, claimed: list[str]) -> str | None:
        """
        Apply the overlap policy to one paragraph.

        Returns:
            The text to keep, or None to drop the paragraph.
        """
        paragraph = paragraph.strip()
        if not paragraph:
            return None

        hits = [u for u in claimed if overlaps(paragraph, u)]
        if not hits:
            self.last_stats.paragraphs_kept += 1
            return paragraph

        if self.config.overlap_policy == "skip":
            self.last_stats.paragraphs_skipped += 1
            return None

        remainder = paragraph
        for underlined in hits:
            if paragraph in underlined:
                # Paragraph lies inside the underline; nothing is left
                remainder = ""
                break
            remainder = remainder.replace(underlined, "", 1).strip()

        if len(remainder) >= self.config.min_remainder_length:
            self.last_stats.paragraphs_trimmed += 1
            return remainder

        self.last_stats.paragraphs_skipped += 1
        return None

    def _units(self, text: str) -> list[str]:
        if self.config.granularity == "sentence":
            return process_ocr_text(text, self.segmenter.min_sentence_length)
        return [text]
