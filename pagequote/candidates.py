"""
Candidate set manager.

The in-memory model of every candidate in a capture flow: selection
state, edited content and provenance. One instance belongs to one
capture session; there is no module-level store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence

from pagequote.extraction.normalizer import sort_underlined_first
from pagequote.models import Candidate, ImageCandidates, QuoteDraft

logger = logging.getLogger(__name__)


class CandidateSet:
    """
    Ordered, mutable collection of candidates.

    add_candidates always appends; id uniqueness is the creator's job.
    All other operations are idempotent for repeated identical calls.

    Example:
        >>> candidates = CandidateSet()
        >>> candidates.add_candidates(normalizer.normalize("img-1", result))
        >>> candidates.toggle(candidates.get_all()[0].id)
        >>> candidates.selected_count()
    """

    def __init__(self, candidates: Iterable[Candidate] = ()):
        self._candidates: list[Candidate] = []
        self._index: dict[str, Candidate] = {}
        self.add_candidates(candidates)

    def __len__(self) -> int:
        return len(self._candidates)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(list(self._candidates))

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._index

    def get(self, candidate_id: str) -> Candidate:
        """
        Look up a candidate by id.

        Raises:
            KeyError: If no candidate has this id.
        """
        return self._index[candidate_id]

    def get_all(self) -> list[Candidate]:
        return list(self._candidates)

    def add_candidates(self, candidates: Iterable[Candidate]) -> None:
        """Append candidates in the given order."""
        added = 0
        for candidate in candidates:
            self._candidates.append(candidate)
            if candidate.id in self._index:
                logger.warning("Duplicate candidate id %s; lookups use the first", candidate.id)
            else:
                self._index[candidate.id] = candidate
            added += 1
        if added:
            logger.debug("Added %d candidates (%d total)", added, len(self._candidates))

    def toggle(self, candidate_id: str) -> bool:
        """
        Flip a candidate's selected flag.

        Returns:
            The new selected state.
        """
        candidate = self.get(candidate_id)
        candidate.selected = not candidate.selected
        return candidate.selected

    def set_selected(self, candidate_id: str, selected: bool) -> None:
        self.get(candidate_id).selected = selected

    def edit_content(self, candidate_id: str, text: str) -> None:
        """Replace a candidate's text. Provenance is unchanged; the candidate is marked edited."""
        candidate = self.get(candidate_id)
        if candidate.content == text:
            return
        if candidate.original_content is None:
            candidate.original_content = candidate.content
        candidate.content = text

    def remove_all(self) -> None:
        self._candidates.clear()
        self._index.clear()

    def _retain(self, kept: list[Candidate]) -> int:
        removed = len(self._candidates) - len(kept)
        if removed:
            self._candidates = kept
            self._index = {}
            for candidate in kept:
                self._index.setdefault(candidate.id, candidate)
        return removed

    def remove_image(self, image_id: str) -> int:
        """
        Remove every candidate extracted from one image.

        Returns:
            Number of candidates removed.
        """
        removed = self._retain([c for c in self._candidates if c.image_id != image_id])
        if removed:
            logger.debug("Removed %d candidates of image %s", removed, image_id)
        return removed

    def replace_extracted(self, image_id: str, candidates: Iterable[Candidate]) -> int:
        """
        Swap one image's structured-OCR candidates for a fresh set.

        Only untouched extracted candidates are replaced. Edited ones and
        candidates from manual or region selection are kept in place, and
        new candidates whose text matches a kept one, or the text a kept
        one had before it was edited, are not added.

        Returns:
            Number of candidates removed.
        """
        removed = self._retain(
            [c for c in self._candidates if c.image_id != image_id or not c.is_replaceable]
        )
        kept_texts = set()
        for c in self._candidates:
            if c.image_id == image_id:
                kept_texts.update(t for t in (c.content, c.original_content) if t is not None)
        self.add_candidates(c for c in candidates if c.content not in kept_texts)
        logger.debug("Replaced %d extracted candidates of image %s", removed, image_id)
        return removed

    def selected_count(self) -> int:
        return sum(1 for c in self._candidates if c.selected)

    def candidates_for(self, image_id: str) -> list[Candidate]:
        """Candidates of one image, underlined first, emission order otherwise."""
        return sort_underlined_first([c for c in self._candidates if c.image_id == image_id])

    def group_by_image(self, image_order: Sequence[str] | None = None) -> list[ImageCandidates]:
        """
        Group candidates by image for display.

        Args:
            image_order: Image ids in display order. Defaults to the order in
                which images first appear among the candidates. Images not
                listed are left out.

        Returns:
            One group per image that has at least one candidate.
        """
        if image_order is None:
            image_order = list(dict.fromkeys(c.image_id for c in self._candidates))

        groups = []
        for image_id in image_order:
            candidates = self.candidates_for(image_id)
            if candidates:
                groups.append(ImageCandidates(image_id=image_id, candidates=candidates))
        return groups

    def selected_for_save(
        self,
        page_numbers: Mapping[str, int | None] | None = None,
    ) -> list[QuoteDraft]:
        """
        The subset handed to persistence: selected and non-blank.

        Args:
            page_numbers: Optional page number per image id.

        Returns:
            QuoteDraft objects in candidate order.
        """
        page_numbers = page_numbers or {}
        return [
            QuoteDraft(
                content=c.content.strip(),
                image_id=c.image_id,
                page_number=page_numbers.get(c.image_id),
            )
            for c in self._candidates
            if c.selected and c.content.strip()
        ]
