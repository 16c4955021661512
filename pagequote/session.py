"""
Capture session: the scope that owns one capture flow.

Wires the collaborators to the pipeline:
- BatchExtractor fills the CandidateSet from structured OCR
- SelectionSession handles drag/tap selection on one image at a time
- RegionExtractor appends candidates from manually selected regions
- save_payload() hands the selected subset to persistence

Everything is torn down by reset() or by dropping the session.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pagequote.candidates import CandidateSet
from pagequote.config import CaptureConfig
from pagequote.exceptions import PageQuoteError, ServiceUnavailableError
from pagequote.extraction.batch import BatchExtractor, BatchResult, ProgressCallback
from pagequote.extraction.normalizer import StructuredNormalizer
from pagequote.geometry.region import RegionExtractor, RegionResult
from pagequote.geometry.selection import SelectionSession
from pagequote.geometry.transform import DisplayTransform
from pagequote.models import DisplayRect, PageImage, PageMetadata, QuoteDraft, RecognizedTextLine
from pagequote.ocr.protocols import ImageCropper, LineRecognizer, QuoteSink, StructuredRecognizer

logger = logging.getLogger(__name__)


class CaptureSession:
    """
    One capture flow over a batch of page images.

    Attributes:
        candidates: The session's CandidateSet.
        metadata: Page metadata per image id, from structured OCR.
        selection: The active SelectionSession, if any.
        last_batch: Result of the most recent run_extraction.

    Example:
        >>> session = CaptureSession(GeminiStructuredRecognizer(api_key=key))
        >>> session.add_images([page])
        >>> result = asyncio.run(session.run_extraction())
        >>> for group in session.candidates.group_by_image(session.image_ids):
        ...     print(group.image_id, [c.content for c in group.candidates])
        >>> sink.save(session.save_payload())
    """

    def __init__(
        self,
        recognizer: StructuredRecognizer,
        line_recognizer: LineRecognizer | None = None,
        cropper: ImageCropper | None = None,
        config: CaptureConfig | None = None,
    ):
        self.config = config or CaptureConfig()
        self.recognizer = recognizer
        self.line_recognizer = line_recognizer
        self.cropper = cropper

        self.candidates = CandidateSet()
        self.metadata: dict[str, PageMetadata] = {}
        self.selection: SelectionSession | None = None
        self.last_batch: BatchResult | None = None

        self._images: dict[str, PageImage] = {}
        self._selection_image_id: str | None = None

        self.normalizer = StructuredNormalizer(
            config=self.config.extraction, segmenter=self.config.segmenter
        )
        self.batch_extractor = BatchExtractor(recognizer, self.normalizer, self.config.extraction)

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    @property
    def images(self) -> list[PageImage]:
        return list(self._images.values())

    @property
    def image_ids(self) -> list[str]:
        return list(self._images)

    def has_image(self, image_id: str) -> bool:
        return image_id in self._images

    def add_images(self, images: Iterable[PageImage]) -> None:
        for image in images:
            if image.id in self._images:
                logger.warning("Image %s already in session; replacing", image.id)
            self._images[image.id] = image

    def remove_image(self, image_id: str) -> None:
        """
        Remove an image and its candidates.

        An OCR call already running for this image is left to finish;
        its result is discarded when it arrives.
        """
        if self._images.pop(image_id, None) is None:
            raise KeyError(image_id)
        self.candidates.remove_image(image_id)
        self.metadata.pop(image_id, None)
        if self._selection_image_id == image_id:
            self.close_selection()

    # -------------------------------------------------------------------------
    # Automatic extraction
    # -------------------------------------------------------------------------

    async def run_extraction(
        self,
        on_progress: ProgressCallback | None = None,
        on_failure: Callable[[BatchResult], None] | None = None,
    ) -> BatchResult:
        """
        Run structured OCR over every image and populate the candidates.

        For each image whose OCR call succeeded, untouched candidates from
        an earlier run are replaced, even when the new run finds nothing.
        Edited candidates and those added by manual or region selection are
        kept. Images whose call failed keep what they had.

        Args:
            on_progress: Called with (completed, total) after each image.
            on_failure: Called once if any image failed.

        Returns:
            The BatchResult.
        """
        images = self.images
        result = await self.batch_extractor.extract(
            images,
            is_member=self.has_image,
            on_progress=on_progress,
            on_failure=on_failure,
        )

        fresh = {group.image_id: group.candidates for group in result.groups}
        for image_id in result.succeeded:
            # Membership can change between the last OCR call and now
            if not self.has_image(image_id):
                result.discarded.append(image_id)
                continue
            self.candidates.replace_extracted(image_id, fresh.get(image_id, []))

        for image_id, metadata in result.metadata.items():
            if self.has_image(image_id):
                self.metadata[image_id] = metadata

        self.last_batch = result
        return result

    # -------------------------------------------------------------------------
    # Manual selection
    # -------------------------------------------------------------------------

    async def open_selection(
        self,
        image_id: str,
        display_width: float,
        lines: list[RecognizedTextLine] | None = None,
    ) -> SelectionSession:
        """
        Start a manual-selection session on one image.

        Any previous selection session is discarded.

        Args:
            image_id: Image to select on.
            display_width: Width the image is displayed at.
            lines: Pre-recognized lines; recognized now if omitted.

        Returns:
            The new SelectionSession.

        Raises:
            ServiceUnavailableError: If line recognition failed.
        """
        image = self._images[image_id]
        self.close_selection()

        if lines is None:
            if self.line_recognizer is None:
                raise PageQuoteError("No line recognizer configured")
            try:
                lines = await self.line_recognizer.recognize_lines(image.data)
            except ServiceUnavailableError:
                raise
            except Exception as e:
                raise ServiceUnavailableError(f"Line OCR failed: {e}", image_id=image_id) from e

        transform = DisplayTransform(image.width, image.height, display_width)
        self.selection = SelectionSession(lines, transform)
        self._selection_image_id = image_id
        logger.debug("Opened selection on image %s with %d lines", image_id, len(lines))
        return self.selection

    def close_selection(self) -> None:
        self.selection = None
        self._selection_image_id = None

    async def extract_region(self, selection: DisplayRect | None = None) -> RegionResult:
        """
        Re-OCR a region of the image in the active selection session.

        Args:
            selection: Display rectangle; defaults to the session's drag rect.

        Returns:
            RegionResult; its candidates are already in self.candidates.

        Raises:
            PageQuoteError: If no selection session or rectangle exists.
            SelectionTooSmallError, CropError, ServiceUnavailableError,
            EmptyCropResultError: See RegionExtractor.extract.
        """
        if self.selection is None or self._selection_image_id is None:
            raise PageQuoteError("No active selection session")
        if self.line_recognizer is None or self.cropper is None:
            raise PageQuoteError("Region extraction needs a line recognizer and a cropper")

        rect = selection or self.selection.selection_rect
        if rect is None:
            raise PageQuoteError("No selection rectangle")

        image_id = self._selection_image_id
        extractor = RegionExtractor(
            self.line_recognizer,
            self.cropper,
            config=self.config.selection,
            segmenter=self.config.segmenter,
        )
        result = await extractor.extract(
            rect, self._images[image_id], self.selection.transform.display_size
        )

        if self.has_image(image_id):
            self.candidates.add_candidates(result.candidates)
        else:
            logger.warning("Image %s removed during region OCR; discarding result", image_id)
            result.candidates = []
        return result

    def add_selected_lines(self) -> int:
        """
        Add the selected lines of the active session as one candidate.

        Returns:
            Number of candidates added (0 or 1).
        """
        if self.selection is None or self._selection_image_id is None:
            return 0
        candidate = self.selection.to_candidate(self._selection_image_id)
        if candidate is None:
            return 0
        self.candidates.add_candidates([candidate])
        return 1

    # -------------------------------------------------------------------------
    # Saving
    # -------------------------------------------------------------------------

    def save_payload(self) -> list[QuoteDraft]:
        """Selected, non-blank candidates with their page numbers."""
        page_numbers = {image_id: meta.page_number for image_id, meta in self.metadata.items()}
        return self.candidates.selected_for_save(page_numbers)

    def save(self, sink: QuoteSink) -> list[QuoteDraft]:
        """
        Hand the selected subset to a persistence sink.

        The candidates stay in the session; call reset() once saved.
        """
        payload = self.save_payload()
        if payload:
            sink.save(payload)
        logger.info("Saved %d quotes", len(payload))
        return payload

    def reset(self) -> None:
        """Drop every image, candidate and selection."""
        self._images.clear()
        self.candidates.remove_all()
        self.metadata.clear()
        self.close_selection()
        self.last_batch = None
