"""
Targeted re-OCR of a user-selected page region.

The display selection is mapped back to image pixels, the region is
cropped out, and only the crop is sent to the line recognizer. The
recognized text goes through sentence processing and every sentence is
appended as a new candidate with a fresh id. Existing candidates from
the same image are never merged or replaced, so text may appear twice
when a user re-selects something the automatic pass already found.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pagequote.config import SegmenterConfig, SelectionConfig
from pagequote.exceptions import (
    CropError,
    EmptyCropResultError,
    SelectionTooSmallError,
    ServiceUnavailableError,
)
from pagequote.geometry.transform import crop_region
from pagequote.models import Candidate, DisplayRect, ImageRect, PageImage
from pagequote.ocr.protocols import ImageCropper, LineRecognizer
from pagequote.text.segmenter import process_ocr_text

if TYPE_CHECKING:
    from pagequote.candidates import CandidateSet

logger = logging.getLogger(__name__)


@dataclass
class RegionResult:
    """Result of extracting one selected region."""

    region: ImageRect
    text: str
    candidates: list[Candidate]
    processing_time_ms: float


@dataclass
class RegionExtractor:
    """
    Crops a selected region and re-OCRs it into new candidates.

    Attributes:
        recognizer: Line recognizer used on the cropped image.
        cropper: Image cropper collaborator.
        config: Minimum selection size.
        segmenter: Sentence length settings.

    Example:
        >>> extractor = RegionExtractor(TesseractLineRecognizer(), PillowCropper())
        >>> result = asyncio.run(
        ...     extractor.extract(selection, image, transform.display_size, candidate_set)
        ... )
        >>> [c.content for c in result.candidates]
    """

    recognizer: LineRecognizer
    cropper: ImageCropper
    config: SelectionConfig = field(default_factory=SelectionConfig)
    segmenter: SegmenterConfig = field(default_factory=SegmenterConfig)

    def check_selection(self, selection: DisplayRect) -> None:
        """
        Reject selections below the minimum size on either axis.

        Raises:
            SelectionTooSmallError: If width or height is below the minimum.
        """
        min_size = self.config.min_selection_size
        if selection.width < min_size or selection.height < min_size:
            raise SelectionTooSmallError(selection, min_size)

    async def extract(
        self,
        selection: DisplayRect,
        image: PageImage,
        display_size: tuple[float, float],
        candidates: CandidateSet | None = None,
    ) -> RegionResult:
        """
        Re-OCR the selected region of an image.

        Args:
            selection: Completed selection rectangle in display coordinates.
            image: The page image the selection was drawn over.
            display_size: (width, height) the image is displayed at.
            candidates: If given, new candidates are appended to it.

        Returns:
            RegionResult with the crop region and the new candidates.

        Raises:
            SelectionTooSmallError: Before any collaborator call.
            CropError: If the region could not be cropped.
            ServiceUnavailableError: If the recognizer failed.
            EmptyCropResultError: If no usable text was recognized.
        """
        self.check_selection(selection)

        start_time = time.time()
        region = crop_region(selection, image.size, display_size)
        logger.debug("Image %s: selection %s -> crop %s", image.id, selection, region)

        try:
            cropped = self.cropper.crop(image.data, region)
        except CropError:
            raise
        except Exception as e:
            raise CropError(f"Failed to crop region {region}: {e}") from e

        try:
            lines = await self.recognizer.recognize_lines(cropped)
        except ServiceUnavailableError:
            raise
        except Exception as e:
            logger.warning("Region OCR failed for image %s: %s", image.id, e)
            raise ServiceUnavailableError(f"Region OCR failed: {e}", image_id=image.id) from e

        text = "\n".join(line.text for line in lines if line.text.strip())
        sentences = process_ocr_text(text, self.segmenter.min_sentence_length)
        if not sentences:
            logger.info("Image %s: no text found in region %s", image.id, region)
            raise EmptyCropResultError()

        new = [
            Candidate.create(
                sentence,
                image.id,
                selected=True,
                is_underlined=False,
                source_box=region,
                origin="region",
                prefix="region",
            )
            for sentence in sentences
        ]
        if candidates is not None:
            candidates.add_candidates(new)

        processing_time_ms = (time.time() - start_time) * 1000
        logger.info(
            "Image %s: %d candidates from region %s (%.0f ms)",
            image.id,
            len(new),
            region,
            processing_time_ms,
        )
        return RegionResult(
            region=region,
            text=text,
            candidates=new,
            processing_time_ms=processing_time_ms,
        )
