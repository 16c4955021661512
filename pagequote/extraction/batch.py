"""
Batch structured OCR over a set of page images.

Images are processed one at a time by default to bound memory and the
request rate against the OCR service. With `max_workers > 1` a bounded
pool runs several calls at once; groups are still returned in input
order whatever the completion order.

A failing image yields zero candidates and is recorded in
BatchResult.failures; the batch carries on. In-flight calls are never
cancelled: when an image is removed from the session while its call is
running, the late result is discarded instead of merged.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from pagequote.config import ExtractionConfig
from pagequote.exceptions import ServiceUnavailableError
from pagequote.extraction.normalizer import StructuredNormalizer
from pagequote.extraction.parsing import coerce_structured_result
from pagequote.models import (
    Candidate,
    ImageCandidates,
    PageImage,
    PageMetadata,
    ParsedOk,
)
from pagequote.ocr.protocols import StructuredRecognizer

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


# =============================================================================
# DATA STRUCTURES
# =============================================================================


@dataclass
class BatchResult:
    """
    Outcome of one batch.

    Attributes:
        groups: Candidates per image, in input order. Images with no
            candidates are omitted.
        failures: Per-image OCR failures.
        metadata: Page metadata reported by the OCR service.
        discarded: Images whose results arrived after they were removed.
        succeeded: Images whose OCR call returned, in input order, including
            ones that yielded no candidates.
    """

    groups: list[ImageCandidates] = field(default_factory=list)
    failures: dict[str, ServiceUnavailableError] = field(default_factory=dict)
    metadata: dict[str, PageMetadata] = field(default_factory=dict)
    discarded: list[str] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    images_processed: int = 0
    total_time_ms: float = 0.0

    @property
    def candidates(self) -> list[Candidate]:
        return [c for group in self.groups for c in group.candidates]

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def failure_message(self) -> str | None:
        """One user-facing message for the whole batch, or None."""
        if not self.failures:
            return None
        count = len(self.failures)
        noun = "image" if self.images_processed == 1 else "images"
        return f"Text extraction failed for {count} of {self.images_processed} {noun}."


# =============================================================================
# BATCH EXTRACTOR
# =============================================================================


@dataclass
class BatchExtractor:
    """
    Runs structured OCR for every image and normalizes the results.

    Example:
        >>> extractor = BatchExtractor(recognizer)
        >>> result = asyncio.run(extractor.extract(images))
        >>> for group in result.groups:
        ...     print(group.image_id, len(group))
    """

    recognizer: StructuredRecognizer
    normalizer: StructuredNormalizer = field(default_factory=StructuredNormalizer)
    config: ExtractionConfig | None = None

    def __post_init__(self) -> None:
        if self.config is None:
            self.config = self.normalizer.config

    async def extract(
        self,
        images: Sequence[PageImage],
        is_member: Callable[[str], bool] | None = None,
        on_progress: ProgressCallback | None = None,
        on_failure: Callable[[BatchResult], None] | None = None,
    ) -> BatchResult:
        """
        Extract candidates from every image.

        Args:
            images: Page images in display order.
            is_member: Checked after each OCR call; a False answer means the
                image left the batch and its result is dropped.
            on_progress: Called with (completed, total) after each image.
            on_failure: Called once, after the batch, if any image failed.

        Returns:
            BatchResult with groups in input order.
        """
        start_time = time.time()
        result = BatchResult()
        total = len(images)
        outcomes: dict[str, list[Candidate]] = {}
        completed = 0

        logger.info("Starting structured OCR for %d images", total)

        async def run_one(image: PageImage) -> None:
            nonlocal completed
            candidates = await self._extract_one(image, result)
            completed += 1
            if is_member is not None and not is_member(image.id):
                logger.warning("Image %s removed during OCR; discarding result", image.id)
                result.discarded.append(image.id)
                result.failures.pop(image.id, None)
                result.metadata.pop(image.id, None)
            else:
                outcomes[image.id] = candidates
            if on_progress is not None:
                on_progress(completed, total)

        if self.config.max_workers <= 1:
            for image in images:
                await run_one(image)
        else:
            semaphore = asyncio.Semaphore(self.config.max_workers)

            async def bounded(image: PageImage) -> None:
                async with semaphore:
                    await run_one(image)

            await asyncio.gather(*(bounded(image) for image in images))

        for image in images:
            if image.id not in outcomes or image.id in result.failures:
                continue
            result.succeeded.append(image.id)
            candidates = outcomes[image.id]
            if candidates:
                result.groups.append(ImageCandidates(image_id=image.id, candidates=candidates))

        result.images_processed = total
        result.total_time_ms = (time.time() - start_time) * 1000

        logger.info(
            "Structured OCR done: %d candidates from %d images, %d failed, %d discarded",
            len(result.candidates),
            total,
            len(result.failures),
            len(result.discarded),
        )

        if result.has_failures and on_failure is not None:
            on_failure(result)

        return result

    async def _extract_one(self, image: PageImage, result: BatchResult) -> list[Candidate]:
        try:
            response = await self.recognizer.recognize_structured(image.data)
        except Exception as e:
            logger.warning("Structured OCR failed for image %s: %s", image.id, e)
            if isinstance(e, ServiceUnavailableError):
                e.image_id = e.image_id or image.id
                error = e
            else:
                error = ServiceUnavailableError(f"OCR failed: {e}", image_id=image.id)
            result.failures[image.id] = error
            return []

        parsed = coerce_structured_result(response)
        candidates = self.normalizer.normalize(image.id, parsed)
        if isinstance(parsed, ParsedOk):
            result.metadata[image.id] = parsed.metadata
        return candidates
