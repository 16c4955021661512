"""
pagequote: Turn photographed book pages into candidate quotations.

This library takes recognized text from an OCR or vision service and
turns it into clean, ordered, selectable quotation candidates. It also
lets a user drag-select text lines over a displayed page and re-OCR a
cropped region of the page.

Example:
    >>> import asyncio
    >>> import pagequote
    >>> session = pagequote.CaptureSession(recognizer)
    >>> session.add_images([page])
    >>> result = asyncio.run(session.run_extraction())
    >>> for group in session.candidates.group_by_image(session.image_ids):
    ...     for candidate in group.candidates:
    ...         print(candidate.is_underlined, candidate.content)
    >>> quotes = session.save_payload()
"""

from pagequote.candidates import CandidateSet
from pagequote.config import (
    CaptureConfig,
    ExtractionConfig,
    SegmenterConfig,
    SelectionConfig,
)
from pagequote.exceptions import (
    ConfigurationError,
    CropError,
    EmptyCropResultError,
    MalformedResponseError,
    PageQuoteError,
    SelectionTooSmallError,
    ServiceUnavailableError,
)
from pagequote.extraction import (
    BatchExtractor,
    BatchResult,
    StructuredNormalizer,
    parse_structured_response,
)
from pagequote.geometry import (
    DisplayTransform,
    RegionExtractor,
    RegionResult,
    SelectionSession,
    SelectionState,
    crop_region,
)
from pagequote.models import (
    Candidate,
    DisplayRect,
    ImageCandidates,
    ImageRect,
    PageImage,
    PageMetadata,
    ParsedFallback,
    ParsedOk,
    QuoteDraft,
    RecognizedTextLine,
    ScaledTextLine,
)
from pagequote.session import CaptureSession
from pagequote.text import clean_sentence, process_ocr_text, segment

__version__ = "0.1.0"
__all__ = [
    # Session
    "CaptureSession",
    "CandidateSet",
    # Configuration
    "CaptureConfig",
    "ExtractionConfig",
    "SegmenterConfig",
    "SelectionConfig",
    # Text
    "segment",
    "clean_sentence",
    "process_ocr_text",
    # Extraction
    "StructuredNormalizer",
    "BatchExtractor",
    "BatchResult",
    "parse_structured_response",
    # Geometry
    "DisplayTransform",
    "crop_region",
    "SelectionSession",
    "SelectionState",
    "RegionExtractor",
    "RegionResult",
    # Models
    "Candidate",
    "DisplayRect",
    "ImageRect",
    "ImageCandidates",
    "PageImage",
    "PageMetadata",
    "ParsedOk",
    "ParsedFallback",
    "QuoteDraft",
    "RecognizedTextLine",
    "ScaledTextLine",
    # Exceptions
    "PageQuoteError",
    "ConfigurationError",
    "ServiceUnavailableError",
    "MalformedResponseError",
    "SelectionTooSmallError",
    "EmptyCropResultError",
    "CropError",
]
