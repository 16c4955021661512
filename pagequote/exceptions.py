"""
Exception classes for pagequote.

All pagequote exceptions inherit from PageQuoteError,
making it easy to catch all library errors.

Only collaborator I/O (OCR calls, image crops) and explicit user
preconditions raise. Segmentation and normalization never do.

Example:
    >>> try:
    ...     await session.extract_region(selection)
    ... except pagequote.SelectionTooSmallError:
    ...     print("Drag a larger area")
    ... except pagequote.PageQuoteError as e:
    ...     print(f"pagequote error: {e}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pagequote.models import DisplayRect


class PageQuoteError(Exception):
    """
    Base exception for all pagequote errors.

    Catch this to handle any pagequote-specific error.
    """

    pass


class ConfigurationError(PageQuoteError, ValueError):
    """
    Raised for invalid configuration.

    Example:
        >>> ExtractionConfig(overlap_policy="merge")
        ConfigurationError: overlap_policy must be one of ('remainder', 'skip')
    """

    pass


class ServiceUnavailableError(PageQuoteError):
    """
    Raised when an OCR collaborator call fails.

    Inside a batch this is recorded per image instead of being raised,
    so one failing page never aborts the rest of the batch.
    """

    def __init__(self, message: str, image_id: str | None = None):
        super().__init__(message)
        self.image_id = image_id


class MalformedResponseError(PageQuoteError):
    """
    Raised when a structured OCR response cannot be decoded as JSON.

    Only the strict decoder raises this. The lenient parser falls back
    to treating the whole response text as a single paragraph.
    """

    pass


class SelectionTooSmallError(PageQuoteError):
    """
    Raised when a selection is below the minimum crop size.

    Raised before any collaborator is invoked.
    """

    def __init__(self, selection: DisplayRect, min_size: float):
        super().__init__(
            f"Selection {selection.width:g}x{selection.height:g} is smaller than "
            f"the {min_size:g}px minimum"
        )
        self.selection = selection
        self.min_size = min_size


class EmptyCropResultError(PageQuoteError):
    """Raised when re-OCR of a selected region finds no usable text."""

    def __init__(self, message: str = "No text found in this region"):
        super().__init__(message)


class CropError(PageQuoteError):
    """Raised when the image cropper cannot produce a region image."""

    pass
