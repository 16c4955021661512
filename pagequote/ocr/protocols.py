"""
Collaborator interfaces consumed by pagequote.

OCR calls are the only suspension points in the library, so recognizers
are awaitable. Cropping is local and synchronous. Persistence only ever
sees QuoteDraft objects.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, Union, runtime_checkable

from pagequote.models import ImageRect, QuoteDraft, RecognizedTextLine, StructuredResult

StructuredResponse = Union[StructuredResult, Mapping[str, Any], str]


@runtime_checkable
class StructuredRecognizer(Protocol):
    """Returns paragraphs, underlined sentences and page metadata for an image."""

    async def recognize_structured(self, image_bytes: bytes) -> StructuredResponse: ...


@runtime_checkable
class LineRecognizer(Protocol):
    """Returns recognized text lines with pixel bounding boxes."""

    async def recognize_lines(self, image_bytes: bytes) -> list[RecognizedTextLine]: ...


@runtime_checkable
class ImageCropper(Protocol):
    """Crops a pixel-space region out of an encoded image."""

    def crop(self, image_bytes: bytes, region: ImageRect) -> bytes: ...


@runtime_checkable
class QuoteSink(Protocol):
    """Persists the selected quotations."""

    def save(self, quotes: list[QuoteDraft]) -> Any: ...
