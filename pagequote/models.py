"""
Data models for pagequote.

Rectangles come in two coordinate spaces that must never be mixed:
- ImageRect: source-image pixels (what OCR engines report and crops use)
- DisplayRect: on-screen coordinates (what drag gestures produce)

Convert between them only through DisplayTransform
(see pagequote.geometry.transform).
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from typing import Literal, Union

# =============================================================================
# RECTANGLES
# =============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (12.5 -> 13, -2.5 -> -2)."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class _Rect:
    """Axis-aligned rectangle, top-left anchored."""

    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def _check_space(self, other: _Rect) -> None:
        if type(other) is not type(self):
            raise TypeError(
                f"Cannot compare {type(self).__name__} with {type(other).__name__}; "
                "convert through DisplayTransform first"
            )

    def intersects(self, other: _Rect) -> bool:
        """
        AABB overlap test. Touching edges count as overlap.

        Args:
            other: Rectangle in the same coordinate space.

        Returns:
            True if the rectangles overlap or touch.
        """
        self._check_space(other)
        return not (
            self.right < other.left
            or self.left > other.right
            or self.bottom < other.top
            or self.top > other.bottom
        )

    def contains(self, other: _Rect) -> bool:
        """Check whether `other` lies entirely inside this rectangle."""
        self._check_space(other)
        return (
            self.left <= other.left
            and self.top <= other.top
            and self.right >= other.right
            and self.bottom >= other.bottom
        )


@dataclass(frozen=True)
class ImageRect(_Rect):
    """Rectangle in source-image pixel space."""

    def as_box(self) -> tuple[int, int, int, int]:
        """Return (left, top, right, bottom) as ints, the Pillow crop box order."""
        return (
            round_half_up(self.left),
            round_half_up(self.top),
            round_half_up(self.right),
            round_half_up(self.bottom),
        )


@dataclass(frozen=True)
class DisplayRect(_Rect):
    """Rectangle in display (screen) space."""

    @classmethod
    def from_points(
        cls,
        start: tuple[float, float],
        end: tuple[float, float],
    ) -> DisplayRect:
        """
        Build a normalized rectangle from two drag points.

        Drag direction does not matter: width and height are never negative.

        Example:
            >>> DisplayRect.from_points((10, 10), (5, 5))
            DisplayRect(x=5, y=5, width=5, height=5)
        """
        x0, y0 = start
        x1, y1 = end
        return cls(
            x=min(x0, x1),
            y=min(y0, y1),
            width=abs(x1 - x0),
            height=abs(y1 - y0),
        )


# =============================================================================
# RECOGNIZED TEXT
# =============================================================================


@dataclass(frozen=True)
class RecognizedTextLine:
    """A line of text reported by an OCR engine, with its pixel box."""

    id: str
    text: str
    box: ImageRect


@dataclass
class ScaledTextLine:
    """
    A recognized line paired with its on-screen box.

    `display_box` is always `line.box` scaled by the current display
    transform. It is only recomputed by SelectionSession.rescale.
    """

    line: RecognizedTextLine
    display_box: DisplayRect
    selected: bool = False

    @property
    def id(self) -> str:
        return self.line.id

    @property
    def text(self) -> str:
        return self.line.text


@dataclass
class PageImage:
    """A captured page image in a batch."""

    id: str
    data: bytes = field(repr=False)
    width: int
    height: int
    source: Literal["camera", "gallery"] = "camera"

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)


# =============================================================================
# STRUCTURED OCR RESULTS
# =============================================================================


@dataclass
class PageMetadata:
    """Optional page metadata reported alongside structured OCR text."""

    book_title: str | None = None
    page_number: int | None = None


@dataclass
class ParsedOk:
    """A structured OCR response whose fields validated."""

    paragraphs: list[str] = field(default_factory=list)
    underlined_sentences: list[str] = field(default_factory=list)
    metadata: PageMetadata = field(default_factory=PageMetadata)


@dataclass
class ParsedFallback:
    """A structured OCR response that could not be decoded; kept as raw text."""

    raw_text: str = ""


StructuredResult = Union[ParsedOk, ParsedFallback]


# =============================================================================
# CANDIDATES
# =============================================================================


CandidateOrigin = Literal["extracted", "region", "manual"]


def new_candidate_id(prefix: str = "candidate") -> str:
    """Return an id unique to this creation event."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass
class Candidate:
    """
    A user-editable, selectable unit of extracted text.

    `content` and `selected` change with user edits. `is_underlined`
    records provenance at creation time and is read-only afterwards.

    Build candidates with Candidate.create, which takes `is_underlined`
    as a keyword and assigns a fresh id.

    Attributes:
        id: Unique per creation event (not stable across re-extraction).
        content: Quotation text.
        image_id: Id of the page image it came from.
        selected: Whether the user wants to keep it.
        source_box: Pixel region it was re-OCRed from, for manual selections.
        origin: "extracted" (structured OCR), "region" (re-OCR of a crop)
            or "manual" (selected lines saved as-is).
        original_content: Text before the first user edit, or None if
            the candidate was never edited.
    """

    id: str
    content: str
    image_id: str
    selected: bool = True
    _is_underlined: bool = field(default=False, repr=False)
    source_box: ImageRect | None = None
    origin: CandidateOrigin = "extracted"
    original_content: str | None = field(default=None, repr=False)

    @classmethod
    def create(
        cls,
        content: str,
        image_id: str,
        *,
        selected: bool = True,
        is_underlined: bool = False,
        source_box: ImageRect | None = None,
        origin: CandidateOrigin = "extracted",
        prefix: str = "sentence",
    ) -> Candidate:
        """Create a candidate with a fresh id."""
        return cls(
            id=new_candidate_id(prefix),
            content=content,
            image_id=image_id,
            selected=selected,
            _is_underlined=is_underlined,
            source_box=source_box,
            origin=origin,
        )

    @property
    def edited(self) -> bool:
        return self.original_content is not None

    @property
    def is_replaceable(self) -> bool:
        """True for untouched structured-OCR output, which a re-run may replace."""
        return self.origin == "extracted" and not self.edited

    @property
    def is_underlined(self) -> bool:
        return self._is_underlined


@dataclass
class ImageCandidates:
    """Candidates of one page image, as shown in the grouped view."""

    image_id: str
    candidates: list[Candidate]

    def __len__(self) -> int:
        return len(self.candidates)


@dataclass
class QuoteDraft:
    """What the persistence layer receives for each saved quotation."""

    content: str
    image_id: str
    page_number: int | None = None

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "image_id": self.image_id,
            "page_number": self.page_number,
        }
