"""
Interactive selection of recognized text lines.

A SelectionSession holds one page image's recognized lines, scaled to
the display, and answers tap and drag gestures:

    idle --begin_drag--> selecting --drag_to (repeated)--> selecting
         <--end_drag-- (rectangle kept for a crop action)

A drag start clears all previous selection: every drag defines a new
selection from scratch. Each drag_to recomputes the selection from the
(start, current) pair alone with a linear AABB scan, so the result does
not depend on how many move events were delivered.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from pagequote.geometry.transform import DisplayTransform
from pagequote.models import Candidate, DisplayRect, RecognizedTextLine, ScaledTextLine

logger = logging.getLogger(__name__)

Point = tuple[float, float]


class SelectionState(Enum):
    """Gesture state of a selection session."""

    IDLE = "idle"
    SELECTING = "selecting"


class SelectionSession:
    """
    Tap and drag selection over one page's recognized text lines.

    Attributes:
        transform: Current image-to-display transform.
        state: IDLE or SELECTING.

    Example:
        >>> session = SelectionSession(lines, DisplayTransform(1000, 1500, 500))
        >>> session.begin_drag((10, 10))
        >>> session.drag_to((300, 120))
        >>> session.end_drag()
        >>> session.selected_text()
        'first line second line'
    """

    def __init__(
        self,
        lines: Iterable[RecognizedTextLine],
        transform: DisplayTransform,
    ):
        """
        Initialize the session.

        Args:
            lines: Recognized lines in reading order, boxes in image pixels.
            transform: Image-to-display transform for the current layout.
        """
        self.transform = transform
        self.state = SelectionState.IDLE
        self._lines: list[ScaledTextLine] = []
        self._by_id: dict[str, ScaledTextLine] = {}
        self._start: Point | None = None
        self._end: Point | None = None

        for line in lines:
            scaled = ScaledTextLine(line=line, display_box=transform.to_display(line.box))
            if line.id in self._by_id:
                logger.warning("Duplicate text line id %s; keeping the first", line.id)
                continue
            self._lines.append(scaled)
            self._by_id[line.id] = scaled

        logger.debug("Selection session with %d lines", len(self._lines))

    # -------------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------------

    @property
    def lines(self) -> list[ScaledTextLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def rescale(self, display_width: float) -> None:
        """Recompute every display box for a new display width."""
        self.transform = DisplayTransform(
            self.transform.image_width, self.transform.image_height, display_width
        )
        for scaled in self._lines:
            scaled.display_box = self.transform.to_display(scaled.line.box)
        # A rectangle drawn at the old scale no longer matches the lines
        self._start = None
        self._end = None

    # -------------------------------------------------------------------------
    # Gestures
    # -------------------------------------------------------------------------

    @property
    def selection_rect(self) -> DisplayRect | None:
        """The current drag rectangle, normalized, or None."""
        if self._start is None or self._end is None:
            return None
        return DisplayRect.from_points(self._start, self._end)

    def begin_drag(self, point: Point) -> None:
        """Pointer down: discard previous selection and start a new rectangle."""
        for scaled in self._lines:
            scaled.selected = False
        self._start = point
        self._end = point
        self.state = SelectionState.SELECTING

    def drag_to(self, point: Point) -> list[ScaledTextLine]:
        """
        Pointer move: extend the rectangle and recompute the selection.

        Args:
            point: Current pointer position in display coordinates.

        Returns:
            Lines selected by the rectangle from the drag start to `point`.
        """
        if self.state is not SelectionState.SELECTING or self._start is None:
            logger.debug("drag_to without begin_drag ignored")
            return self.selected_lines()
        self._end = point
        return self._apply_rect()

    def end_drag(self) -> DisplayRect | None:
        """Pointer up: stop dragging, keep the rectangle for a crop action."""
        self.state = SelectionState.IDLE
        return self.selection_rect

    def _apply_rect(self) -> list[ScaledTextLine]:
        rect = self.selection_rect
        selected = []
        for scaled in self._lines:
            scaled.selected = rect is not None and rect.intersects(scaled.display_box)
            if scaled.selected:
                selected.append(scaled)
        return selected

    def tap_line(self, line_id: str) -> bool:
        """
        Toggle one line and clear the drag rectangle.

        Args:
            line_id: Id of the tapped line.

        Returns:
            The line's new selected state.

        Raises:
            KeyError: If no line has this id.
        """
        scaled = self._by_id[line_id]
        scaled.selected = not scaled.selected
        self._start = None
        self._end = None
        return scaled.selected

    def select_all(self) -> None:
        """Select every line, or deselect all if all are already selected."""
        all_selected = bool(self._lines) and all(s.selected for s in self._lines)
        for scaled in self._lines:
            scaled.selected = not all_selected

    def clear_selection(self) -> None:
        """Drop the rectangle and deselect every line."""
        for scaled in self._lines:
            scaled.selected = False
        self._start = None
        self._end = None
        self.state = SelectionState.IDLE

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def selected_lines(self) -> list[ScaledTextLine]:
        return [s for s in self._lines if s.selected]

    def selected_text(self) -> str:
        """Text of the selected lines in reading order, joined by spaces."""
        return " ".join(s.text.strip() for s in self.selected_lines() if s.text.strip())

    def to_candidate(self, image_id: str) -> Candidate | None:
        """
        Turn the selected lines into one candidate without a second OCR pass.

        Returns:
            A selected, non-underlined candidate, or None if nothing is selected.
        """
        text = self.selected_text()
        if not text:
            return None
        return Candidate.create(
            text, image_id, selected=True, is_underlined=False, origin="manual", prefix="manual"
        )
