"""
Geometry of recognized text: coordinate transforms, drag selection
and region re-extraction.

Example:
    >>> from pagequote.geometry import DisplayTransform, SelectionSession
    >>> session = SelectionSession(lines, DisplayTransform(1200, 1800, 360))
    >>> session.begin_drag((0, 0))
    >>> session.drag_to((200, 80))
    >>> rect = session.end_drag()
"""

from pagequote.geometry.region import RegionExtractor, RegionResult
from pagequote.geometry.selection import SelectionSession, SelectionState
from pagequote.geometry.transform import DisplayTransform, crop_region

__all__ = [
    "DisplayTransform",
    "crop_region",
    "SelectionSession",
    "SelectionState",
    "RegionExtractor",
    "RegionResult",
]
