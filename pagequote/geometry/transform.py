"""
Conversions between source-image pixels and display coordinates.

A page image is shown at a fixed display width; its display height is
derived, so one uniform scale applies to both axes. Every crossing
between the two coordinate spaces goes through this module.
"""

from __future__ import annotations

from dataclasses import dataclass

from pagequote.models import DisplayRect, ImageRect, round_half_up


@dataclass(frozen=True)
class DisplayTransform:
    """
    Uniform scale between an image and its on-screen rendering.

    Attributes:
        image_width: Source image width in pixels.
        image_height: Source image height in pixels.
        display_width: Width the image is drawn at.

    Example:
        >>> t = DisplayTransform(image_width=2000, image_height=3000, display_width=400)
        >>> t.scale
        0.2
        >>> t.to_display(ImageRect(100, 200, 500, 50))
        DisplayRect(x=20.0, y=40.0, width=100.0, height=10.0)
    """

    image_width: int
    image_height: int
    display_width: float

    def __post_init__(self) -> None:
        if self.image_width <= 0 or self.image_height <= 0:
            raise ValueError(
                f"Image size must be positive, got {self.image_width}x{self.image_height}"
            )
        if self.display_width <= 0:
            raise ValueError(f"display_width must be positive, got {self.display_width}")

    @property
    def scale(self) -> float:
        return self.display_width / self.image_width

    @property
    def display_height(self) -> float:
        return self.image_height * self.scale

    @property
    def image_size(self) -> tuple[int, int]:
        return (self.image_width, self.image_height)

    @property
    def display_size(self) -> tuple[float, float]:
        return (self.display_width, self.display_height)

    def to_display(self, rect: ImageRect) -> DisplayRect:
        """Scale a pixel rectangle onto the display."""
        if not isinstance(rect, ImageRect):
            raise TypeError(f"Expected ImageRect, got {type(rect).__name__}")
        s = self.scale
        return DisplayRect(rect.x * s, rect.y * s, rect.width * s, rect.height * s)

    def to_image(self, rect: DisplayRect) -> ImageRect:
        """Map a display rectangle back to integer image pixels."""
        return crop_region(rect, self.image_size, self.display_size)


def crop_region(
    selection: DisplayRect,
    image_size: tuple[int, int],
    display_size: tuple[float, float],
) -> ImageRect:
    """
    Compute the pixel crop region for a display selection.

    Each coordinate is multiplied by image/display on its axis and
    rounded half up (12.5 becomes 13). The region is not clamped to the image; the
    cropper does that.

    Args:
        selection: Normalized selection in display coordinates.
        image_size: (width, height) of the source image in pixels.
        display_size: (width, height) the image is displayed at.

    Returns:
        Crop region in image pixels.
    """
    if not isinstance(selection, DisplayRect):
        raise TypeError(f"Expected DisplayRect, got {type(selection).__name__}")

    image_width, image_height = image_size
    display_width, display_height = display_size
    if display_width <= 0 or display_height <= 0:
        raise ValueError(f"Display size must be positive, got {display_width}x{display_height}")

    sx = image_width / display_width
    sy = image_height / display_height
    return ImageRect(
        x=round_half_up(selection.x * sx),
        y=round_half_up(selection.y * sy),
        width=round_half_up(selection.width * sx),
        height=round_half_up(selection.height * sy),
    )
