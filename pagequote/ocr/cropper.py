"""
Pillow-based image cropping for targeted re-OCR.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from pagequote.exceptions import CropError
from pagequote.models import ImageRect

logger = logging.getLogger(__name__)

# Smaller crops carry no readable glyphs
MIN_CROP_SIDE_PX = 2


def image_size(image_bytes: bytes) -> tuple[int, int]:
    """
    Read (width, height) of an encoded image without decoding pixels.

    Raises:
        CropError: If the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as e:
        raise CropError(f"Unreadable image: {e}") from e


@dataclass
class PillowCropper:
    """
    Crops pixel regions out of encoded images.

    Attributes:
        padding: Pixels added around the region before clamping.
        output_format: Encoding of the returned crop.

    Example:
        >>> cropper = PillowCropper(padding=4)
        >>> crop_bytes = cropper.crop(page_bytes, ImageRect(100, 240, 800, 120))
    """

    padding: int = 0
    output_format: str = "PNG"

    def crop_image(self, image: Image.Image, region: ImageRect) -> Image.Image:
        """
        Crop a region from a decoded image, clamped to its bounds.

        Raises:
            CropError: If the clamped region is degenerate.
        """
        left, top, right, bottom = region.as_box()

        left = max(0, left - self.padding)
        top = max(0, top - self.padding)
        right = min(image.width, right + self.padding)
        bottom = min(image.height, bottom + self.padding)

        if right - left < MIN_CROP_SIDE_PX or bottom - top < MIN_CROP_SIDE_PX:
            raise CropError(
                f"Crop region {region} is empty within a {image.width}x{image.height} image"
            )

        return image.crop((left, top, right, bottom))

    def crop(self, image_bytes: bytes, region: ImageRect) -> bytes:
        """
        Crop a region from an encoded image.

        Args:
            image_bytes: Encoded source image.
            region: Pixel region to keep.

        Returns:
            The encoded crop.

        Raises:
            CropError: If the image is unreadable or the region is empty.
        """
        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                img.load()
                cropped = self.crop_image(img, region)
        except (UnidentifiedImageError, OSError) as e:
            raise CropError(f"Unreadable image: {e}") from e

        if cropped.mode not in ("RGB", "L") and self.output_format.upper() == "JPEG":
            cropped = cropped.convert("RGB")

        buf = io.BytesIO()
        cropped.save(buf, format=self.output_format)
        logger.debug("Cropped %s -> %dx%d", region, cropped.width, cropped.height)
        return buf.getvalue()
