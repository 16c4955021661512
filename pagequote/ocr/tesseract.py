"""
Tesseract line recognizer.

Produces RecognizedTextLine objects with pixel boxes for the manual
selection flow and for region re-OCR. pytesseract is optional; install
the `tesseract` extra and the Tesseract binary with the `kor` language
pack to use it.
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass, field
from typing import Any

from PIL import Image

from pagequote.exceptions import ServiceUnavailableError
from pagequote.models import ImageRect, RecognizedTextLine

logger = logging.getLogger(__name__)

DEFAULT_LANG = "kor+eng"

# Tesseract reports -1 for non-word rows
MIN_WORD_CONFIDENCE = 0.0


def check_tesseract_available() -> bool:
    """Check if Tesseract is installed and usable."""
    try:
        import pytesseract

        pytesseract.get_tesseract_version()
        return True
    except ImportError:
        logger.debug("pytesseract not installed")
        return False
    except pytesseract.TesseractNotFoundError:
        logger.debug("Tesseract binary not found")
        return False


@dataclass
class _LineAccumulator:
    words: list[str] = field(default_factory=list)
    left: int = 0
    top: int = 0
    right: int = 0
    bottom: int = 0

    def add(self, word: str, left: int, top: int, width: int, height: int) -> None:
        if not self.words:
            self.left, self.top = left, top
            self.right, self.bottom = left + width, top + height
        else:
            self.left = min(self.left, left)
            self.top = min(self.top, top)
            self.right = max(self.right, left + width)
            self.bottom = max(self.bottom, top + height)
        self.words.append(word)

    def to_line(self, line_id: str) -> RecognizedTextLine:
        return RecognizedTextLine(
            id=line_id,
            text=" ".join(self.words),
            box=ImageRect(
                x=self.left,
                y=self.top,
                width=self.right - self.left,
                height=self.bottom - self.top,
            ),
        )


def lines_from_tesseract_data(data: dict[str, list[Any]]) -> list[RecognizedTextLine]:
    """
    Group pytesseract `image_to_data` words into lines.

    Words are grouped by (block, paragraph, line) number; each line's
    box is the union of its word boxes.

    Args:
        data: Output of `pytesseract.image_to_data(..., output_type=Output.DICT)`.

    Returns:
        Lines in Tesseract's reading order.
    """
    lines: dict[tuple[int, int, int], _LineAccumulator] = {}

    for i, text in enumerate(data.get("text", [])):
        if not text or not text.strip():
            continue
        try:
            conf = float(data["conf"][i])
        except (KeyError, ValueError, TypeError):
            conf = MIN_WORD_CONFIDENCE
        if conf < MIN_WORD_CONFIDENCE:
            continue

        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        if key not in lines:
            lines[key] = _LineAccumulator()
        lines[key].add(
            text.strip(),
            int(data["left"][i]),
            int(data["top"][i]),
            int(data["width"][i]),
            int(data["height"][i]),
        )

    return [
        acc.to_line(f"line-{block}-{par}-{line}")
        for (block, par, line), acc in lines.items()
    ]


@dataclass
class TesseractLineRecognizer:
    """
    LineRecognizer backed by pytesseract.

    The blocking Tesseract call runs in a worker thread so the event
    loop stays responsive.

    Attributes:
        lang: Tesseract language string.
        config: Extra Tesseract CLI options.

    Example:
        >>> recognizer = TesseractLineRecognizer(lang="kor")
        >>> lines = asyncio.run(recognizer.recognize_lines(page_bytes))
    """

    lang: str = DEFAULT_LANG
    config: str = ""

    def _recognize(self, image_bytes: bytes) -> list[RecognizedTextLine]:
        import pytesseract

        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
            data = pytesseract.image_to_data(
                img, lang=self.lang, config=self.config, output_type=pytesseract.Output.DICT
            )
        return lines_from_tesseract_data(data)

    async def recognize_lines(self, image_bytes: bytes) -> list[RecognizedTextLine]:
        """
        Recognize text lines with pixel boxes.

        Raises:
            ServiceUnavailableError: If Tesseract is missing or fails.
        """
        try:
            lines = await asyncio.to_thread(self._recognize, image_bytes)
        except ImportError as e:
            raise ServiceUnavailableError("pytesseract is not installed") from e
        except Exception as e:
            logger.warning("Tesseract OCR failed: %s", e)
            raise ServiceUnavailableError(f"Tesseract OCR failed: {e}") from e

        logger.debug("Tesseract recognized %d lines", len(lines))
        return lines

    @property
    def is_available(self) -> bool:
        return check_tesseract_available()
