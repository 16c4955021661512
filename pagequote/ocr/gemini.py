"""
Gemini structured recognizer.

Asks a Gemini vision model for the page's paragraphs, its underlined
sentences, and any visible book title and page number, as JSON.
google-genai is optional; install the `gemini` extra to use it.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any

from PIL import Image

from pagequote.exceptions import ServiceUnavailableError
from pagequote.extraction.parsing import parse_structured_response
from pagequote.models import StructuredResult

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_MODEL = "gemini-2.0-flash"

# Wider images are downscaled before upload to save tokens
MAX_IMAGE_WIDTH = 1024
JPEG_QUALITY = 80
MAX_OUTPUT_TOKENS = 2048

SYSTEM_PROMPT = """You are an OCR specialist extracting text from photographs of book pages.
Analyze the image and answer only with JSON in this format:

{
  "paragraphs": ["first paragraph", "second paragraph", ...],
  "underlinedSentences": ["underlined sentence 1", ...],
  "bookTitle": "detected book title or null",
  "pageNumber": detected page number or null
}

Rules:
1. paragraphs: extract all readable text in natural reading order. Join the
   lines that form one paragraph or one thought into a single string. Group
   text separated by blank lines or indentation into separate paragraphs.
2. underlinedSentences: only sentences that are underlined. Return [] when
   nothing is underlined.
3. bookTitle: the book title if it is printed at the top or bottom of the
   page, otherwise null.
4. pageNumber: the page number as a number if visible, otherwise null.

Output JSON only, without any other explanation."""

UNDERLINE_ON = "Analyze this book page. Underline detection: ON - find every underlined sentence."
UNDERLINE_OFF = (
    "Analyze this book page. Underline detection: OFF - return underlinedSentences as []."
)


def prepare_image(image_bytes: bytes, max_width: int = MAX_IMAGE_WIDTH) -> bytes:
    """
    Downscale an image to at most `max_width` and re-encode as JPEG.

    Unreadable images are passed through unchanged; the service decides.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
            if img.width > max_width:
                height = round(img.height * max_width / img.width)
                img = img.resize((max_width, height), Image.Resampling.LANCZOS)
            if img.mode != "RGB":
                img = img.convert("RGB")
            buf = io.BytesIO()
            img.save(buf, format="JPEG", quality=JPEG_QUALITY)
            return buf.getvalue()
    except OSError as e:
        logger.warning("Image resize failed, sending original: %s", e)
        return image_bytes


def _response_text(response: Any) -> str:
    """Concatenate non-thought text parts of a generate_content response."""
    text = ""
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            if getattr(part, "thought", False):
                continue
            part_text = getattr(part, "text", None)
            if part_text:
                text += part_text
    if not text:
        text = getattr(response, "text", "") or ""
    return text


@dataclass
class GeminiStructuredRecognizer:
    """
    StructuredRecognizer backed by the Gemini API.

    Attributes:
        api_key: Gemini API key.
        model: Model name.
        detect_underline: Ask the model for underlined sentences.

    Example:
        >>> recognizer = GeminiStructuredRecognizer(api_key=os.environ["GEMINI_API_KEY"])
        >>> result = asyncio.run(recognizer.recognize_structured(page_bytes))
    """

    api_key: str
    model: str = DEFAULT_MODEL
    detect_underline: bool = True
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def build_prompt(self) -> str:
        return f"{SYSTEM_PROMPT}\n\n{UNDERLINE_ON if self.detect_underline else UNDERLINE_OFF}"

    async def recognize_structured(self, image_bytes: bytes) -> StructuredResult:
        """
        Run structured OCR on one page image.

        Returns:
            ParsedOk, or ParsedFallback when the model did not answer with JSON.

        Raises:
            ServiceUnavailableError: If the API call fails.
        """
        try:
            from google.genai import types
        except ImportError as e:
            raise ServiceUnavailableError("google-genai is not installed") from e

        payload = prepare_image(image_bytes)
        try:
            response = await self._get_client().aio.models.generate_content(
                model=self.model,
                contents=[
                    types.Content(
                        parts=[
                            types.Part.from_text(text=self.build_prompt()),
                            types.Part.from_bytes(data=payload, mime_type="image/jpeg"),
                        ]
                    )
                ],
                config=types.GenerateContentConfig(
                    temperature=0,
                    max_output_tokens=MAX_OUTPUT_TOKENS,
                    response_mime_type="application/json",
                ),
            )
        except Exception as e:
            logger.warning("Gemini request failed: %s", e)
            raise ServiceUnavailableError(f"OCR request failed: {e}") from e

        text = _response_text(response)
        logger.debug("Gemini response: %s", text[:200])
        return parse_structured_response(text)
