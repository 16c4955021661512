"""
OCR collaborators.

The pipeline depends only on the protocols; the concrete classes are
ready-made implementations:
- PillowCropper: crops pixel regions (Pillow)
- TesseractLineRecognizer: lines with boxes (pytesseract, optional)
- GeminiStructuredRecognizer: paragraphs + underlines (google-genai, optional)
"""

from pagequote.ocr.cropper import PillowCropper, image_size
from pagequote.ocr.gemini import GeminiStructuredRecognizer
from pagequote.ocr.protocols import (
    ImageCropper,
    LineRecognizer,
    QuoteSink,
    StructuredRecognizer,
)
from pagequote.ocr.tesseract import (
    TesseractLineRecognizer,
    check_tesseract_available,
    lines_from_tesseract_data,
)

__all__ = [
    # Protocols
    "StructuredRecognizer",
    "LineRecognizer",
    "ImageCropper",
    "QuoteSink",
    # Implementations
    "PillowCropper",
    "TesseractLineRecognizer",
    "GeminiStructuredRecognizer",
    # Helpers
    "image_size",
    "check_tesseract_available",
    "lines_from_tesseract_data",
]
