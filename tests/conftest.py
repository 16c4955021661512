"""
Pytest configuration and fixtures for pagequote tests.

OCR collaborators are replaced by in-memory fakes so tests never need
Tesseract or network access.
"""

import asyncio
import io

import pytest
from PIL import Image

from pagequote.models import ImageRect, PageImage, RecognizedTextLine


class FakeStructuredRecognizer:
    """Returns canned responses keyed by image bytes; exceptions are raised."""

    def __init__(self, responses, delays=None, hooks=None):
        self.responses = responses
        self.delays = delays or {}
        self.hooks = hooks or {}
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def recognize_structured(self, image_bytes):
        self.calls.append(image_bytes)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(image_bytes, 0))
            hook = self.hooks.get(image_bytes)
            if hook is not None:
                hook()
            response = self.responses[image_bytes]
            if isinstance(response, Exception):
                raise response
            return response
        finally:
            self.in_flight -= 1


class FakeLineRecognizer:
    """Returns the same lines for every call, or raises `error`."""

    def __init__(self, lines=None, error=None):
        self.lines = lines or []
        self.error = error
        self.calls = []

    async def recognize_lines(self, image_bytes):
        self.calls.append(image_bytes)
        if self.error is not None:
            raise self.error
        return list(self.lines)


class FakeCropper:
    """Records crop regions and returns a marker payload."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def crop(self, image_bytes, region):
        self.calls.append((image_bytes, region))
        if self.error is not None:
            raise self.error
        return b"crop:" + repr(region.as_box()).encode()


class FakeSink:
    def __init__(self):
        self.saved = []

    def save(self, quotes):
        self.saved.extend(quotes)


def make_line(line_id, text, x, y, width, height):
    return RecognizedTextLine(id=line_id, text=text, box=ImageRect(x, y, width, height))


def make_png(width, height, color=(255, 255, 255)):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def structured_recognizer():
    """Factory for FakeStructuredRecognizer."""
    return FakeStructuredRecognizer


@pytest.fixture
def line_recognizer():
    """Factory for FakeLineRecognizer."""
    return FakeLineRecognizer


@pytest.fixture
def cropper():
    """Factory for FakeCropper."""
    return FakeCropper


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def png():
    """Factory for in-memory PNG bytes."""
    return make_png


@pytest.fixture
def page_lines():
    """Three stacked lines on a 1000x1500 page."""
    return [
        make_line("l1", "우리가 두려워해야 할 것은", 100, 100, 800, 50),
        make_line("l2", "두려움 그 자체뿐이다.", 100, 200, 800, 50),
        make_line("l3", "용기란 두려움을 극복하는 것이다.", 100, 300, 800, 50),
    ]


@pytest.fixture
def page_image():
    """Factory for PageImage with placeholder bytes."""

    def factory(image_id="img-1", width=1000, height=1500, data=None):
        return PageImage(
            id=image_id,
            data=data if data is not None else image_id.encode(),
            width=width,
            height=height,
        )

    return factory
