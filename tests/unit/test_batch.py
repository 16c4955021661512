"""
Tests for batch structured OCR (pagequote/extraction/batch.py).

Recognizers are in-memory fakes keyed by image bytes; see conftest.py.
"""

import asyncio

import pytest

from pagequote.config import ExtractionConfig
from pagequote.exceptions import ServiceUnavailableError
from pagequote.extraction.batch import BatchExtractor, BatchResult
from pagequote.extraction.normalizer import StructuredNormalizer
from pagequote.models import PageMetadata, ParsedFallback, ParsedOk


def ok(*paragraphs, underlined=(), page=None):
    return ParsedOk(
        paragraphs=list(paragraphs),
        underlined_sentences=list(underlined),
        metadata=PageMetadata(page_number=page),
    )


@pytest.fixture
def images(page_image):
    return [page_image("img-1"), page_image("img-2"), page_image("img-3")]


# =============================================================================
# SEQUENTIAL BATCH
# =============================================================================


class TestBatchExtractor:
    """Tests for BatchExtractor.extract()."""

    def test_groups_in_input_order(self, structured_recognizer, images):
        recognizer = structured_recognizer(
            {
                b"img-1": ok("첫 페이지의 문단입니다", page=10),
                b"img-2": ok("둘째 페이지의 문단입니다", underlined=["밑줄"], page=11),
                b"img-3": ok("셋째 페이지의 문단입니다"),
            }
        )

        result = asyncio.run(BatchExtractor(recognizer).extract(images))

        assert [g.image_id for g in result.groups] == ["img-1", "img-2", "img-3"]
        assert [c.content for c in result.groups[1].candidates] == ["밑줄", "둘째 페이지의 문단입니다"]
        assert result.images_processed == 3
        assert not result.has_failures
        assert result.failure_message() is None
        assert recognizer.calls == [b"img-1", b"img-2", b"img-3"]

    def test_metadata_recorded(self, structured_recognizer, images):
        recognizer = structured_recognizer(
            {b"img-1": ok("문단입니다 하나", page=10), b"img-2": ok(), b"img-3": ok()}
        )

        result = asyncio.run(BatchExtractor(recognizer).extract(images))

        assert result.metadata["img-1"].page_number == 10
        assert result.metadata["img-2"].page_number is None

    def test_empty_images_omitted(self, structured_recognizer, images):
        recognizer = structured_recognizer(
            {b"img-1": ok(), b"img-2": ok("유일한 문단입니다"), b"img-3": ParsedFallback("")}
        )

        result = asyncio.run(BatchExtractor(recognizer).extract(images))

        assert [g.image_id for g in result.groups] == ["img-2"]

    def test_accepts_raw_responses(self, structured_recognizer, page_image):
        """Mappings and JSON strings are parsed like tagged results."""
        recognizer = structured_recognizer(
            {
                b"a": {"paragraphs": ["매핑으로 온 문단"], "pageNumber": 3},
                b"b": '```json\n{"paragraphs": ["문자열로 온 문단"]}\n```',
                b"c": "JSON이 아닌 그냥 텍스트",
            }
        )
        images = [page_image("a"), page_image("b"), page_image("c")]

        result = asyncio.run(BatchExtractor(recognizer).extract(images))

        assert [c.content for c in result.candidates] == [
            "매핑으로 온 문단",
            "문자열로 온 문단",
            "JSON이 아닌 그냥 텍스트",
        ]
        assert result.metadata["a"].page_number == 3
        assert "c" not in result.metadata

    def test_progress_reported(self, structured_recognizer, images):
        recognizer = structured_recognizer({img.data: ok() for img in images})
        progress = []

        asyncio.run(
            BatchExtractor(recognizer).extract(
                images, on_progress=lambda done, total: progress.append((done, total))
            )
        )

        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_empty_batch(self, structured_recognizer):
        result = asyncio.run(BatchExtractor(structured_recognizer({})).extract([]))

        assert result.groups == []
        assert result.images_processed == 0

    def test_uses_normalizer_config(self, structured_recognizer):
        normalizer = StructuredNormalizer(ExtractionConfig(max_workers=2))
        extractor = BatchExtractor(structured_recognizer({}), normalizer)

        assert extractor.config.max_workers == 2


# =============================================================================
# FAILURES
# =============================================================================


class TestBatchFailures:
    """One failing image never aborts the batch."""

    def test_failure_recorded_and_batch_continues(self, structured_recognizer, images):
        recognizer = structured_recognizer(
            {
                b"img-1": ok("첫 페이지의 문단입니다"),
                b"img-2": RuntimeError("quota exceeded"),
                b"img-3": ok("셋째 페이지의 문단입니다"),
            }
        )
        reported = []

        result = asyncio.run(
            BatchExtractor(recognizer).extract(images, on_failure=reported.append)
        )

        assert [g.image_id for g in result.groups] == ["img-1", "img-3"]
        assert list(result.failures) == ["img-2"]
        error = result.failures["img-2"]
        assert isinstance(error, ServiceUnavailableError)
        assert error.image_id == "img-2"
        assert reported == [result]
        assert result.failure_message() == "Text extraction failed for 1 of 3 images."

    def test_several_failures_reported_once(self, structured_recognizer, images):
        recognizer = structured_recognizer(
            {
                b"img-1": RuntimeError("503"),
                b"img-2": ok("둘째 페이지의 문단입니다"),
                b"img-3": RuntimeError("quota exceeded"),
            }
        )
        reported = []
        extractor = BatchExtractor(recognizer, config=ExtractionConfig(max_workers=2))

        result = asyncio.run(extractor.extract(images, on_failure=reported.append))

        assert reported == [result]
        assert sorted(result.failures) == ["img-1", "img-3"]
        assert result.succeeded == ["img-2"]
        assert result.failure_message() == "Text extraction failed for 2 of 3 images."

    def test_empty_result_counts_as_succeeded(self, structured_recognizer, images):
        recognizer = structured_recognizer(
            {
                b"img-1": ok("첫 페이지의 문단입니다"),
                b"img-2": ParsedOk(),
                b"img-3": ok("셋째 페이지의 문단입니다"),
            }
        )

        result = asyncio.run(BatchExtractor(recognizer).extract(images))

        assert result.succeeded == ["img-1", "img-2", "img-3"]
        assert [g.image_id for g in result.groups] == ["img-1", "img-3"]

    def test_service_error_keeps_its_message(self, structured_recognizer, page_image):
        recognizer = structured_recognizer({b"img-1": ServiceUnavailableError("offline")})

        result = asyncio.run(BatchExtractor(recognizer).extract([page_image("img-1")]))

        assert str(result.failures["img-1"]) == "offline"
        assert result.failures["img-1"].image_id == "img-1"
        assert result.failure_message() == "Text extraction failed for 1 of 1 image."

    def test_on_failure_not_called_without_failures(self, structured_recognizer, images):
        recognizer = structured_recognizer({img.data: ok() for img in images})
        reported = []

        asyncio.run(BatchExtractor(recognizer).extract(images, on_failure=reported.append))

        assert reported == []


# =============================================================================
# MEMBERSHIP AND CONCURRENCY
# =============================================================================


class TestStaleResults:
    """Results for images removed mid-flight are discarded."""

    def test_removed_image_discarded(self, structured_recognizer, images):
        members = {"img-1", "img-2", "img-3"}
        recognizer = structured_recognizer(
            {
                b"img-1": ok("첫 페이지의 문단입니다"),
                b"img-2": ok("지워질 페이지의 문단", page=2),
                b"img-3": ok("셋째 페이지의 문단입니다"),
            },
            hooks={b"img-2": lambda: members.discard("img-2")},
        )

        result = asyncio.run(
            BatchExtractor(recognizer).extract(images, is_member=members.__contains__)
        )

        assert [g.image_id for g in result.groups] == ["img-1", "img-3"]
        assert result.discarded == ["img-2"]
        assert "img-2" not in result.metadata

    def test_removed_failing_image_not_reported(self, structured_recognizer, page_image):
        members = {"img-1"}
        recognizer = structured_recognizer(
            {b"img-1": RuntimeError("boom")},
            hooks={b"img-1": lambda: members.clear()},
        )
        reported = []

        result = asyncio.run(
            BatchExtractor(recognizer).extract(
                [page_image("img-1")], is_member=members.__contains__, on_failure=reported.append
            )
        )

        assert result.failures == {}
        assert reported == []


class TestConcurrentBatch:
    """Tests for max_workers > 1."""

    def test_bounded_pool_keeps_input_order(self, structured_recognizer, page_image):
        images = [page_image(f"img-{i}") for i in range(4)]
        recognizer = structured_recognizer(
            {img.data: ok(f"페이지 {img.id} 의 문단") for img in images},
            # First image finishes last
            delays={b"img-0": 0.05, b"img-1": 0.01, b"img-2": 0.02, b"img-3": 0.0},
        )
        normalizer = StructuredNormalizer(ExtractionConfig(max_workers=2))

        result = asyncio.run(BatchExtractor(recognizer, normalizer).extract(images))

        assert [g.image_id for g in result.groups] == ["img-0", "img-1", "img-2", "img-3"]
        assert recognizer.max_in_flight == 2

    def test_sequential_by_default(self, structured_recognizer, images):
        recognizer = structured_recognizer({img.data: ok() for img in images})

        asyncio.run(BatchExtractor(recognizer).extract(images))

        assert recognizer.max_in_flight == 1


def test_batch_result_candidates_flatten_groups():
    assert BatchResult().candidates == []
