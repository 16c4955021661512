#!/usr/bin/env python3
"""
Basic pagequote Usage Example

This example demonstrates the core workflow:
1. Load page photos into a capture session
2. Run structured OCR and review the candidates
3. Select lines by dragging over a page
4. Re-OCR a selected region
5. Hand the selected quotes to persistence
"""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from pagequote import CaptureConfig, CaptureSession, ExtractionConfig, PageImage, PageQuoteError
from pagequote.ocr import (
    GeminiStructuredRecognizer,
    PillowCropper,
    TesseractLineRecognizer,
    image_size,
)


class JsonFileSink:
    """Writes quotes to a JSON file."""

    def __init__(self, path):
        self.path = Path(path)

    def save(self, quotes):
        self.path.write_text(
            json.dumps([q.to_dict() for q in quotes], ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


def load_pages(paths):
    pages = []
    for i, path in enumerate(paths):
        data = Path(path).read_bytes()
        width, height = image_size(data)
        pages.append(PageImage(id=f"page-{i}", data=data, width=width, height=height))
    return pages


async def run(paths):
    # ─────────────────────────────────────────────────────────────────────────
    # 1. Session setup
    # ─────────────────────────────────────────────────────────────────────────

    config = CaptureConfig(
        extraction=ExtractionConfig(
            overlap_policy="remainder",  # Keep the non-underlined rest of a paragraph
            granularity="sentence",  # One candidate per sentence
            max_workers=2,  # Two OCR calls at a time
        )
    )
    session = CaptureSession(
        GeminiStructuredRecognizer(api_key=os.environ["GEMINI_API_KEY"]),
        line_recognizer=TesseractLineRecognizer(lang="kor+eng"),
        cropper=PillowCropper(padding=4),
        config=config,
    )
    session.add_images(load_pages(paths))

    # ─────────────────────────────────────────────────────────────────────────
    # 2. Structured OCR and review
    # ─────────────────────────────────────────────────────────────────────────

    result = await session.run_extraction(
        on_progress=lambda done, total: print(f"  OCR {done}/{total}"),
    )
    if result.has_failures:
        print(result.failure_message())

    for group in session.candidates.group_by_image(session.image_ids):
        print(f"\n{group.image_id}:")
        for candidate in group.candidates:
            mark = "*" if candidate.is_underlined else " "
            print(f"  {mark} {candidate.content}")

    # ─────────────────────────────────────────────────────────────────────────
    # 3. Drag selection on the first page (display 360 px wide)
    # ─────────────────────────────────────────────────────────────────────────

    first = session.image_ids[0]
    try:
        selection = await session.open_selection(first, display_width=360)
    except PageQuoteError as e:
        print(f"Manual selection unavailable: {e}")
    else:
        selection.begin_drag((10, 40))
        selection.drag_to((350, 120))
        selection.end_drag()
        print(f"\nDragged over: {selection.selected_text()}")
        session.add_selected_lines()

        # ─────────────────────────────────────────────────────────────────────
        # 4. Region re-OCR
        # ─────────────────────────────────────────────────────────────────────

        try:
            region = await session.extract_region()
            print(f"Region {region.region.as_box()}: {len(region.candidates)} new candidates")
        except PageQuoteError as e:
            print(f"Region OCR failed: {e}")

    # ─────────────────────────────────────────────────────────────────────────
    # 5. Save
    # ─────────────────────────────────────────────────────────────────────────

    saved = session.save(JsonFileSink("quotes.json"))
    print(f"\nSaved {len(saved)} quotes to quotes.json")
    session.reset()


if __name__ == "__main__":
    if not sys.argv[1:]:
        print(f"Usage: {sys.argv[0]} PAGE_IMAGE [PAGE_IMAGE ...]")
        sys.exit(2)
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run(sys.argv[1:]))
