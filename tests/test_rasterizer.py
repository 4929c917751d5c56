from __future__ import annotations

import asyncio
import base64
import io

from PIL import Image

from pdf_factory import fake_document
from pdf_image_extractor.rasterizer import encode_png_data_url, render_embedded, render_fallback
from pdf_image_extractor.scanner import ImageHit
from pdf_image_extractor.schemas import ResultOrigin


def _hits(*pairs: tuple[int, int]) -> list[ImageHit]:
    return [ImageHit(sequence_id=sid, page_number=page, operator_index=0) for sid, page in pairs]


def test_encode_png_data_url_is_decodable_png() -> None:
    data_url = encode_png_data_url(Image.new("RGB", (7, 3), "red"))
    assert data_url.startswith("data:image/png;base64,")
    raw = base64.b64decode(data_url.split(",", 1)[1])
    assert raw.startswith(b"\x89PNG\r\n\x1a\n")
    with Image.open(io.BytesIO(raw)) as decoded:
        assert decoded.size == (7, 3)


def test_render_embedded_renders_whole_page_per_hit() -> None:
    doc = fake_document([2, 0, 1])
    report = asyncio.run(render_embedded(doc, _hits((1, 1), (2, 1), (3, 3)), scale=1.0))

    assert [r.sequence_id for r in report.results] == [1, 2, 3]
    assert [r.page_number for r in report.results] == [1, 1, 3]
    assert {r.origin for r in report.results} == {ResultOrigin.embedded}
    assert [r.label for r in report.results] == ["Embedded image 1", "Embedded image 2", "Embedded image 3"]
    assert all((r.width, r.height) == (100, 50) for r in report.results)
    assert doc.pages[0].render_scales == [1.0, 1.0]
    assert report.skipped_pages == []


def test_render_embedded_drops_remaining_hits_of_failed_page() -> None:
    doc = fake_document([2, 1], failing={1: "render"})
    report = asyncio.run(render_embedded(doc, _hits((1, 1), (2, 1), (3, 2)), scale=1.0))
    assert [r.sequence_id for r in report.results] == [3]
    assert report.skipped_pages == [1]
    assert doc.pages[0].render_scales == [1.0]


def test_render_fallback_caps_page_count_and_uses_page_numbers_as_ids() -> None:
    doc = fake_document([0] * 7)
    report = asyncio.run(render_fallback(doc, scale=1.2, max_pages=5))
    assert [r.sequence_id for r in report.results] == [1, 2, 3, 4, 5]
    assert [r.page_number for r in report.results] == [1, 2, 3, 4, 5]
    assert [r.label for r in report.results] == ["Page 1", "Page 2", "Page 3", "Page 4", "Page 5"]
    assert {r.origin for r in report.results} == {ResultOrigin.page_render}
    assert (report.results[0].width, report.results[0].height) == (120, 60)


def test_render_fallback_skips_failed_page(caplog) -> None:
    doc = fake_document([0, 0, 0], failing={2: "render"})
    with caplog.at_level("WARNING", logger="pdf_image_extractor.rasterizer"):
        report = asyncio.run(render_fallback(doc, scale=1.2, max_pages=5))
    assert [r.sequence_id for r in report.results] == [1, 3]
    assert report.skipped_pages == [2]
    assert "Skipping page 2" in caplog.text


def test_render_fallback_short_document_renders_every_page() -> None:
    report = asyncio.run(render_fallback(fake_document([0, 0]), scale=1.2, max_pages=5))
    assert len(report.results) == 2
