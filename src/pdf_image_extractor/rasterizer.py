from __future__ import annotations

import asyncio
import base64
import io
import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from .errors import PageProcessingError
from .scanner import ImageHit
from .schemas import (
    PNG_DATA_URL_PREFIX,
    ExtractedResult,
    ResultOrigin,
    embedded_label,
    page_render_label,
)

logger = logging.getLogger("pdf_image_extractor.rasterizer")

RESULT_FORMAT = "PNG"


@dataclass
class RenderReport:
    results: List[ExtractedResult] = field(default_factory=list)
    skipped_pages: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class RenderedPage:
    data_url: str
    width: int
    height: int


def encode_png_data_url(image: Any) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format=RESULT_FORMAT)
    payload = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"{PNG_DATA_URL_PREFIX}{payload}"


def _render_page(document: Any, page_number: int, scale: float) -> RenderedPage:
    # Each call gets its own surface; nothing is pooled between renders.
    try:
        with document.get_page(page_number) as page:
            image = page.render(scale)
        width, height = image.size
        if width <= 0 or height <= 0:
            raise ValueError(f"empty raster surface {width}x{height}")
        return RenderedPage(data_url=encode_png_data_url(image), width=int(width), height=int(height))
    except Exception as exc:
        raise PageProcessingError(page_number, repr(exc)) from exc


async def render_embedded(document: Any, hits: Sequence[ImageHit], *, scale: float) -> RenderReport:
    """Render the whole page once per hit and emit `embedded` results.

    Several hits on one page give several results, each a full-page render.
    Once a page fails to render its remaining hits are dropped.
    """
    report = RenderReport()
    for hit in hits:
        if hit.page_number in report.skipped_pages:
            continue
        try:
            rendered = await asyncio.to_thread(_render_page, document, hit.page_number, scale)
        except PageProcessingError as exc:
            logger.warning("Skipping page %s (embedded image %s): %s", hit.page_number, hit.sequence_id, exc.detail)
            report.skipped_pages.append(hit.page_number)
            continue
        report.results.append(
            ExtractedResult(
                sequence_id=hit.sequence_id,
                label=embedded_label(hit.sequence_id),
                page_number=hit.page_number,
                encoded_image=rendered.data_url,
                format=RESULT_FORMAT,
                width=rendered.width,
                height=rendered.height,
                origin=ResultOrigin.embedded,
            )
        )
    return report


async def render_fallback(document: Any, *, scale: float, max_pages: int) -> RenderReport:
    report = RenderReport()
    last_page = min(int(document.page_count), int(max_pages))
    for page_number in range(1, last_page + 1):
        try:
            rendered = await asyncio.to_thread(_render_page, document, page_number, scale)
        except PageProcessingError as exc:
            logger.warning("Skipping page %s in page-render fallback: %s", page_number, exc.detail)
            report.skipped_pages.append(page_number)
            continue
        report.results.append(
            ExtractedResult(
                sequence_id=page_number,
                label=page_render_label(page_number),
                page_number=page_number,
                encoded_image=rendered.data_url,
                format=RESULT_FORMAT,
                width=rendered.width,
                height=rendered.height,
                origin=ResultOrigin.page_render,
            )
        )
    return report


__all__ = ["RenderReport", "encode_png_data_url", "render_embedded", "render_fallback"]
