from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .config import ExtractorConfig
from .document import load_document
from .messages import render_message
from .rasterizer import render_embedded, render_fallback
from .scanner import scan_for_images
from .schemas import ExtractionOutcome, OutcomeStatus

logger = logging.getLogger("pdf_image_extractor.pipeline")


async def extract_images(
    data: bytes,
    *,
    config: Optional[ExtractorConfig] = None,
    password: Optional[str] = None,
) -> ExtractionOutcome:
    """Load -> scan -> render embedded hits, or fall back to page renders.

    Document load failures propagate as `DocumentLoadError` subclasses and
    abort the run. Per-page failures are logged and reported in
    `skipped_pages`. A run with no results is an `empty` outcome, not an error.
    """
    cfg = config or ExtractorConfig()
    document = await asyncio.to_thread(load_document, data, password=password)
    try:
        scan = await scan_for_images(document)
        if scan.hits:
            logger.info(
                "Found %s image operator(s) on page(s) %s of %s",
                len(scan.hits),
                scan.pages_with_images,
                document.page_count,
            )
            rendered = await render_embedded(document, scan.hits, scale=cfg.render.embedded_scale)
        else:
            logger.info("No image operators in %s page(s); rendering page snapshots", document.page_count)
            rendered = await render_fallback(
                document,
                scale=cfg.render.fallback_scale,
                max_pages=cfg.render.fallback_max_pages,
            )
        page_count = int(document.page_count)
    finally:
        document.close()

    skipped_pages = sorted(set(scan.skipped_pages) | set(rendered.skipped_pages))
    if not rendered.results:
        return ExtractionOutcome(
            status=OutcomeStatus.empty,
            message=render_message("no_content", cfg.locale),
            page_count=page_count,
            skipped_pages=skipped_pages,
        )
    return ExtractionOutcome(
        status=OutcomeStatus.succeeded,
        results=rendered.results,
        page_count=page_count,
        skipped_pages=skipped_pages,
    )


def extract_images_sync(
    data: bytes,
    *,
    config: Optional[ExtractorConfig] = None,
    password: Optional[str] = None,
) -> ExtractionOutcome:
    return asyncio.run(extract_images(data, config=config, password=password))


__all__ = ["extract_images", "extract_images_sync"]
