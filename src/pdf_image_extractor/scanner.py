from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from .document import IMAGE_PAINT_OPERATOR
from .errors import PageProcessingError

logger = logging.getLogger("pdf_image_extractor.scanner")


@dataclass(frozen=True)
class ImageHit:
    sequence_id: int
    page_number: int  # 1-indexed
    operator_index: int  # position in the page's operator list


@dataclass
class ScanReport:
    hits: List[ImageHit] = field(default_factory=list)
    skipped_pages: List[int] = field(default_factory=list)

    @property
    def pages_with_images(self) -> List[int]:
        return sorted({hit.page_number for hit in self.hits})


def _page_operators(document: Any, page_number: int) -> list[int]:
    try:
        with document.get_page(page_number) as page:
            return list(page.drawing_operators())
    except Exception as exc:
        raise PageProcessingError(page_number, repr(exc)) from exc


def _scan_page(operators: Sequence[int], page_number: int, next_id: int) -> tuple[list[ImageHit], int]:
    hits: list[ImageHit] = []
    for index, operator in enumerate(operators):
        if operator == IMAGE_PAINT_OPERATOR:
            hits.append(ImageHit(sequence_id=next_id, page_number=page_number, operator_index=index))
            next_id += 1
    return hits, next_id


async def scan_for_images(document: Any) -> ScanReport:
    """Walk every page in order and record one hit per image-paint operator.

    Sequence ids start at 1 and follow document order, then operator order
    within a page. A page whose operator list cannot be read is skipped.
    """
    report = ScanReport()
    next_id = 1
    for page_number in range(1, int(document.page_count) + 1):
        try:
            operators = await asyncio.to_thread(_page_operators, document, page_number)
        except PageProcessingError as exc:
            logger.warning("Skipping page %s during image scan: %s", page_number, exc.detail)
            report.skipped_pages.append(page_number)
            continue
        hits, next_id = _scan_page(operators, page_number, next_id)
        report.hits.extend(hits)
    return report


__all__ = ["ImageHit", "ScanReport", "scan_for_images"]
