"""Thin wrapper over pypdfium2.

PDFium does all of the parsing and rasterization. This module only maps its
failures onto the extractor error taxonomy and exposes the few calls the
scanner and rasterizer need:

- `PdfDocumentHandle.page_count` / `get_page(n)` (1-indexed)
- `PdfPageHandle.drawing_operators()` (PDFium page-object types, in paint order)
- `PdfPageHandle.render(scale)` (Pillow image, 1.0 == 72 dpi)
"""
from __future__ import annotations

from typing import Any, Optional

import pypdfium2 as pdfium
import pypdfium2.raw as pdfium_c

from .errors import InvalidFormatError, PasswordProtectedError, UnknownParseError

IMAGE_PAINT_OPERATOR = pdfium_c.FPDF_PAGEOBJ_IMAGE

_FORMAT_ERROR_CODES = {pdfium_c.FPDF_ERR_FORMAT, pdfium_c.FPDF_ERR_FILE}
# Form XObjects may nest; images inside them still count as image paints.
_MAX_FORM_DEPTH = 32


class PdfPageHandle:
    def __init__(self, page: Any, page_number: int) -> None:
        self._page = page
        self.page_number = page_number

    def drawing_operators(self) -> list[int]:
        return [int(obj.type) for obj in self._page.get_objects(max_depth=_MAX_FORM_DEPTH)]

    def render(self, scale: float) -> Any:
        bitmap = self._page.render(scale=scale)
        try:
            return bitmap.to_pil().convert("RGB")
        finally:
            bitmap.close()

    def close(self) -> None:
        self._page.close()

    def __enter__(self) -> "PdfPageHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


class PdfDocumentHandle:
    def __init__(self, document: Any) -> None:
        self._document = document
        self.page_count = len(document)

    def get_page(self, page_number: int) -> PdfPageHandle:
        if page_number < 1 or page_number > self.page_count:
            raise ValueError(f"Page out of range: {page_number} (1..{self.page_count})")
        return PdfPageHandle(self._document[page_number - 1], page_number)

    def close(self) -> None:
        self._document.close()

    def __enter__(self) -> "PdfDocumentHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


def _classify_pdfium_error(exc: Exception) -> Exception:
    err_code = getattr(exc, "err_code", None)
    message = str(exc)
    lowered = message.lower()
    if err_code == pdfium_c.FPDF_ERR_PASSWORD or "password" in lowered:
        return PasswordProtectedError(message)
    if err_code in _FORMAT_ERROR_CODES or "format" in lowered:
        return InvalidFormatError(message)
    return UnknownParseError(message)


def load_document(data: bytes, *, password: Optional[str] = None) -> PdfDocumentHandle:
    if not data:
        raise InvalidFormatError("Empty document buffer.")
    try:
        return PdfDocumentHandle(pdfium.PdfDocument(bytes(data), password=password or None))
    except pdfium.PdfiumError as exc:
        raise _classify_pdfium_error(exc) from exc
    except Exception as exc:
        raise UnknownParseError(repr(exc)) from exc


__all__ = ["IMAGE_PAINT_OPERATOR", "PdfDocumentHandle", "PdfPageHandle", "load_document"]
