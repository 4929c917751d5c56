"""User-facing status messages.

The widget shows exactly one message per run. Messages are keyed by id so the
web page, the CLI and the session all render the same text for a locale.
"""
from __future__ import annotations

from typing import Dict

DEFAULT_LOCALE = "en"

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "not_pdf": "Please select a PDF file.",
        "too_large": "The selected file is too large ({size_mb:.2f} MB, limit {limit_mb:.2f} MB).",
        "invalid_format": "The selected file is not a valid PDF.",
        "password_protected": "This PDF is encrypted. Enter its password.",
        "unknown_parse_error": "Error while analysing the PDF: {detail}",
        "no_content": "No content was found in the PDF.",
        "extracted": "Extracted {count} image(s).",
        "ui_title": "PDF Image Extractor",
        "ui_intro": "Upload a PDF to get its images as PNG / base64.",
        "ui_password": "Password (encrypted PDFs only)",
        "ui_extract": "Extract images",
        "ui_extracting": "Extracting images...",
        "ui_results": "Extracted images ({count})",
        "ui_page": "Page {page}",
        "ui_origin_embedded": "Embedded image in PDF",
        "ui_origin_page_render": "Page render",
        "ui_download": "Download",
        "ui_copy": "Copy base64",
        "ui_copied": "Base64 copied.",
    },
    "az": {
        "not_pdf": "Zəhmət olmasa PDF fayl seçin",
        "too_large": "Seçilən fayl çox böyükdür ({size_mb:.2f} MB, limit {limit_mb:.2f} MB)",
        "invalid_format": "Seçilən fayl düzgün PDF formatında deyil",
        "password_protected": "Bu PDF şifrələnib, şifrəni daxil edin",
        "unknown_parse_error": "PDF faylını analiz edərkən xəta: {detail}",
        "no_content": "PDF faylında heç bir məzmun tapılmadı",
        "extracted": "Çıxarılan şəkillər ({count})",
        "ui_title": "PDF Şəkil Çıxarıcı",
        "ui_intro": "PDF faylından şəkilləri çıxarıb base64 formatda əldə edin",
        "ui_password": "Şifrə (yalnız şifrələnmiş PDF faylları üçün)",
        "ui_extract": "Şəkilləri Çıxar",
        "ui_extracting": "Şəkillər çıxarılır...",
        "ui_results": "Çıxarılan Şəkillər ({count})",
        "ui_page": "Səhifə {page}",
        "ui_origin_embedded": "PDF-dən embedded şəkil",
        "ui_origin_page_render": "Səhifə render",
        "ui_download": "Yüklə",
        "ui_copy": "Base64 Kopyala",
        "ui_copied": "Base64 kodu kopyalandı!",
    },
}


def supported_locales() -> list[str]:
    return sorted(MESSAGES)


def render_message(message_id: str, locale: str = DEFAULT_LOCALE, **params: object) -> str:
    catalogue = MESSAGES.get(locale) or MESSAGES[DEFAULT_LOCALE]
    template = catalogue.get(message_id) or MESSAGES[DEFAULT_LOCALE].get(message_id)
    if template is None:
        raise KeyError(f"Unknown message id: {message_id}")
    return template.format(**params)


def ui_strings(locale: str = DEFAULT_LOCALE) -> Dict[str, str]:
    """Unformatted `ui_*` templates for the web page; placeholders are filled client-side."""
    catalogue = {**MESSAGES[DEFAULT_LOCALE], **MESSAGES.get(locale, {})}
    return {key: value for key, value in catalogue.items() if key.startswith("ui_")}
