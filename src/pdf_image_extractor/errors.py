from __future__ import annotations

from typing import Optional


class ExtractorError(Exception):
    """Base class for extraction failures. `code` is stable and JSON-safe."""

    code = "extractor_error"


class ValidationError(ExtractorError):
    """The selected upload was rejected before any parsing started."""

    code = "validation_error"


class UploadTooLargeError(ValidationError):
    code = "upload_too_large"


class DocumentLoadError(ExtractorError):
    """Fatal: the document could not be opened, the run aborts."""

    code = "document_load_error"


class InvalidFormatError(DocumentLoadError):
    code = "invalid_format"


class PasswordProtectedError(DocumentLoadError):
    code = "password_protected"


class UnknownParseError(DocumentLoadError):
    code = "unknown_parse_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class PageProcessingError(ExtractorError):
    """Recoverable: one page could not be scanned or rendered."""

    code = "page_processing_error"

    def __init__(self, page_number: int, detail: str) -> None:
        super().__init__(f"page {page_number}: {detail}")
        self.page_number = page_number
        self.detail = detail


class StateTransitionError(ExtractorError):
    code = "state_transition_error"

    def __init__(self, trigger: str, phase: str, reason: Optional[str] = None) -> None:
        message = f"Cannot {trigger} while {phase}."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)
        self.trigger = trigger
        self.phase = phase


__all__ = [
    "DocumentLoadError",
    "ExtractorError",
    "InvalidFormatError",
    "PageProcessingError",
    "PasswordProtectedError",
    "StateTransitionError",
    "UnknownParseError",
    "UploadTooLargeError",
    "ValidationError",
]
