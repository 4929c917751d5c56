"""Explicit UI state for one extractor widget.

Phases and triggers:

    idle / done / failed / file_selected --select_file--> file_selected | failed
    file_selected / done / failed        --start_extraction--> extracting
    extracting                           --extraction_succeeded--> done
    extracting                           --extraction_failed--> failed

`select_file` is refused while extracting; the page also disables its
trigger button for the duration of a run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import ExtractorConfig
from .errors import (
    DocumentLoadError,
    InvalidFormatError,
    PasswordProtectedError,
    StateTransitionError,
    UnknownParseError,
    UploadTooLargeError,
    ValidationError,
)
from .messages import render_message
from .pipeline import extract_images
from .schemas import ExtractedResult, ExtractionOutcome

logger = logging.getLogger("pdf_image_extractor.session")

_BYTES_PER_MB = 1024 * 1024


class SessionPhase(str, Enum):
    idle = "idle"
    file_selected = "file_selected"
    extracting = "extracting"
    done = "done"
    failed = "failed"


@dataclass
class ExtractorState:
    phase: SessionPhase = SessionPhase.idle
    filename: Optional[str] = None
    content_type: Optional[str] = None
    data: Optional[bytes] = None
    results: List[ExtractedResult] = field(default_factory=list)
    message: Optional[str] = None
    error_code: Optional[str] = None
    skipped_pages: List[int] = field(default_factory=list)


def normalize_mime_type(content_type: Optional[str]) -> str:
    return str(content_type or "").split(";", 1)[0].strip().lower()


def validate_upload(content_type: Optional[str], data: bytes, config: ExtractorConfig) -> None:
    if normalize_mime_type(content_type) not in config.upload.accepted_mime_types:
        raise ValidationError(render_message("not_pdf", config.locale))
    if len(data) > config.upload.max_bytes:
        raise UploadTooLargeError(
            render_message(
                "too_large",
                config.locale,
                size_mb=len(data) / _BYTES_PER_MB,
                limit_mb=config.upload.max_bytes / _BYTES_PER_MB,
            )
        )


def load_error_message(exc: DocumentLoadError, locale: str) -> str:
    if isinstance(exc, PasswordProtectedError):
        return render_message("password_protected", locale)
    if isinstance(exc, InvalidFormatError):
        return render_message("invalid_format", locale)
    detail = exc.detail if isinstance(exc, UnknownParseError) else str(exc)
    return render_message("unknown_parse_error", locale, detail=detail)


class ExtractorSession:
    def __init__(self, config: Optional[ExtractorConfig] = None) -> None:
        self.config = config or ExtractorConfig()
        self.state = ExtractorState()

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    def _require(self, trigger: str, *allowed: SessionPhase) -> None:
        if self.state.phase not in allowed:
            raise StateTransitionError(trigger, self.state.phase.value)

    def select_file(self, filename: str, content_type: Optional[str], data: bytes) -> ExtractorState:
        if self.state.phase == SessionPhase.extracting:
            raise StateTransitionError("select_file", self.state.phase.value, "Wait for the current run to finish.")
        try:
            validate_upload(content_type, data, self.config)
        except ValidationError as exc:
            self.state = ExtractorState(phase=SessionPhase.failed, message=str(exc), error_code=exc.code)
            return self.state
        self.state = ExtractorState(
            phase=SessionPhase.file_selected,
            filename=filename,
            content_type=normalize_mime_type(content_type),
            data=bytes(data),
        )
        return self.state

    def start_extraction(self) -> ExtractorState:
        self._require("start_extraction", SessionPhase.file_selected, SessionPhase.done, SessionPhase.failed)
        if self.state.data is None:
            raise StateTransitionError("start_extraction", self.state.phase.value, "No file is selected.")
        self.state.phase = SessionPhase.extracting
        self.state.results = []
        self.state.message = None
        self.state.error_code = None
        self.state.skipped_pages = []
        return self.state

    def extraction_succeeded(self, outcome: ExtractionOutcome) -> ExtractorState:
        self._require("extraction_succeeded", SessionPhase.extracting)
        self.state.phase = SessionPhase.done
        self.state.results = list(outcome.results)
        self.state.message = outcome.message
        self.state.skipped_pages = list(outcome.skipped_pages)
        return self.state

    def extraction_failed(self, error_code: str, message: str) -> ExtractorState:
        self._require("extraction_failed", SessionPhase.extracting)
        self.state.phase = SessionPhase.failed
        self.state.results = []
        self.state.message = message
        self.state.error_code = error_code
        return self.state

    async def run_extraction(self, *, password: Optional[str] = None) -> ExtractorState:
        self.start_extraction()
        data = self.state.data or b""
        try:
            outcome = await extract_images(data, config=self.config, password=password)
        except DocumentLoadError as exc:
            logger.warning("Extraction of %s aborted: %s (%s)", self.state.filename, exc.code, exc)
            return self.extraction_failed(exc.code, load_error_message(exc, self.config.locale))
        except Exception as exc:
            logger.exception("Extraction of %s failed unexpectedly", self.state.filename)
            return self.extraction_failed(
                UnknownParseError.code,
                render_message("unknown_parse_error", self.config.locale, detail=str(exc)),
            )
        return self.extraction_succeeded(outcome)

    def snapshot(self) -> Dict[str, Any]:
        state = self.state
        return {
            "phase": state.phase.value,
            "filename": state.filename,
            "content_type": state.content_type,
            "size_bytes": len(state.data) if state.data is not None else 0,
            "message": state.message,
            "error_code": state.error_code,
            "skipped_pages": list(state.skipped_pages),
            "results": [
                {**result.model_dump(mode="json"), "download_filename": result.download_filename}
                for result in state.results
            ],
        }


__all__ = [
    "ExtractorSession",
    "ExtractorState",
    "SessionPhase",
    "load_error_message",
    "normalize_mime_type",
    "validate_upload",
]
