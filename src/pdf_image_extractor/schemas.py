from __future__ import annotations

import base64
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

PNG_DATA_URL_PREFIX = "data:image/png;base64,"


class ResultOrigin(str, Enum):
    embedded = "embedded"
    page_render = "page-render"


class OutcomeStatus(str, Enum):
    succeeded = "succeeded"
    empty = "empty"
    failed = "failed"


class ExtractedResult(BaseModel):
    sequence_id: int = Field(ge=1)
    label: str
    page_number: int = Field(ge=1)
    encoded_image: str
    format: str = "PNG"
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    origin: ResultOrigin
    model_config = ConfigDict(extra="forbid")

    @property
    def download_filename(self) -> str:
        return f"{self.label}.{self.format.lower()}"

    def copy_text(self) -> str:
        return self.encoded_image

    def image_bytes(self) -> bytes:
        _, _, payload = self.encoded_image.partition(",")
        return base64.b64decode(payload)


class ExtractionOutcome(BaseModel):
    status: OutcomeStatus
    results: List[ExtractedResult] = Field(default_factory=list)
    message: Optional[str] = None
    error_code: Optional[str] = None
    page_count: int = 0
    skipped_pages: List[int] = Field(default_factory=list)
    model_config = ConfigDict(extra="forbid")


def embedded_label(sequence_id: int) -> str:
    return f"Embedded image {sequence_id}"


def page_render_label(page_number: int) -> str:
    return f"Page {page_number}"
