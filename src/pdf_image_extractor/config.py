from __future__ import annotations

import os
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

CONFIG_ENV_VAR = "PDF_IMAGE_EXTRACTOR_CONFIG"


class RenderConfig(BaseModel):
    embedded_scale: float = 1.0
    fallback_scale: float = 1.2
    fallback_max_pages: int = 5

    @model_validator(mode="after")
    def _validate_positive(self) -> "RenderConfig":
        if self.embedded_scale <= 0.0 or self.fallback_scale <= 0.0:
            raise ValueError("render scales must be > 0.")
        if self.fallback_max_pages < 1:
            raise ValueError("render.fallback_max_pages must be >= 1.")
        return self


class UploadConfig(BaseModel):
    accepted_mime_types: List[str] = Field(default_factory=lambda: ["application/pdf"])
    max_bytes: int = 50 * 1024 * 1024

    @model_validator(mode="after")
    def _validate_upload(self) -> "UploadConfig":
        cleaned = [m.strip().lower() for m in self.accepted_mime_types if m.strip()]
        if not cleaned:
            raise ValueError("upload.accepted_mime_types must not be empty.")
        self.accepted_mime_types = cleaned
        if self.max_bytes <= 0:
            raise ValueError("upload.max_bytes must be > 0.")
        return self


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 7860
    log_level: Literal["critical", "error", "warning", "info", "debug"] = "info"
    # PDFium keeps global state and is not thread-safe, so extraction runs one at a time.
    max_concurrency: int = 1

    @model_validator(mode="after")
    def _validate_concurrency(self) -> "ServerConfig":
        if self.max_concurrency != 1:
            raise ValueError("server.max_concurrency must be 1; PDFium cannot run extractions in parallel.")
        return self


class ExtractorConfig(BaseModel):
    render: RenderConfig = Field(default_factory=RenderConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    locale: Literal["en", "az"] = "en"


def _read_yaml_file(path: Path) -> dict:
    try:
        import yaml  # type: ignore
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("PyYAML is required to read config files. Install with `pip install pyyaml`.") from exc

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a YAML object at top level: {path}")
    return raw


def resolve_config_path(explicit_path: Optional[str] = None) -> Optional[Path]:
    candidate = str(explicit_path or os.getenv(CONFIG_ENV_VAR) or "").strip()
    if not candidate:
        return None
    return Path(candidate).expanduser().resolve()


def load_extractor_config(config_path: Path | str | None = None) -> ExtractorConfig:
    path = resolve_config_path(str(config_path) if config_path is not None else None)
    if path is None:
        return ExtractorConfig()
    if not path.is_file():
        raise FileNotFoundError(f"Extractor config not found: {path}")
    payload = _read_yaml_file(path)
    try:
        return ExtractorConfig.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid extractor config at {path}:\n{exc}") from exc


__all__ = [
    "CONFIG_ENV_VAR",
    "ExtractorConfig",
    "RenderConfig",
    "ServerConfig",
    "UploadConfig",
    "load_extractor_config",
    "resolve_config_path",
]
