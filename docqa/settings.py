from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_IMAGE_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "bmp": "image/bmp",
}

DEFAULT_GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_OCR_SPACE_URL = "https://api.ocr.space/parse/image"


@dataclass(frozen=True)
class PipelineSettings:
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_endpoint: str = DEFAULT_GEMINI_ENDPOINT
    ocr_space_api_key: str | None = None
    ocr_space_url: str = DEFAULT_OCR_SPACE_URL
    ocr_language: str = "eng"
    ocr_scanned_pdfs: bool = False
    max_chars_per_file: int = 20_000
    max_file_bytes: int = 5 * 1024 * 1024
    max_workers: int = 4
    request_timeout_seconds: float = 60.0
    temperature: float = 0.4
    top_k: int = 32
    top_p: float = 1.0
    max_output_tokens: int = 8192
    image_mime_types: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_IMAGE_MIME_TYPES))

    @property
    def has_gemini_key(self) -> bool:
        return bool((self.gemini_api_key or "").strip())

    @property
    def has_ocr_space_key(self) -> bool:
        return bool((self.ocr_space_api_key or "").strip())

    def generation_config(self) -> dict:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


def _optional_env(name: str) -> str | None:
    value = (os.getenv(name) or "").strip()
    return value or None


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def load_settings() -> PipelineSettings:
    """Build settings from the process environment; unset or invalid values keep their defaults."""

    return PipelineSettings(
        gemini_api_key=_optional_env("GEMINI_API_KEY"),
        gemini_model=_optional_env("GEMINI_MODEL") or "gemini-2.5-flash",
        gemini_endpoint=(_optional_env("GEMINI_API_BASE") or DEFAULT_GEMINI_ENDPOINT).rstrip("/"),
        ocr_space_api_key=_optional_env("OCR_SPACE_API_KEY"),
        ocr_space_url=_optional_env("OCR_SPACE_URL") or DEFAULT_OCR_SPACE_URL,
        ocr_language=_optional_env("OCR_LANGUAGE") or "eng",
        ocr_scanned_pdfs=_bool_env("DOCQA_OCR_SCANNED_PDFS"),
        max_chars_per_file=max(1, _int_env("DOCQA_MAX_CHARS_PER_FILE", 20_000)),
        max_file_bytes=max(1, _int_env("DOCQA_MAX_FILE_BYTES", 5 * 1024 * 1024)),
        max_workers=max(1, _int_env("DOCQA_MAX_WORKERS", 4)),
        request_timeout_seconds=_float_env("DOCQA_REQUEST_TIMEOUT_SECONDS", 60.0),
    )
