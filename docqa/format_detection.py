from __future__ import annotations

import logging
from enum import Enum
from typing import Mapping

from docqa.settings import DEFAULT_IMAGE_MIME_TYPES

logger = logging.getLogger(__name__)

FALLBACK_IMAGE_MIME_TYPE = "image/jpeg"


class FileKind(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    XLSX = "xlsx"
    TEXT = "text"
    IMAGE = "image"
    UNSUPPORTED = "unsupported"


TEXT_EXTENSIONS = {"txt", "html", "htm"}
IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif", "tif", "tiff", "bmp"}

_KIND_BY_EXTENSION: dict[str, FileKind] = {
    "pdf": FileKind.PDF,
    "docx": FileKind.DOCX,
    "xlsx": FileKind.XLSX,
    **{ext: FileKind.TEXT for ext in TEXT_EXTENSIONS},
    **{ext: FileKind.IMAGE for ext in IMAGE_EXTENSIONS},
}


def file_extension(filename: str) -> str:
    """Text after the last dot, lowercased; `""` when the name has no dot."""
    name = (filename or "").strip()
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def classify_extension(extension: str) -> FileKind:
    return _KIND_BY_EXTENSION.get((extension or "").lower().strip().lstrip("."), FileKind.UNSUPPORTED)


def classify_filename(filename: str) -> FileKind:
    return classify_extension(file_extension(filename))


def resolve_image_mime(extension: str, mime_types: Mapping[str, str] | None = None) -> str:
    table = DEFAULT_IMAGE_MIME_TYPES if mime_types is None else mime_types
    normalized = (extension or "").lower().lstrip(".")
    mime = table.get(normalized)
    if mime is None:
        # TODO: reject image extensions without a known MIME type instead of assuming JPEG.
        logger.warning("No MIME type known for image extension '%s'; assuming %s", normalized, FALLBACK_IMAGE_MIME_TYPE)
        return FALLBACK_IMAGE_MIME_TYPE
    return mime
