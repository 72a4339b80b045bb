from __future__ import annotations

import base64
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, Sequence

from docqa.errors import DocqaError, MalformedInput
from docqa.format_detection import FileKind, classify_extension, file_extension, resolve_image_mime
from docqa.ocr import OcrChain, build_ocr_chain
from docqa.office_extraction import extract_docx_text, extract_xlsx_text
from docqa.pdf_extraction import extract_pdf
from docqa.settings import PipelineSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    name: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content or b"")


@dataclass(frozen=True)
class ImagePart:
    name: str
    mime_type: str
    data: str


@dataclass(frozen=True)
class ExtractionRecord:
    name: str
    extension: str
    kind: FileKind
    text: str
    size: int
    error: str | None = None
    info: str | None = None
    is_scanned: bool = False
    pages: int | None = None
    image: ImagePart | None = None

    @property
    def text_length(self) -> int:
        return len(self.text)


Extractor = Callable[[UploadedFile, ExtractionRecord, PipelineSettings, OcrChain], ExtractionRecord]


def image_placeholder(name: str) -> str:
    return f"[Image: {name} - will be analyzed by AI vision]"


def _extract_pdf(file: UploadedFile, record: ExtractionRecord, settings: PipelineSettings, ocr_chain: OcrChain) -> ExtractionRecord:
    result = extract_pdf(file.content)
    if not result.is_scanned:
        logger.info("PDF %s: extracted %s characters", file.name, len(result.text))
        return replace(record, text=result.text, pages=result.pages)

    logger.info("PDF %s is scanned (%s pages)", file.name, result.pages)
    if settings.ocr_scanned_pdfs:
        ocr_text = ocr_chain.run(file.content, file.name)
        if ocr_text.strip():
            return replace(record, text=ocr_text, is_scanned=True, pages=result.pages)
    return replace(record, is_scanned=True, pages=result.pages, info=result.info)


def _extract_docx(file: UploadedFile, record: ExtractionRecord, settings: PipelineSettings, ocr_chain: OcrChain) -> ExtractionRecord:
    text = extract_docx_text(file.content)
    logger.info("DOCX %s: extracted %s characters", file.name, len(text))
    return replace(record, text=text)


def _extract_xlsx(file: UploadedFile, record: ExtractionRecord, settings: PipelineSettings, ocr_chain: OcrChain) -> ExtractionRecord:
    text = extract_xlsx_text(file.content)
    logger.info("XLSX %s: extracted %s characters", file.name, len(text))
    return replace(record, text=text)


def _extract_plain_text(file: UploadedFile, record: ExtractionRecord, settings: PipelineSettings, ocr_chain: OcrChain) -> ExtractionRecord:
    if not file.content:
        raise MalformedInput("Empty or invalid buffer for text file")
    return replace(record, text=file.content.decode("utf-8", errors="replace"))


def _prepare_image(file: UploadedFile, record: ExtractionRecord, settings: PipelineSettings, ocr_chain: OcrChain) -> ExtractionRecord:
    image = ImagePart(
        name=file.name,
        mime_type=resolve_image_mime(record.extension, settings.image_mime_types),
        data=base64.b64encode(file.content or b"").decode("ascii"),
    )
    return replace(record, text=image_placeholder(file.name), image=image)


def _skip_unsupported(file: UploadedFile, record: ExtractionRecord, settings: PipelineSettings, ocr_chain: OcrChain) -> ExtractionRecord:
    logger.info("Unsupported file type '%s' for %s", record.extension, file.name)
    return record


EXTRACTORS: dict[FileKind, Extractor] = {
    FileKind.PDF: _extract_pdf,
    FileKind.DOCX: _extract_docx,
    FileKind.XLSX: _extract_xlsx,
    FileKind.TEXT: _extract_plain_text,
    FileKind.IMAGE: _prepare_image,
    FileKind.UNSUPPORTED: _skip_unsupported,
}


def extract_file(
    file: UploadedFile,
    settings: PipelineSettings | None = None,
    ocr_chain: OcrChain | None = None,
) -> ExtractionRecord:
    """Turn one upload into an extraction record; never raises for bad content."""

    settings = settings or PipelineSettings()
    ocr_chain = ocr_chain or build_ocr_chain(settings)
    name = file.name or "file"
    extension = file_extension(name)
    kind = classify_extension(extension)
    record = ExtractionRecord(name=name, extension=extension, kind=kind, text="", size=file.size)
    logger.info("Processing file: %s (%s, %s bytes)", name, extension or "no extension", file.size)

    if file.size > settings.max_file_bytes:
        message = f"File exceeds the {settings.max_file_bytes // 1024} KB upload limit"
        logger.warning("Skipping %s: %s", name, message)
        return replace(record, error=message)

    try:
        return EXTRACTORS[kind](file, record, settings, ocr_chain)
    except DocqaError as exc:
        logger.warning("Error extracting from %s: %s", name, exc)
        return replace(record, text="", error=str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected failure extracting from %s", name)
        return replace(record, text="", error=f"Extraction failed: {exc}")


def extract_files(
    files: Sequence[UploadedFile],
    settings: PipelineSettings | None = None,
    ocr_chain: OcrChain | None = None,
) -> list[ExtractionRecord]:
    """Extract every upload concurrently; records come back in upload order."""

    if not files:
        return []

    settings = settings or PipelineSettings()
    ocr_chain = ocr_chain or build_ocr_chain(settings)
    workers = max(1, min(settings.max_workers, len(files)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="docqa-extract") as executor:
        return list(executor.map(lambda item: extract_file(item, settings, ocr_chain), files))
