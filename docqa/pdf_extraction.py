from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from pypdf import PdfReader

from docqa.errors import ExtractionFailed, MalformedInput

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"
SCANNED_PDF_INFO = (
    "This appears to be a scanned PDF or image-based PDF. No text could be extracted automatically. "
    "Consider uploading as images instead for better analysis."
)


@dataclass(frozen=True)
class PdfExtraction:
    text: str
    is_scanned: bool
    pages: int
    info: str | None = None


def validate_pdf_bytes(content: bytes) -> None:
    if not content:
        raise MalformedInput("Empty or invalid buffer")
    if not content[:4].startswith(PDF_SIGNATURE):
        raise MalformedInput("File does not appear to be a valid PDF (missing %PDF header)")


def extract_pdf(content: bytes) -> PdfExtraction:
    """Extract the text layer of a PDF.

    A document that parses but yields no text is reported as scanned rather
    than failed, so callers can decide whether to run OCR on it.
    """

    validate_pdf_bytes(content)
    logger.debug("Parsing PDF of %s bytes", len(content))

    try:
        reader = PdfReader(io.BytesIO(content))
        page_count = len(reader.pages)
        page_texts: list[str] = []
        for page in reader.pages:
            page_text = page.extract_text() or ""
            if page_text:
                page_texts.append(page_text)
    except Exception as exc:  # noqa: BLE001
        raise ExtractionFailed(f"PDF parsing failed: {exc}") from exc

    text = "\n".join(page_texts)
    logger.info("Parsed PDF: %s pages, %s characters", page_count, len(text))

    if not text.strip():
        logger.warning("No text extracted from PDF; it is probably scanned or image-only")
        return PdfExtraction(text="", is_scanned=True, pages=page_count, info=SCANNED_PDF_INFO)

    return PdfExtraction(text=text, is_scanned=False, pages=page_count)
