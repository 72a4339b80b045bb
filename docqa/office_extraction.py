from __future__ import annotations

import csv
import io
import zipfile
from xml.etree import ElementTree as ET

from openpyxl import load_workbook

from docqa.errors import ExtractionFailed

WORD_NAMESPACE = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
MARKUP_COMPATIBILITY_FALLBACK = "{http://schemas.openxmlformats.org/markup-compatibility/2006}Fallback"


def _own_nodes(element: ET.Element):
    # Nested paragraphs (text boxes) are emitted as their own lines.
    for child in element:
        if child.tag in {f"{WORD_NAMESPACE}p", MARKUP_COMPATIBILITY_FALLBACK}:
            continue
        yield child
        yield from _own_nodes(child)


def _paragraphs(element: ET.Element):
    # Fallback blocks repeat the text of their Choice block for older readers.
    for child in element:
        if child.tag == MARKUP_COMPATIBILITY_FALLBACK:
            continue
        if child.tag == f"{WORD_NAMESPACE}p":
            yield child
        yield from _paragraphs(child)


def _paragraph_text(paragraph: ET.Element) -> str:
    pieces: list[str] = []
    for node in _own_nodes(paragraph):
        if node.tag == f"{WORD_NAMESPACE}t" and node.text:
            pieces.append(node.text)
        elif node.tag == f"{WORD_NAMESPACE}tab":
            pieces.append("\t")
        elif node.tag in {f"{WORD_NAMESPACE}br", f"{WORD_NAMESPACE}cr"}:
            pieces.append("\n")
    return "".join(pieces)


def extract_docx_text(content: bytes) -> str:
    """Return the raw text of a DOCX document, one line per paragraph."""

    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            xml_payload = archive.read("word/document.xml")
        root = ET.fromstring(xml_payload)
    except (zipfile.BadZipFile, KeyError, ET.ParseError) as exc:
        raise ExtractionFailed(f"DOCX parsing failed: {exc}") from exc

    paragraphs = [_paragraph_text(node) for node in _paragraphs(root)]
    return "\n".join(paragraphs).strip()


def _sheet_to_csv(rows) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


def extract_xlsx_text(content: bytes) -> str:
    """Render every worksheet as CSV, in workbook order, joined by newlines."""

    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:  # noqa: BLE001
        raise ExtractionFailed(f"XLSX parsing failed: {exc}") from exc

    try:
        sheets = [_sheet_to_csv(sheet.iter_rows(values_only=True)) for sheet in workbook.worksheets]
    except Exception as exc:  # noqa: BLE001
        raise ExtractionFailed(f"XLSX parsing failed: {exc}") from exc
    finally:
        workbook.close()

    return "\n".join(sheets)
