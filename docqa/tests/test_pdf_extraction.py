import unittest
from unittest.mock import patch

from docqa.errors import ExtractionFailed, MalformedInput
from docqa.pdf_extraction import SCANNED_PDF_INFO, extract_pdf
from docqa.tests.sample_documents import build_blank_pdf_bytes, build_text_pdf_bytes


class TestPdfExtraction(unittest.TestCase):
    def test_extracts_text_layer(self):
        result = extract_pdf(build_text_pdf_bytes("Quarterly revenue"))

        self.assertFalse(result.is_scanned)
        self.assertEqual(result.pages, 1)
        self.assertIn("Quarterly revenue", result.text)

    def test_blank_pdf_is_reported_as_scanned(self):
        result = extract_pdf(build_blank_pdf_bytes(pages=2))

        self.assertTrue(result.is_scanned)
        self.assertEqual(result.text, "")
        self.assertEqual(result.pages, 2)
        self.assertEqual(result.info, SCANNED_PDF_INFO)

    def test_empty_buffer_is_malformed(self):
        with self.assertRaises(MalformedInput):
            extract_pdf(b"")

    def test_missing_signature_is_malformed(self):
        with self.assertRaises(MalformedInput) as ctx:
            extract_pdf(b"PK\x03\x04 not a pdf")
        self.assertIn("%PDF", str(ctx.exception))

    def test_parser_errors_become_extraction_failed(self):
        with patch("docqa.pdf_extraction.PdfReader", side_effect=ValueError("broken xref")):
            with self.assertRaises(ExtractionFailed) as ctx:
                extract_pdf(b"%PDF-1.7 broken")

        self.assertEqual(str(ctx.exception), "PDF parsing failed: broken xref")
        self.assertNotIsInstance(ctx.exception, MalformedInput)


if __name__ == "__main__":
    unittest.main()
