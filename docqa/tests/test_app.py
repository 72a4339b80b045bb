import unittest
from unittest.mock import patch
from urllib import error

from fastapi.testclient import TestClient

from docqa.app import app, get_settings
from docqa.settings import PipelineSettings
from docqa.tests.sample_documents import build_png_bytes, build_text_pdf_bytes

AUTH_HEADERS = {"X-User-Id": "user-123"}


class _AppTestCase(unittest.TestCase):
    settings = PipelineSettings()

    def setUp(self):
        app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()


class TestHealth(_AppTestCase):
    def test_health_endpoint_ok(self):
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_api_prefix_alias(self):
        response = self.client.get("/api/health")

        self.assertEqual(response.status_code, 200)

    def test_prefix_must_be_a_whole_path_segment(self):
        response = self.client.get("/apiary/health")

        self.assertEqual(response.status_code, 404)

    def test_configured_prefix_is_stripped(self):
        with patch("docqa.app.API_PREFIX", "/v1"):
            self.assertEqual(self.client.get("/v1/health").status_code, 200)
            self.assertEqual(self.client.get("/api/health").status_code, 404)


class TestAskEndpoint(_AppTestCase):
    def test_text_upload_without_credential(self):
        response = self.client.post(
            "/uploads/ask",
            files=[("files", ("file.txt", b"hello world", "text/plain"))],
            data={"question": "what does this say?"},
            headers=AUTH_HEADERS,
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "extracted": "--- file.txt (txt) ---\nhello world",
                "answer": None,
                "files": [{"name": "file.txt", "type": "txt", "size": 11, "textLength": 11, "error": None}],
            },
        )

    def test_requires_identity(self):
        response = self.client.post(
            "/uploads/ask",
            files=[("files", ("file.txt", b"hello", "text/plain"))],
            data={"question": "q"},
        )

        self.assertEqual(response.status_code, 401)

    def test_rejects_request_without_files(self):
        response = self.client.post("/uploads/ask", data={"question": "q"}, headers=AUTH_HEADERS)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "No files uploaded"})

    def test_partial_failures_are_reported_per_file(self):
        response = self.client.post(
            "/uploads/ask",
            files=[
                ("files", ("bad.pdf", b"not a pdf", "application/pdf")),
                ("files", ("good.txt", b"fine", "text/plain")),
            ],
            data={"question": "q"},
            headers=AUTH_HEADERS,
        )

        payload = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["name"] for item in payload["files"]], ["bad.pdf", "good.txt"])
        self.assertIn("missing %PDF header", payload["files"][0]["error"])
        self.assertEqual(payload["extracted"], "--- good.txt (txt) ---\nfine")
        self.assertNotIn("error", payload)

    def test_synthesis_failure_returns_server_error(self):
        self.settings = PipelineSettings(gemini_api_key="test-key")

        with patch("docqa.llm_provider._post_json", side_effect=error.URLError("connection refused")):
            response = self.client.post(
                "/uploads/ask",
                files=[("files", ("file.txt", b"hello world", "text/plain"))],
                data={"question": "q"},
                headers=AUTH_HEADERS,
            )

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Failed to process files")
        self.assertIn("connection refused", response.json()["details"])

    def test_answer_is_returned_with_credential(self):
        self.settings = PipelineSettings(gemini_api_key="test-key")
        gemini_payload = {"candidates": [{"content": {"parts": [{"text": "It says hello."}]}}]}

        with patch("docqa.llm_provider._post_json", return_value=gemini_payload):
            response = self.client.post(
                "/uploads/ask",
                files=[("files", ("file.txt", b"hello world", "text/plain"))],
                data={"question": "what does this say?"},
                headers=AUTH_HEADERS,
            )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["answer"], "It says hello.")


class TestOcrEndpoint(_AppTestCase):
    def test_image_is_ocred_with_local_fallback(self):
        with patch("docqa.ocr.pytesseract.image_to_string", return_value="receipt total 12.50"):
            response = self.client.post(
                "/uploads/ocr",
                files={"file": ("receipt.png", build_png_bytes(), "image/png")},
                headers=AUTH_HEADERS,
            )

        payload = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(payload["text"], "receipt total 12.50")
        self.assertEqual(payload["source"], "tesseract")
        self.assertTrue(any("no API key" in warning for warning in payload["warnings"]))

    def test_pdf_with_text_layer_skips_ocr(self):
        with patch("docqa.ocr.pytesseract.image_to_string") as mocked:
            response = self.client.post(
                "/uploads/ocr",
                files={"file": ("report.pdf", build_text_pdf_bytes("Hello PDF"), "application/pdf")},
                headers=AUTH_HEADERS,
            )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["source"], "pdf_text")
        self.assertIn("Hello PDF", response.json()["text"])
        mocked.assert_not_called()

    def test_invalid_pdf_is_rejected(self):
        response = self.client.post(
            "/uploads/ocr",
            files={"file": ("report.pdf", b"nope", "application/pdf")},
            headers=AUTH_HEADERS,
        )

        self.assertEqual(response.status_code, 400)

    def test_unsupported_type_is_rejected(self):
        response = self.client.post(
            "/uploads/ocr",
            files={"file": ("notes.txt", b"text", "text/plain")},
            headers=AUTH_HEADERS,
        )

        self.assertEqual(response.status_code, 415)


if __name__ == "__main__":
    unittest.main()
