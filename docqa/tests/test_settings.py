import unittest
from unittest.mock import patch

from docqa.settings import DEFAULT_GEMINI_ENDPOINT, PipelineSettings, load_settings


class TestLoadSettings(unittest.TestCase):
    def test_defaults_without_environment(self):
        with patch.dict("os.environ", {}, clear=True):
            settings = load_settings()

        self.assertIsNone(settings.gemini_api_key)
        self.assertFalse(settings.has_gemini_key)
        self.assertFalse(settings.has_ocr_space_key)
        self.assertEqual(settings.gemini_model, "gemini-2.5-flash")
        self.assertEqual(settings.gemini_endpoint, DEFAULT_GEMINI_ENDPOINT)
        self.assertEqual(settings.max_chars_per_file, 20_000)
        self.assertEqual(settings.max_file_bytes, 5 * 1024 * 1024)
        self.assertFalse(settings.ocr_scanned_pdfs)

    def test_reads_environment_overrides(self):
        env = {
            "GEMINI_API_KEY": " gem-key ",
            "GEMINI_MODEL": "gemini-test",
            "OCR_SPACE_API_KEY": "ocr-key",
            "DOCQA_OCR_SCANNED_PDFS": "true",
            "DOCQA_MAX_CHARS_PER_FILE": "500",
            "DOCQA_MAX_WORKERS": "0",
            "DOCQA_REQUEST_TIMEOUT_SECONDS": "12.5",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = load_settings()

        self.assertEqual(settings.gemini_api_key, "gem-key")
        self.assertEqual(settings.gemini_model, "gemini-test")
        self.assertTrue(settings.has_ocr_space_key)
        self.assertTrue(settings.ocr_scanned_pdfs)
        self.assertEqual(settings.max_chars_per_file, 500)
        self.assertEqual(settings.max_workers, 1)
        self.assertEqual(settings.request_timeout_seconds, 12.5)

    def test_invalid_numbers_keep_defaults(self):
        with patch.dict("os.environ", {"DOCQA_MAX_CHARS_PER_FILE": "lots"}, clear=True):
            self.assertEqual(load_settings().max_chars_per_file, 20_000)

    def test_generation_config_is_fixed(self):
        self.assertEqual(
            PipelineSettings().generation_config(),
            {"temperature": 0.4, "topK": 32, "topP": 1.0, "maxOutputTokens": 8192},
        )


if __name__ == "__main__":
    unittest.main()
