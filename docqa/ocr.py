"""Two-tier OCR: the hosted OCR.space API first, local Tesseract second.

The chain is total. Whatever the hosted service or the local engine do, a
caller always gets a string back, possibly empty.
"""

from __future__ import annotations

import io
import logging
import mimetypes
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Sequence

import httpx
import pytesseract
from PIL import Image
from pypdf import PdfReader

from docqa.errors import OcrUnavailable
from docqa.pdf_extraction import PDF_SIGNATURE
from docqa.settings import PipelineSettings

logger = logging.getLogger(__name__)

PostForm = Callable[..., dict[str, Any]]


@dataclass(frozen=True)
class OcrOutcome:
    text: str
    diagnostic: str | None = None


@dataclass(frozen=True)
class OcrChainResult:
    text: str
    source: str | None
    diagnostics: list[str] = field(default_factory=list)


class OcrStrategy(Protocol):
    name: str

    def run(self, content: bytes, filename: str) -> OcrOutcome:
        ...


def _post_form(
    url: str,
    fields: dict[str, str],
    files: dict[str, tuple[str, bytes, str]],
    timeout: float = 60.0,
) -> dict[str, Any]:
    response = httpx.post(url, data=fields, files=files, timeout=timeout)
    response.raise_for_status()
    return response.json()


def _masked(api_key: str) -> str:
    return f"{api_key[:6]}..." if api_key else "none"


def _ocr_space_error(payload: dict[str, Any]) -> str | None:
    message = payload.get("ErrorMessage")
    if isinstance(message, list):
        message = "; ".join(str(item) for item in message if item)
    if isinstance(message, str) and message.strip():
        return message.strip()
    return None


def _status_error_message(exc: httpx.HTTPStatusError) -> str:
    response = exc.response
    try:
        detail = _ocr_space_error(response.json())
    except (ValueError, AttributeError):
        detail = None
    if detail is None:
        detail = (response.text or "").strip().replace("\n", " ")[:200]
    if detail:
        return f"OCR.Space returned HTTP {response.status_code}: {detail}"
    return f"OCR.Space returned HTTP {response.status_code}."


class HostedOcrStrategy:
    name = "ocr_space"

    def __init__(
        self,
        api_key: str | None,
        *,
        url: str,
        language: str = "eng",
        timeout: float = 60.0,
        post: PostForm | None = None,
    ):
        self.api_key = (api_key or "").strip()
        self.url = url
        self.language = language
        self.timeout = timeout
        self._post = post or _post_form

    def run(self, content: bytes, filename: str) -> OcrOutcome:
        if not self.api_key:
            raise OcrUnavailable("OCR.Space skipped: no API key configured.")

        logger.info("Calling OCR.Space for %s with key %s", filename, _masked(self.api_key))
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        try:
            payload = self._post(
                self.url,
                {"apikey": self.api_key, "language": self.language},
                {"file": (filename or "upload", content, content_type)},
                timeout=self.timeout,
            )
        except httpx.HTTPStatusError as exc:
            raise OcrUnavailable(_status_error_message(exc)) from exc
        except httpx.HTTPError as exc:
            raise OcrUnavailable(f"OCR.Space request failed: {exc}") from exc
        except ValueError as exc:
            raise OcrUnavailable(f"OCR.Space returned invalid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise OcrUnavailable("OCR.Space returned an unexpected payload.")

        results = payload.get("ParsedResults") or []
        texts = [str(item.get("ParsedText") or "") for item in results if isinstance(item, dict)]
        text = "\n".join(texts)
        if text.strip():
            return OcrOutcome(text=text)

        reason = _ocr_space_error(payload) or "OCR.Space returned no text."
        raise OcrUnavailable(reason)


def _pdf_page_images(content: bytes) -> list[Image.Image]:
    reader = PdfReader(io.BytesIO(content))
    images: list[Image.Image] = []
    for page in reader.pages:
        for embedded in page.images:
            images.append(embedded.image)
    return images


class LocalOcrStrategy:
    name = "tesseract"

    def __init__(self, language: str = "eng"):
        self.language = language

    def _recognize(self, image: Image.Image) -> str:
        return pytesseract.image_to_string(image, lang=self.language) or ""

    def run(self, content: bytes, filename: str) -> OcrOutcome:
        try:
            if content.startswith(PDF_SIGNATURE):
                texts = [self._recognize(image) for image in _pdf_page_images(content)]
                text = "\n".join(item for item in texts if item.strip())
            else:
                with Image.open(io.BytesIO(content)) as image:
                    text = self._recognize(image)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Tesseract OCR failed for %s: %s", filename, exc)
            return OcrOutcome(text="", diagnostic=f"Tesseract OCR failed: {exc}")

        logger.info("Tesseract OCR result for %s: %s", filename, text[:100] if text else "(empty)")
        return OcrOutcome(text=text)


class OcrChain:
    def __init__(self, strategies: Sequence[OcrStrategy]):
        self.strategies = list(strategies)

    def run_with_diagnostics(self, content: bytes, filename: str) -> OcrChainResult:
        diagnostics: list[str] = []
        last_text = ""
        last_source: str | None = None

        for strategy in self.strategies:
            try:
                outcome = strategy.run(content, filename)
            except OcrUnavailable as exc:
                logger.warning("OCR strategy %s unavailable for %s: %s", strategy.name, filename, exc)
                diagnostics.append(f"{strategy.name}: {exc}")
                continue
            except Exception as exc:  # noqa: BLE001
                logger.exception("OCR strategy %s crashed for %s", strategy.name, filename)
                diagnostics.append(f"{strategy.name}: {exc}")
                continue

            if outcome.diagnostic:
                diagnostics.append(f"{strategy.name}: {outcome.diagnostic}")
            last_text, last_source = outcome.text, strategy.name
            if outcome.text.strip():
                return OcrChainResult(text=outcome.text, source=strategy.name, diagnostics=diagnostics)

        return OcrChainResult(text=last_text, source=last_source, diagnostics=diagnostics)

    def run(self, content: bytes, filename: str) -> str:
        return self.run_with_diagnostics(content, filename).text


def build_ocr_chain(settings: PipelineSettings, *, post: PostForm | None = None) -> OcrChain:
    return OcrChain(
        [
            HostedOcrStrategy(
                settings.ocr_space_api_key,
                url=settings.ocr_space_url,
                language=settings.ocr_language,
                timeout=settings.request_timeout_seconds,
                post=post,
            ),
            LocalOcrStrategy(language=settings.ocr_language),
        ]
    )
