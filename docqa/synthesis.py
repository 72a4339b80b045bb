from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Sequence

from docqa.aggregation import AggregatedContext
from docqa.errors import SynthesisFailed
from docqa.extraction import ExtractionRecord, ImagePart
from docqa.llm_provider import PostJson, gemini_endpoint, generate_multimodal_with_gemini
from docqa.settings import PipelineSettings

logger = logging.getLogger(__name__)

ANSWER_INSTRUCTIONS = (
    "Please provide a detailed and accurate answer based on the uploaded content. "
    "For math problems in images, transcribe the problem first, then show step-by-step solutions with proper formatting. "
    "For images with diagrams or handwriting, describe what you see before answering."
)

NO_CONTENT_CAUSES = (
    "1. **Scanned PDF**: The PDF contains images/scans rather than selectable text\n"
    "2. **Encrypted PDF**: The PDF is password protected or encrypted\n"
    "3. **Corrupted file**: The file may be damaged\n"
    "4. **Unsupported format**: The file format isn't supported for text extraction"
)


class PromptMode(str, Enum):
    IMAGE_ONLY = "image_only"
    MIXED = "mixed"
    TEXT_ONLY = "text_only"


@dataclass(frozen=True)
class FileSummary:
    name: str
    type: str
    size: int
    textLength: int
    error: str | None

    @classmethod
    def from_record(cls, record: ExtractionRecord) -> "FileSummary":
        return cls(
            name=record.name,
            type=record.extension,
            size=record.size,
            textLength=record.text_length,
            error=record.error or None,
        )


@dataclass
class SynthesisResponse:
    extracted: str
    answer: str | None
    files: list[FileSummary]
    error: str | None = None

    def to_dict(self) -> dict:
        payload = {
            "extracted": self.extracted,
            "answer": self.answer,
            "files": [asdict(item) for item in self.files],
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class SynthesisRequest:
    prompt: str
    images: list[ImagePart] = field(default_factory=list)
    generation_config: dict[str, Any] = field(default_factory=dict)

    def parts(self) -> list[dict[str, Any]]:
        parts: list[dict[str, Any]] = [{"text": self.prompt}]
        for image in self.images:
            parts.append({"inlineData": {"mimeType": image.mime_type, "data": image.data}})
        return parts

    def to_payload(self) -> dict[str, Any]:
        return {
            "contents": [{"parts": self.parts()}],
            "generationConfig": dict(self.generation_config),
        }


def select_prompt_mode(context: AggregatedContext) -> PromptMode:
    if context.images and not context.has_text:
        return PromptMode.IMAGE_ONLY
    if context.images:
        return PromptMode.MIXED
    return PromptMode.TEXT_ONLY


def build_prompt(question: str, context: AggregatedContext) -> str:
    mode = select_prompt_mode(context)
    image_count = len(context.images)

    if mode is PromptMode.IMAGE_ONLY:
        prompt = (
            f"I have uploaded {image_count} image(s) for analysis. "
            "Please examine them carefully and answer my question.\n\n"
        )
    elif mode is PromptMode.MIXED:
        prompt = (
            f"I have uploaded files with both text and images:\n\n{context.text}\n\n"
            f"I have also uploaded {image_count} image(s). Please analyze everything carefully.\n\n"
        )
    elif context.has_text:
        prompt = f"I have uploaded the following files with extracted text:\n\n{context.text}\n\n"
    else:
        prompt = ""

    return f"{prompt}Question: {question}\n\n{ANSWER_INSTRUCTIONS}"


def build_synthesis_request(question: str, context: AggregatedContext, settings: PipelineSettings) -> SynthesisRequest:
    return SynthesisRequest(
        prompt=build_prompt(question, context),
        images=list(context.images),
        generation_config=settings.generation_config(),
    )


def no_content_error(records: Sequence[ExtractionRecord]) -> str:
    details = "; ".join(f"{record.name}: {record.error or record.info or 'Unknown error'}" for record in records)
    return f"No content could be extracted from the uploaded files. Details: {details}"


def no_content_answer(records: Sequence[ExtractionRecord]) -> str:
    file_lines = "\n".join(
        f"• {record.name} ({record.extension}, {record.size / 1024:.1f}KB): {record.error or record.info or 'No text found'}"
        for record in records
    )
    return (
        "I couldn't extract any readable content from the uploaded files. This might be because:\n\n"
        f"{NO_CONTENT_CAUSES}\n\n"
        f"File analysis:\n{file_lines}\n\n"
        "For scanned PDFs, you might need to use OCR (Optical Character Recognition) tools to extract the text first."
    )


def synthesize_answer(
    question: str,
    records: Sequence[ExtractionRecord],
    context: AggregatedContext,
    settings: PipelineSettings,
    *,
    post: PostJson | None = None,
) -> SynthesisResponse:
    response = SynthesisResponse(
        extracted=context.text,
        answer=None,
        files=[FileSummary.from_record(record) for record in records],
    )

    if not context.has_content:
        logger.info("No text or images extracted from any of %s files", len(records))
        response.error = no_content_error(records)
        response.answer = no_content_answer(records)
        return response

    if not settings.has_gemini_key:
        logger.info("No Gemini API key configured; returning extracted text only")
        return response

    request = build_synthesis_request(question, context, settings)
    logger.info(
        "Sending %s parts to Gemini (%s mode, %s images)",
        len(request.parts()),
        select_prompt_mode(context).value,
        len(request.images),
    )
    result = generate_multimodal_with_gemini(
        endpoint=gemini_endpoint(settings.gemini_endpoint, settings.gemini_model, settings.gemini_api_key or ""),
        payload=request.to_payload(),
        timeout=settings.request_timeout_seconds,
        post=post,
    )

    if result.status == "error":
        message = result.warnings[0] if result.warnings else "Gemini request failed."
        raise SynthesisFailed(message)

    if result.status != "success":
        logger.error("No text in Gemini response: %s", (result.raw_response or "")[:500])
        return response

    response.answer = result.raw_response
    logger.info("Generated answer length: %s characters", len(response.answer or ""))
    return response
