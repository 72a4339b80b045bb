from __future__ import annotations

import logging
from typing import Sequence

from docqa.aggregation import aggregate_records
from docqa.extraction import UploadedFile, extract_files
from docqa.llm_provider import PostJson
from docqa.ocr import OcrChain
from docqa.settings import PipelineSettings, load_settings
from docqa.synthesis import SynthesisResponse, synthesize_answer

logger = logging.getLogger(__name__)


def ask_with_files(
    question: str,
    files: Sequence[UploadedFile],
    settings: PipelineSettings | None = None,
    *,
    identity: str | None = None,
    ocr_chain: OcrChain | None = None,
    post: PostJson | None = None,
) -> SynthesisResponse:
    """Extract every upload, aggregate the usable content and answer the question.

    Per-file problems end up in the returned file summaries. Only a failed
    answering-service call raises (``SynthesisFailed``).
    """

    settings = settings or load_settings()
    logger.info("Processing %s files for user %s", len(files), identity or "anonymous")

    records = extract_files(files, settings, ocr_chain)
    context = aggregate_records(records, settings.max_chars_per_file)
    logger.info(
        "Combined text length: %s characters, image parts: %s",
        len(context.text),
        len(context.images),
    )

    return synthesize_answer(question or "", records, context, settings, post=post)
