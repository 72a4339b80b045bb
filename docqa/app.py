from __future__ import annotations

import logging
import os

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docqa.errors import DocqaError, SynthesisFailed
from docqa.extraction import UploadedFile
from docqa.format_detection import FileKind, classify_filename, file_extension
from docqa.ocr import build_ocr_chain
from docqa.pdf_extraction import extract_pdf
from docqa.pipeline import ask_with_files
from docqa.schema_models import OcrResponseModel, validate_ask_response_payload
from docqa.settings import PipelineSettings, load_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Document Question Answering API")


API_PREFIX = os.getenv("DOCQA_API_PREFIX", "/api").rstrip("/")


@app.middleware("http")
async def strip_api_prefix(request, call_next):
    """Serve every route under both `/route` and `{API_PREFIX}/route`."""
    path = request.scope.get("path", "")
    if API_PREFIX and path.startswith(f"{API_PREFIX}/"):
        request.scope["path"] = path[len(API_PREFIX):]
    return await call_next(request)


DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"
CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("DOCQA_CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_settings() -> PipelineSettings:
    return load_settings()


def require_identity(x_user_id: str | None = Header(default=None)) -> str:
    """Identity asserted by the upstream auth layer."""
    identity = (x_user_id or "").strip()
    if not identity:
        raise HTTPException(status_code=401, detail="Authentication required")
    return identity


async def _read_upload(upload: UploadFile) -> UploadedFile:
    content = await upload.read()
    return UploadedFile(name=upload.filename or "file", content=content, content_type=upload.content_type)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.post("/uploads/ask")
async def ask_with_uploads(
    files: list[UploadFile] | None = File(default=None),
    question: str = Form(""),
    identity: str = Depends(require_identity),
    settings: PipelineSettings = Depends(get_settings),
):
    if not files:
        return JSONResponse(status_code=400, content={"error": "No files uploaded"})

    uploads = [await _read_upload(item) for item in files]

    try:
        response = await run_in_threadpool(ask_with_files, question, uploads, settings, identity=identity)
    except SynthesisFailed as exc:
        logger.error("Answer synthesis failed for user %s: %s", identity, exc)
        return JSONResponse(status_code=500, content={"error": "Failed to process files", "details": str(exc)})
    except Exception as exc:  # noqa: BLE001
        logger.exception("ask_with_uploads failed for user %s", identity)
        return JSONResponse(status_code=500, content={"error": "Failed to process files", "details": str(exc)})

    return validate_ask_response_payload(response.to_dict())


@app.post("/uploads/ocr")
async def ocr_upload(
    file: UploadFile = File(...),
    identity: str = Depends(require_identity),
    settings: PipelineSettings = Depends(get_settings),
):
    upload = await _read_upload(file)
    kind = classify_filename(upload.name)
    extension = file_extension(upload.name)

    if kind not in {FileKind.IMAGE, FileKind.PDF}:
        return JSONResponse(
            status_code=415,
            content={"error": f"OCR supports images and PDFs only, got '{extension or 'unknown'}'."},
        )
    if not upload.content:
        return JSONResponse(status_code=400, content={"error": "Empty uploads are not allowed."})
    if upload.size > settings.max_file_bytes:
        return JSONResponse(
            status_code=413,
            content={"error": f"File exceeds the {settings.max_file_bytes // 1024} KB upload limit"},
        )

    if kind is FileKind.PDF:
        try:
            pdf = await run_in_threadpool(extract_pdf, upload.content)
        except DocqaError as exc:
            return JSONResponse(status_code=400, content={"error": str(exc)})
        if not pdf.is_scanned:
            return OcrResponseModel(
                name=upload.name,
                type=extension,
                text=pdf.text,
                textLength=len(pdf.text),
                source="pdf_text",
            ).model_dump()

    logger.info("Running OCR for %s on behalf of user %s", upload.name, identity)
    chain = build_ocr_chain(settings)
    result = await run_in_threadpool(chain.run_with_diagnostics, upload.content, upload.name)
    return OcrResponseModel(
        name=upload.name,
        type=extension,
        text=result.text,
        textLength=len(result.text),
        source=result.source,
        warnings=result.diagnostics,
    ).model_dump()
