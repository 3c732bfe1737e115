"""FastAPI application for the invoice OCR service.

Provides REST endpoints for extracting invoices from uploads or stored
URLs, batch extraction, provider listing, and health checks.
"""

import shutil
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from invoice_ocr.models import ExtractionOutcome, ImageRef
from invoice_ocr.orchestrator import FallbackOrchestrator, build_orchestrator
from invoice_ocr.utils.config import load_config
from invoice_ocr.utils.logger import get_logger

from .schemas import (
    BatchExtractionResponse,
    BatchItemResponse,
    ExtractionResponse,
    HealthResponse,
    InvoiceFieldsResponse,
    ProviderInfo,
    ProviderName,
    ProvidersResponse,
    UrlExtractionRequest,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

_orchestrator: FallbackOrchestrator | None = None


def _get_orchestrator() -> FallbackOrchestrator:
    """Return the process-wide orchestrator, building it on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator(load_config())
    return _orchestrator


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    global _orchestrator
    yield
    if _orchestrator is not None:
        await _orchestrator.aclose()
        _orchestrator = None
        logger.info("Orchestrator closed")


app = FastAPI(
    title="Invoice OCR API",
    description="Extract normalized fields from Chinese VAT invoice images",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/tiff",
    "image/bmp",
    "image/webp",
    "application/octet-stream",
}


def _to_response(
    outcome: ExtractionOutcome,
    start_time: float,
    filename: str | None = None,
    task_id: str | None = None,
) -> ExtractionResponse:
    data = (
        InvoiceFieldsResponse.model_validate(outcome.data.to_dict())
        if outcome.data is not None
        else None
    )
    return ExtractionResponse(
        success=outcome.success,
        document_id=str(uuid.uuid4()),
        filename=filename,
        task_id=task_id,
        data=data,
        error=outcome.error,
        raw_text=outcome.raw_text,
        confidence=outcome.confidence,
        provider=outcome.provider,
        recognition_confidence=outcome.recognition_confidence,
        processing_time_ms=(time.time() - start_time) * 1000,
    )


async def _extract_upload(file: UploadFile, provider: ProviderName) -> ExtractionResponse:
    start_time = time.time()

    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    mime_type = file.content_type if file.content_type != "application/octet-stream" else None
    image_ref = ImageRef(data=content, mime_type=mime_type)
    outcome = await _get_orchestrator().extract_invoice(image_ref, provider.value)
    return _to_response(outcome, start_time, filename=file.filename)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
        providers=list(_get_orchestrator().priority),
    )


@app.get("/providers", response_model=ProvidersResponse)
async def list_providers() -> ProvidersResponse:
    """List configured providers in fallback order."""
    orchestrator = _get_orchestrator()
    return ProvidersResponse(
        providers=[
            ProviderInfo(
                name=name,
                kind=provider.kind.value,
                available=provider.is_available(),
                priority=(
                    orchestrator.priority.index(name) + 1
                    if name in orchestrator.priority
                    else None
                ),
            )
            for name, provider in orchestrator.providers.items()
        ]
    )


@app.post("/extract", response_model=ExtractionResponse)
async def extract_invoice(
    file: Annotated[UploadFile, File(...)],
    provider: Annotated[ProviderName, Query()] = ProviderName.AUTO,
) -> ExtractionResponse:
    """Extract invoice fields from an uploaded image.

    Args:
        file: Uploaded invoice image (PNG, JPEG, TIFF, BMP or WebP).
        provider: ``auto`` for fallback, or one provider name.

    Returns:
        The extraction outcome. A failed extraction is still a 200
        response with ``success`` false.
    """
    return await _extract_upload(file, provider)


@app.post("/extract/url", response_model=ExtractionResponse)
async def extract_invoice_url(request: UrlExtractionRequest) -> ExtractionResponse:
    """Extract invoice fields from an image stored behind a URL."""
    start_time = time.time()
    logger.info("Extraction requested for task %s", request.task_id or "-")
    outcome = await _get_orchestrator().extract_invoice(
        ImageRef(url=request.file_url), request.provider.value
    )
    return _to_response(
        outcome, start_time, filename=request.file_name, task_id=request.task_id
    )


@app.post("/extract/batch", response_model=BatchExtractionResponse)
async def extract_batch(
    files: Annotated[list[UploadFile], File(...)],
    provider: Annotated[ProviderName, Query()] = ProviderName.AUTO,
) -> BatchExtractionResponse:
    """Extract invoice fields from multiple uploaded images.

    Args:
        files: Uploaded invoice images.
        provider: Provider selection applied to every file.

    Returns:
        Batch results with per-file outcomes.
    """
    results: list[BatchItemResponse] = []
    successful = 0

    for file in files:
        filename = file.filename or "unknown"
        try:
            result = await _extract_upload(file, provider)
        except HTTPException as exc:
            results.append(BatchItemResponse(filename=filename, error=str(exc.detail)))
            continue

        results.append(
            BatchItemResponse(filename=filename, result=result, error=result.error)
        )
        if result.success:
            successful += 1

    return BatchExtractionResponse(
        success=successful > 0,
        total_documents=len(files),
        successful=successful,
        failed=len(files) - successful,
        results=results,
    )
