"""FastAPI application exposing the invoice analyzer over HTTP.

One ``DocumentAnalyzer`` is created when the application starts and
cleaned up on shutdown, so the OCR engine is shared across requests.
"""

import shutil
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from invoice_ocr import __version__
from invoice_ocr.analysis.analyzer import DocumentAnalyzer
from invoice_ocr.analysis.documents import DocumentType, MediaType, SourceDocument
from invoice_ocr.analysis.errors import PreflightRejection
from invoice_ocr.utils.config import load_config
from invoice_ocr.utils.logger import get_logger, setup_logging
from invoice_ocr.validation.preflight import FileTooLarge

from .schemas import AnalysisResponse, HealthResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config = load_config()
    setup_logging(config.log_level)
    app.state.analyzer = DocumentAnalyzer(config)
    logger.info("Invoice analyzer ready")
    try:
        yield
    finally:
        app.state.analyzer.cleanup()
        logger.info("Invoice analyzer released")


app = FastAPI(
    title="Invoice OCR API",
    description="Extract company name, date and amount from invoices and receipts",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _resolve_media_type(file: UploadFile) -> MediaType:
    """Determine the media type from the upload's content type or filename."""
    if file.content_type and file.content_type != "application/octet-stream":
        try:
            return MediaType.from_content_type(file.content_type)
        except ValueError:
            pass
    if file.filename:
        try:
            return MediaType.from_suffix(Path(file.filename).suffix)
        except ValueError:
            pass
    raise HTTPException(
        status_code=415,
        detail=f"Unsupported file type: {file.content_type or file.filename}",
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.post(
    "/analyze",
    response_model=AnalysisResponse,
    response_model_exclude_none=True,
)
async def analyze_document(
    request: Request,
    file: Annotated[UploadFile, File(...)],
    document_type: Annotated[DocumentType, Query()] = DocumentType.PURCHASE,
) -> AnalysisResponse:
    """Extract company name, date and amount from an uploaded invoice.

    Args:
        request: Incoming request, used to reach the shared analyzer.
        file: Uploaded document (PDF, JPEG or PNG).
        document_type: Purchase or sale, used for the filename prefix.

    Returns:
        The extracted fields, their confidences and the generated filename.
    """
    media_type = _resolve_media_type(file)
    content = await file.read()
    document = SourceDocument(
        content=content,
        media_type=media_type,
        name=file.filename or "document",
    )

    analyzer: DocumentAnalyzer = request.app.state.analyzer
    try:
        result = await analyzer.analyze(document, document_type)
    except FileTooLarge as exc:
        raise HTTPException(status_code=413, detail=exc.message) from exc
    except PreflightRejection as exc:
        raise HTTPException(status_code=415, detail=exc.message) from exc
    except Exception as exc:
        logger.error("Analysis of %s failed: %s", document.name, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return AnalysisResponse.from_result(result)
