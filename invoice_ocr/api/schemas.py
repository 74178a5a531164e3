"""Pydantic response schemas for the FastAPI endpoints."""

import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from invoice_ocr.analysis.documents import ExtractionResult


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConfidenceResponse(_CamelModel):
    """Per-field confidence scores in [0, 100]."""

    company_name: int
    date: int
    amount: int


class AnalysisResponse(_CamelModel):
    """Response schema for a document analysis request.

    Absent fields are omitted from the serialized response.
    """

    company_name: str | None = None
    date: datetime.date | None = None
    amount: float | None = None
    file_name: str
    confidence: ConfidenceResponse

    @classmethod
    def from_result(cls, result: ExtractionResult) -> "AnalysisResponse":
        return cls(
            company_name=result.company_name,
            date=result.date,
            amount=float(result.amount) if result.amount is not None else None,
            file_name=result.file_name,
            confidence=ConfidenceResponse(
                company_name=result.confidence.company_name,
                date=result.confidence.date,
                amount=result.confidence.amount,
            ),
        )


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
