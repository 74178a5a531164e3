"""Tests for the FastAPI REST endpoints."""

import datetime
from collections.abc import Iterator
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from invoice_ocr.analysis.documents import (
    DocumentType,
    ExtractionResult,
    FieldConfidence,
    MediaType,
)
from invoice_ocr.api.app import app
from invoice_ocr.validation.preflight import FileTooLarge, UnsupportedMediaType


def _result() -> ExtractionResult:
    return ExtractionResult(
        file_name="Ach_mcdonalds.pdf",
        company_name="Mcdonald's",
        date=datetime.date(2024, 1, 15),
        amount=Decimal("18.50"),
        confidence=FieldConfidence(company_name=100, date=85, amount=100),
    )


@pytest.fixture
def analyzer() -> MagicMock:
    mock = MagicMock()
    mock.analyze = AsyncMock(return_value=_result())
    return mock


@pytest.fixture
def client(analyzer: MagicMock) -> Iterator[TestClient]:
    """Create a FastAPI test client with a mocked analyzer."""
    with patch("invoice_ocr.api.app.DocumentAnalyzer", return_value=analyzer):
        with TestClient(app) as test_client:
            yield test_client


class TestHealth:
    """Tests for the /health endpoint."""

    def test_health(self, client: TestClient) -> None:
        with patch("invoice_ocr.api.app.shutil.which", return_value="/usr/bin/tesseract"):
            response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["tesseract_available"] is True


class TestAnalyze:
    """Tests for the /analyze endpoint."""

    def test_success(self, client: TestClient, analyzer: MagicMock) -> None:
        response = client.post(
            "/analyze",
            files={"file": ("receipt.png", b"\x89PNG fake", "image/png")},
            params={"document_type": "purchase"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "companyName": "Mcdonald's",
            "date": "2024-01-15",
            "amount": 18.5,
            "fileName": "Ach_mcdonalds.pdf",
            "confidence": {"companyName": 100, "date": 85, "amount": 100},
        }
        document, document_type = analyzer.analyze.await_args.args
        assert document.media_type == MediaType.PNG
        assert document.name == "receipt.png"
        assert document_type == DocumentType.PURCHASE

    def test_absent_fields_omitted(self, client: TestClient, analyzer: MagicMock) -> None:
        analyzer.analyze.return_value = ExtractionResult(file_name="Vte_document.pdf")

        response = client.post(
            "/analyze",
            files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
            params={"document_type": "sale"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "fileName": "Vte_document.pdf",
            "confidence": {"companyName": 0, "date": 0, "amount": 0},
        }

    def test_octet_stream_uses_filename(self, client: TestClient, analyzer: MagicMock) -> None:
        response = client.post(
            "/analyze",
            files={"file": ("scan.pdf", b"%PDF-1.4", "application/octet-stream")},
        )
        assert response.status_code == 200
        document, _ = analyzer.analyze.await_args.args
        assert document.media_type == MediaType.PDF

    def test_unsupported_media_type(self, client: TestClient, analyzer: MagicMock) -> None:
        response = client.post(
            "/analyze",
            files={"file": ("scan.gif", b"GIF89a", "image/gif")},
        )
        assert response.status_code == 415
        analyzer.analyze.assert_not_awaited()

    def test_invalid_document_type(self, client: TestClient) -> None:
        response = client.post(
            "/analyze",
            files={"file": ("receipt.png", b"\x89PNG", "image/png")},
            params={"document_type": "invoice"},
        )
        assert response.status_code == 422

    def test_oversize_is_413(self, client: TestClient, analyzer: MagicMock) -> None:
        analyzer.analyze.side_effect = FileTooLarge("File is too large")
        response = client.post(
            "/analyze",
            files={"file": ("receipt.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 413
        assert response.json()["detail"] == "File is too large"

    def test_preflight_media_type_is_415(self, client: TestClient, analyzer: MagicMock) -> None:
        analyzer.analyze.side_effect = UnsupportedMediaType()
        response = client.post(
            "/analyze",
            files={"file": ("receipt.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 415

    def test_unexpected_error_is_500(self, client: TestClient, analyzer: MagicMock) -> None:
        analyzer.analyze.side_effect = RuntimeError("boom")
        response = client.post(
            "/analyze",
            files={"file": ("receipt.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 500


class TestLifespan:
    """Tests for analyzer lifecycle management."""

    def test_analyzer_cleaned_up_on_shutdown(self, analyzer: MagicMock) -> None:
        with patch("invoice_ocr.api.app.DocumentAnalyzer", return_value=analyzer):
            with TestClient(app):
                analyzer.cleanup.assert_not_called()
        analyzer.cleanup.assert_called_once()
