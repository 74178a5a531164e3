"""Tests for the step-by-step OCR diagnostic."""

import asyncio
import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np

from invoice_ocr.analysis.analyzer import DocumentAnalyzer
from invoice_ocr.analysis.diagnostic import LARGE_FILE_BYTES, OCRDiagnostic, StepStatus
from invoice_ocr.analysis.documents import DocumentType, MediaType, SourceDocument
from invoice_ocr.analysis.errors import InitializationFailure
from invoice_ocr.ocr.adapter import OCRAdapter
from invoice_ocr.ocr.tesseract_engine import TesseractEngine
from invoice_ocr.preprocessing.pipeline import RasterImage
from invoice_ocr.utils.config import AppConfig, PreflightConfig


def _analyzer(factory: MagicMock, config: AppConfig | None = None) -> DocumentAnalyzer:
    preprocessor = MagicMock()
    preprocessor.process = AsyncMock(
        return_value=RasterImage.from_array(np.zeros((50, 50), dtype=np.uint8))
    )
    return DocumentAnalyzer(
        config,
        ocr_adapter=OCRAdapter(engine_factory=factory),
        preprocessor=preprocessor,
        today=datetime.date(2024, 6, 1),
    )


def _engine(text: str) -> MagicMock:
    engine = MagicMock(spec=TesseractEngine)
    engine.extract_text.return_value = text
    engine.extract_confidence.return_value = 80.0
    return engine


def _steps_by_name(steps) -> dict[str, list]:
    grouped: dict[str, list] = {}
    for step in steps:
        grouped.setdefault(step.step, []).append(step)
    return grouped


class TestOCRDiagnostic:
    """Tests for the OCRDiagnostic class."""

    def test_full_success(self, mcdonalds_text: str, png_document: SourceDocument) -> None:
        diagnostic = OCRDiagnostic(_analyzer(MagicMock(return_value=_engine(mcdonalds_text))))

        steps = asyncio.run(diagnostic.run(png_document, DocumentType.PURCHASE))

        assert [s.step for s in steps] == [
            "file-check",
            "ocr-init",
            "text-extraction",
            "pattern-company",
            "pattern-date",
            "pattern-amount",
            "filename-generation",
        ]
        assert all(s.status == StepStatus.SUCCESS for s in steps)
        extraction = steps[2]
        assert extraction.data["fileName"] == "Ach_mcdonalds.pdf"
        assert diagnostic.summary() == {"success": 7, "warning": 0, "error": 0}

    def test_missing_fields_are_warnings(self, png_document: SourceDocument) -> None:
        diagnostic = OCRDiagnostic(_analyzer(MagicMock(return_value=_engine("Total: 12.00€"))))

        steps = _steps_by_name(asyncio.run(diagnostic.run(png_document)))

        assert steps["pattern-amount"][0].status == StepStatus.SUCCESS
        assert steps["pattern-company"][0].status == StepStatus.WARNING
        assert steps["pattern-date"][0].status == StepStatus.WARNING
        assert steps["filename-generation"][0].status == StepStatus.WARNING

    @patch("invoice_ocr.analysis.analyzer.asyncio.sleep", new_callable=AsyncMock)
    def test_engine_failure_reported(
        self, mock_sleep: AsyncMock, png_document: SourceDocument
    ) -> None:
        factory = MagicMock(side_effect=InitializationFailure("tesseract missing"))
        diagnostic = OCRDiagnostic(_analyzer(factory))

        steps = _steps_by_name(asyncio.run(diagnostic.run(png_document)))

        assert steps["ocr-init"][0].status == StepStatus.ERROR
        assert "tesseract missing" in steps["ocr-init"][0].message
        # The analyzer itself degrades instead of raising.
        assert steps["text-extraction"][0].status == StepStatus.SUCCESS
        assert steps["text-extraction"][0].data["fileName"] == "Ach_document.pdf"

    def test_invalid_pdf_signature(self) -> None:
        diagnostic = OCRDiagnostic(_analyzer(MagicMock(return_value=_engine("x"))))
        document = SourceDocument(b"not a pdf", MediaType.PDF, name="broken.pdf")

        asyncio.run(diagnostic.run(document))

        file_check = diagnostic.steps[0]
        assert file_check.step == "file-check"
        assert file_check.status == StepStatus.ERROR

    def test_empty_file(self) -> None:
        diagnostic = OCRDiagnostic(_analyzer(MagicMock(return_value=_engine("x"))))
        asyncio.run(diagnostic.run(SourceDocument(b"", MediaType.PNG)))
        assert diagnostic.steps[0].status == StepStatus.ERROR
        assert diagnostic.steps[0].message == "File is empty"

    def test_large_file_warning(self, mcdonalds_text: str) -> None:
        diagnostic = OCRDiagnostic(_analyzer(MagicMock(return_value=_engine(mcdonalds_text))))
        document = SourceDocument(b"\x00" * (LARGE_FILE_BYTES + 1), MediaType.PNG)

        steps = _steps_by_name(asyncio.run(diagnostic.run(document)))

        statuses = [s.status for s in steps["file-check"]]
        assert statuses == [StepStatus.WARNING, StepStatus.SUCCESS]

    def test_preflight_rejection_reported(self, mcdonalds_text: str) -> None:
        config = AppConfig(preflight=PreflightConfig(max_file_size_bytes=10))
        diagnostic = OCRDiagnostic(
            _analyzer(MagicMock(return_value=_engine(mcdonalds_text)), config)
        )

        steps = _steps_by_name(asyncio.run(diagnostic.run(SourceDocument(b"\x00" * 20, MediaType.PNG))))

        assert steps["text-extraction"][0].status == StepStatus.ERROR
        assert "pattern-company" not in steps
