"""Step-by-step diagnostic of the OCR pipeline on a single document."""

import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from invoice_ocr.extraction.filename import is_default_file_name
from invoice_ocr.ocr.pdf_handler import has_pdf_signature
from invoice_ocr.utils.logger import get_logger

from .analyzer import DocumentAnalyzer
from .documents import DocumentType, MediaType, SourceDocument
from .errors import AnalysisError

logger = get_logger(__name__)

LARGE_FILE_BYTES = 10 * 1024 * 1024


class StepStatus(StrEnum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    StepStatus.SUCCESS: logging.INFO,
    StepStatus.WARNING: logging.WARNING,
    StepStatus.ERROR: logging.ERROR,
}


@dataclass
class DiagnosticStep:
    """Outcome of one diagnostic step."""

    step: str
    status: StepStatus
    message: str
    data: dict[str, Any] = field(default_factory=dict)


class OCRDiagnostic:
    """Runs the analyzer stage by stage and records what worked.

    Every step is recorded even when an earlier one failed, so a single
    run shows all the problems with a document.

    Args:
        analyzer: The analyzer under diagnosis.
    """

    def __init__(self, analyzer: DocumentAnalyzer) -> None:
        self.analyzer = analyzer
        self.steps: list[DiagnosticStep] = []

    async def run(
        self,
        document: SourceDocument,
        document_type: DocumentType = DocumentType.PURCHASE,
    ) -> list[DiagnosticStep]:
        """Diagnose ``document`` and return the recorded steps."""
        self.steps = []
        logger.info(
            "Diagnosing %s (%s, %.1f KB) as %s",
            document.name,
            document.media_type,
            document.size / 1024,
            document_type,
        )
        self._check_file(document)
        await self._check_ocr_init()
        await self._check_text_extraction(document, document_type)
        return self.steps

    def summary(self) -> dict[str, int]:
        """Count recorded steps per status."""
        counts = {status.value: 0 for status in StepStatus}
        for step in self.steps:
            counts[step.status.value] += 1
        return counts

    def _add(
        self,
        step: str,
        status: StepStatus,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.steps.append(DiagnosticStep(step, status, message, data or {}))
        logger.log(_LOG_LEVELS[status], "[%s] %s", step, message)

    def _check_file(self, document: SourceDocument) -> None:
        if document.size == 0:
            self._add("file-check", StepStatus.ERROR, "File is empty")
            return

        if document.size > LARGE_FILE_BYTES:
            self._add(
                "file-check",
                StepStatus.WARNING,
                f"Large file ({document.size / 1024 / 1024:.1f} MB), analysis may be slow",
            )

        try:
            media_type = MediaType(document.media_type)
        except ValueError:
            self._add(
                "file-check",
                StepStatus.ERROR,
                f"Unsupported file type: {document.media_type}",
            )
            return

        if media_type == MediaType.PDF and not has_pdf_signature(document.content):
            self._add("file-check", StepStatus.ERROR, "Corrupted or invalid PDF file")
            return

        self._add(
            "file-check",
            StepStatus.SUCCESS,
            f"Valid file: {document.name} ({media_type})",
            {
                "name": document.name,
                "type": str(media_type),
                "size": document.size,
                "size_kb": round(document.size / 1024),
            },
        )

    async def _check_ocr_init(self) -> None:
        start = time.perf_counter()
        try:
            await self.analyzer.ocr.initialize()
        except AnalysisError as exc:
            self._add("ocr-init", StepStatus.ERROR, f"OCR initialization failed: {exc.message}")
            return
        elapsed_ms = (time.perf_counter() - start) * 1000
        self._add(
            "ocr-init",
            StepStatus.SUCCESS,
            f"OCR engine ready ({elapsed_ms:.0f}ms)",
            {"elapsed_ms": round(elapsed_ms)},
        )

    async def _check_text_extraction(
        self, document: SourceDocument, document_type: DocumentType
    ) -> None:
        start = time.perf_counter()
        try:
            result = await self.analyzer.analyze(document, document_type)
        except AnalysisError as exc:
            self._add("text-extraction", StepStatus.ERROR, f"Extraction failed: {exc.message}")
            return
        elapsed_ms = (time.perf_counter() - start) * 1000

        self._add(
            "text-extraction",
            StepStatus.SUCCESS,
            f"Extraction finished ({elapsed_ms:.0f}ms)",
            {"elapsed_ms": round(elapsed_ms), **result.to_dict()},
        )

        confidence = result.confidence
        if result.company_name:
            self._add(
                "pattern-company",
                StepStatus.SUCCESS,
                f'Company detected: "{result.company_name}" (confidence {confidence.company_name}%)',
            )
        else:
            self._add("pattern-company", StepStatus.WARNING, "No company detected")

        if result.date:
            self._add(
                "pattern-date",
                StepStatus.SUCCESS,
                f"Date detected: {result.date.isoformat()} (confidence {confidence.date}%)",
            )
        else:
            self._add("pattern-date", StepStatus.WARNING, "No date detected")

        if result.amount is not None:
            self._add(
                "pattern-amount",
                StepStatus.SUCCESS,
                f"Amount detected: {result.amount} (confidence {confidence.amount}%)",
            )
        else:
            self._add("pattern-amount", StepStatus.WARNING, "No amount detected")

        if is_default_file_name(result.file_name):
            self._add(
                "filename-generation",
                StepStatus.WARNING,
                f'Default filename "{result.file_name}", not enough data',
            )
        else:
            self._add(
                "filename-generation",
                StepStatus.SUCCESS,
                f'Generated filename "{result.file_name}"',
            )
