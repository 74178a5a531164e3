"""Document analysis orchestrator.

Runs one document through preflight, preprocessing, OCR and field
extraction, retrying transient failures and turning every other failure
into a degraded result the user can complete by hand.
"""

import asyncio
import logging

from invoice_ocr.extraction.fields import FieldExtractor
from invoice_ocr.extraction.filename import generate_file_name
from invoice_ocr.ocr.adapter import OCRAdapter
from invoice_ocr.preprocessing.pipeline import Preprocessor
from invoice_ocr.utils.config import AppConfig
from invoice_ocr.utils.logger import get_logger
from invoice_ocr.validation.preflight import PreflightValidator

from .documents import DocumentType, ExtractionResult, ProgressCallback, SourceDocument
from .errors import AnalysisError, ErrorKind, ParsingFailure, classify_exception, user_message
from .retry import RetryPolicy

logger = get_logger(__name__)


def degraded_result(document_type: DocumentType) -> ExtractionResult:
    """Minimal result returned when analysis fails: a default filename only."""
    return ExtractionResult(file_name=generate_file_name(document_type))


class _ProgressReporter:
    """Forwards progress to the caller's callback, never letting it fail the analysis."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self.callback = callback

    def __call__(self, percent: float, message: str) -> None:
        if self.callback is None:
            return
        try:
            self.callback(max(0.0, min(100.0, percent)), message)
        except Exception:
            logger.warning("Progress callback raised; ignoring", exc_info=True)


def _check_cancelled(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise asyncio.CancelledError("Analysis cancelled")


class DocumentAnalyzer:
    """Extracts company name, date and amount from invoices.

    The analyzer owns its OCR engine, which is created on first use and
    kept until ``cleanup`` is called. Use it as an async context manager
    to release the engine automatically.

    Args:
        config: Application configuration; defaults apply when omitted.
        ocr_adapter: OCR adapter to use instead of the default one.
        preprocessor: Preprocessor to use instead of the default one.
        field_extractor: Field extractor to use instead of the default one.
        retry_policy: Retry policy to use instead of the configured one.
        today: Reference date for date scoring, for reproducible results.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        ocr_adapter: OCRAdapter | None = None,
        preprocessor: Preprocessor | None = None,
        field_extractor: FieldExtractor | None = None,
        retry_policy: RetryPolicy | None = None,
        today=None,
    ) -> None:
        self.config = config or AppConfig()
        self.preflight = PreflightValidator(self.config.preflight.max_file_size_bytes)
        self.preprocessor = preprocessor or Preprocessor(
            self.config.preprocessing, pdf_timeout=self.config.ocr.timeout_seconds
        )
        self.ocr = ocr_adapter or OCRAdapter(self.config.ocr)
        self.field_extractor = field_extractor or FieldExtractor(
            self.config.extraction, today=today
        )
        self.retry_policy = retry_policy or RetryPolicy.from_config(self.config.retry)

    async def __aenter__(self) -> "DocumentAnalyzer":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.cleanup()

    async def analyze(
        self,
        document: SourceDocument,
        document_type: DocumentType,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ExtractionResult:
        """Analyze a document and return the extracted fields.

        Failures other than preflight rejections are retried when the
        retry policy allows, then reported through ``on_progress`` and
        replaced by a degraded result.

        Args:
            document: The document to analyze.
            document_type: Purchase or sale.
            on_progress: Receives ``(percent, message)`` updates.
            cancel_event: When set, the analysis stops at the next stage
                boundary.

        Returns:
            The extraction result, possibly degraded.

        Raises:
            PreflightRejection: If the document is refused before analysis.
            asyncio.CancelledError: If the analysis is cancelled.
        """
        document_type = DocumentType(document_type)
        self.preflight.validate(document)

        report = _ProgressReporter(on_progress)
        attempts = 0
        while True:
            attempts += 1
            try:
                return await self._run_attempt(document, document_type, report, cancel_event)
            except Exception as exc:
                error = classify_exception(exc)
                self._log_failure(document, document_type, error, attempts)

                if not self.retry_policy.should_retry(error, attempts):
                    report(100, user_message(error))
                    return degraded_result(document_type)

                delay = self.retry_policy.backoff(attempts)
                logger.warning(
                    "Retrying analysis of %s in %.1fs (attempt %d of %d)",
                    document.name,
                    delay,
                    attempts + 1,
                    self.retry_policy.max_attempts,
                )
                report(0, f"Retrying analysis ({attempts + 1}/{self.retry_policy.max_attempts})...")
                await asyncio.sleep(delay)
                _check_cancelled(cancel_event)

    async def _run_attempt(
        self,
        document: SourceDocument,
        document_type: DocumentType,
        report: _ProgressReporter,
        cancel_event: asyncio.Event | None,
    ) -> ExtractionResult:
        report(5, "Starting analysis...")
        _check_cancelled(cancel_event)

        report(10, "Preparing document...")
        image = await self.preprocessor.process(document)
        report(30, "Document prepared")
        _check_cancelled(cancel_event)

        def ocr_progress(percent: float, message: str) -> None:
            if percent >= 100:
                report(85, message)
            elif percent >= 50:
                report(70, message)
            else:
                report(50, message)

        recognized = await self.ocr.recognize(image, on_progress=ocr_progress)
        _check_cancelled(cancel_event)

        report(90, "Extracting fields...")
        result = self.field_extractor.extract(recognized.text, document_type)
        if result.confidence.all_zero():
            raise ParsingFailure()

        report(95, "Generating filename...")
        logger.info("Analysis of %s complete: %s", document.name, result.file_name)
        report(100, "Analysis complete")
        return result

    def _log_failure(
        self,
        document: SourceDocument,
        document_type: DocumentType,
        error: AnalysisError,
        attempt: int,
    ) -> None:
        level = logging.ERROR if error.kind == ErrorKind.UNKNOWN else logging.WARNING
        logger.log(
            level,
            "Analysis attempt %d failed for %s (%d bytes, %s, %s): kind=%s recoverable=%s: %s",
            attempt,
            document.name,
            document.size,
            document.media_type,
            document_type,
            error.kind,
            error.recoverable,
            error.message,
            exc_info=error.kind == ErrorKind.UNKNOWN,
        )

    def cleanup(self) -> None:
        """Release the OCR engine. Safe to call more than once."""
        self.ocr.cleanup()

    close = cleanup
