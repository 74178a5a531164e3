"""Asynchronous, single-flight access to the OCR engine.

The adapter owns at most one ``TesseractEngine``. It is created on the
first recognition, reused by later calls and dropped by ``cleanup``.
Recognition runs in a worker thread behind an ``asyncio.Lock`` because
the engine must not serve two recognitions at once.
"""

import asyncio
from collections.abc import Callable

from invoice_ocr.analysis.documents import ProgressCallback
from invoice_ocr.analysis.errors import (
    AnalysisError,
    InitializationFailure,
    TextExtractionFailure,
)
from invoice_ocr.preprocessing.pipeline import RasterImage
from invoice_ocr.utils.config import OCRConfig
from invoice_ocr.utils.logger import get_logger

from .tesseract_engine import RecognizedText, TesseractEngine

logger = get_logger(__name__)


class OCRAdapter:
    """Lazily initialized OCR engine shared by successive analyses.

    Args:
        config: OCR configuration passed to the engine.
        engine_factory: Callable building the engine; replaced in tests.
    """

    def __init__(
        self,
        config: OCRConfig | None = None,
        engine_factory: Callable[[OCRConfig], TesseractEngine] = TesseractEngine,
    ) -> None:
        self.config = config or OCRConfig()
        self._engine_factory = engine_factory
        self._engine: TesseractEngine | None = None
        self._lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self) -> None:
        """Create the engine now instead of on first recognition."""
        async with self._lock:
            await self._ensure_engine()

    async def recognize(
        self,
        image: RasterImage,
        on_progress: ProgressCallback | None = None,
    ) -> RecognizedText:
        """Recognize text in a bitmap.

        Args:
            image: Binarized bitmap.
            on_progress: Receives the recognition progress as 0-100.

        Returns:
            The recognized text and its mean confidence.

        Raises:
            InitializationFailure: If the engine cannot be created.
            TextExtractionFailure: If no text is recognized.
            AnalysisTimeout: If Tesseract exceeds its timeout.
        """

        def notify(percent: float, message: str) -> None:
            if on_progress is not None:
                on_progress(percent, message)

        async with self._lock:
            engine = await self._ensure_engine()

            notify(0, "Recognizing text...")
            text = await asyncio.to_thread(engine.extract_text, image.pixels)
            if not text.strip():
                raise TextExtractionFailure("No text detected in the document")

            notify(50, "Scoring recognition confidence...")
            confidence = await asyncio.to_thread(engine.extract_confidence, image.pixels)
            notify(100, "Text recognition complete")

        logger.info(
            "OCR recognized %d characters (confidence %.0f%%)",
            len(text),
            confidence,
        )
        return RecognizedText(text=text, confidence=confidence)

    def cleanup(self) -> None:
        """Release the engine. Safe to call repeatedly or before first use."""
        if self._engine is None:
            return
        self._engine = None
        logger.info("OCR engine released")

    async def _ensure_engine(self) -> TesseractEngine:
        if self._engine is None:
            try:
                self._engine = await asyncio.to_thread(self._engine_factory, self.config)
            except AnalysisError:
                raise
            except Exception as exc:
                raise InitializationFailure(
                    f"Unable to initialize the OCR engine: {exc}"
                ) from exc
        return self._engine
