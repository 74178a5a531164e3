"""Tesseract OCR engine wrapper.

The engine is configured once for the expected languages, a restricted
character whitelist, automatic page segmentation and the LSTM-only
recognition mode, then reused for every recognition call.
"""

from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from invoice_ocr.analysis.errors import (
    AnalysisTimeout,
    InitializationFailure,
    TextExtractionFailure,
)
from invoice_ocr.utils.config import OCRConfig
from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RecognizedText:
    """Plain text produced by OCR and its mean word confidence (0-100)."""

    text: str
    confidence: float


def build_tesseract_config(config: OCRConfig) -> str:
    """Render the command-line options passed to Tesseract."""
    options = [f"--oem {config.oem}", f"--psm {config.psm}"]
    if config.preserve_interword_spaces:
        options.append("-c preserve_interword_spaces=1")
    if config.char_whitelist:
        options.append(f'-c "tessedit_char_whitelist={config.char_whitelist}"')
    return " ".join(options)


def mean_confidence(data: dict) -> float:
    """Average the confidences of recognized words, ignoring empty boxes."""
    scores = [
        float(conf)
        for conf, word in zip(data.get("conf", []), data.get("text", []))
        if float(conf) >= 0 and str(word).strip()
    ]
    return sum(scores) / len(scores) if scores else 0.0


class TesseractEngine:
    """A configured, verified handle on the Tesseract binary.

    Construction checks that Tesseract is installed and that every
    requested language is available.

    Args:
        config: OCR configuration.

    Raises:
        InitializationFailure: If Tesseract or a language pack is missing.
    """

    def __init__(self, config: OCRConfig | None = None) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

        try:
            version = pytesseract.get_tesseract_version()
            available = set(pytesseract.get_languages(config=""))
        except pytesseract.TesseractNotFoundError as exc:
            raise InitializationFailure(f"Tesseract is not installed: {exc}") from exc
        except Exception as exc:
            raise InitializationFailure(f"Unable to initialize the OCR engine: {exc}") from exc

        missing = [lang for lang in self.config.languages if lang not in available]
        if missing:
            raise InitializationFailure(
                f"Missing Tesseract language data: {', '.join(missing)}"
            )

        self.lang = "+".join(self.config.languages)
        self.tesseract_config = build_tesseract_config(self.config)
        logger.info("Initialized Tesseract %s with languages %s", version, self.lang)

    def extract_text(self, image: np.ndarray) -> str:
        """Run the text pass on a bitmap."""
        return self._call(pytesseract.image_to_string, image)

    def extract_confidence(self, image: np.ndarray) -> float:
        """Run the word-data pass and return the mean word confidence."""
        data = self._call(
            pytesseract.image_to_data,
            image,
            output_type=pytesseract.Output.DICT,
        )
        return mean_confidence(data)

    def _call(self, func, image: np.ndarray, **kwargs):
        pil_image = Image.fromarray(image)
        try:
            return func(
                pil_image,
                lang=self.lang,
                config=self.tesseract_config,
                timeout=self.config.timeout_seconds or 0,
                **kwargs,
            )
        except pytesseract.TesseractError as exc:
            raise TextExtractionFailure(f"OCR failed: {exc}") from exc
        except RuntimeError as exc:
            # pytesseract signals a killed process with a bare RuntimeError
            if "timeout" in str(exc).lower():
                raise AnalysisTimeout(f"OCR timed out: {exc}") from exc
            raise TextExtractionFailure(f"OCR failed: {exc}") from exc
