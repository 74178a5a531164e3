"""PDF rasterization for OCR.

Renders the first page of a PDF to an RGB numpy array at a scaled
resolution, so that OCR works above its minimum effective DPI.
"""

import numpy as np
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFPopplerTimeoutError

from invoice_ocr.analysis.errors import AnalysisTimeout, ConversionFailure
from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)

PDF_SIGNATURE = b"%PDF"
BASE_DPI = 72


def has_pdf_signature(content: bytes) -> bool:
    """Return True if the bytes start with the ``%PDF`` marker."""
    return content[: len(PDF_SIGNATURE)] == PDF_SIGNATURE


class PDFHandler:
    """Converts PDF bytes into a bitmap of the first page.

    Args:
        scale: Render scale relative to 72 DPI (2.0 renders at 144 DPI).
        timeout: Seconds allowed for the poppler renderer, or ``None``.
    """

    def __init__(self, scale: float = 2.0, timeout: float | None = None) -> None:
        self.scale = scale
        self.timeout = timeout

    @property
    def dpi(self) -> int:
        return round(BASE_DPI * self.scale)

    def render_first_page(self, content: bytes) -> np.ndarray:
        """Render page one of a PDF.

        Args:
            content: Raw PDF bytes.

        Returns:
            The page as an RGB numpy array.

        Raises:
            ConversionFailure: If the bytes are not a PDF or cannot be rendered.
            AnalysisTimeout: If rendering exceeds the timeout.
        """
        if not has_pdf_signature(content):
            raise ConversionFailure("Invalid or corrupted PDF file")

        try:
            pages = convert_from_bytes(
                content,
                dpi=self.dpi,
                first_page=1,
                last_page=1,
                timeout=self.timeout,
            )
        except PDFPopplerTimeoutError as exc:
            raise AnalysisTimeout(f"PDF rendering timed out: {exc}") from exc
        except Exception as exc:
            raise ConversionFailure(f"PDF conversion failed: {exc}") from exc

        if not pages:
            raise ConversionFailure("PDF has no renderable page")

        image = np.array(pages[0].convert("RGB"))
        logger.info(
            "Rendered PDF page 1 at %d DPI (%dx%d)",
            self.dpi,
            image.shape[1],
            image.shape[0],
        )
        return image
