"""Tests for PDF rasterization."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from PIL import Image
from pdf2image.exceptions import PDFPageCountError, PDFPopplerTimeoutError

from invoice_ocr.analysis.errors import AnalysisTimeout, ConversionFailure, ErrorKind
from invoice_ocr.ocr.pdf_handler import PDFHandler, has_pdf_signature


def _mock_pil_image(width: int = 300, height: int = 200) -> Image.Image:
    """Create a mock PIL image."""
    return Image.fromarray(np.zeros((height, width, 3), dtype=np.uint8))


class TestSignature:
    """Tests for the %PDF signature check."""

    def test_valid_signature(self) -> None:
        assert has_pdf_signature(b"%PDF-1.7\n...")

    def test_invalid_signature(self) -> None:
        assert not has_pdf_signature(b"\x89PNG\r\n")

    def test_short_content(self) -> None:
        assert not has_pdf_signature(b"%P")


class TestPDFHandler:
    """Tests for the PDFHandler class."""

    def test_default_dpi(self) -> None:
        assert PDFHandler().dpi == 144

    def test_scaled_dpi(self) -> None:
        assert PDFHandler(scale=1.5).dpi == 108

    @patch("invoice_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_renders_first_page_only(self, mock_convert: MagicMock) -> None:
        mock_convert.return_value = [_mock_pil_image()]
        handler = PDFHandler(timeout=30)

        image = handler.render_first_page(b"%PDF-1.4 fake content")

        assert isinstance(image, np.ndarray)
        assert image.shape == (200, 300, 3)
        mock_convert.assert_called_once_with(
            b"%PDF-1.4 fake content", dpi=144, first_page=1, last_page=1, timeout=30
        )

    @patch("invoice_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_invalid_signature_never_renders(self, mock_convert: MagicMock) -> None:
        with pytest.raises(ConversionFailure):
            PDFHandler().render_first_page(b"GIF89a")
        mock_convert.assert_not_called()

    @patch("invoice_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_render_error_is_conversion_failure(self, mock_convert: MagicMock) -> None:
        mock_convert.side_effect = PDFPageCountError("Unable to get page count")
        with pytest.raises(ConversionFailure) as excinfo:
            PDFHandler().render_first_page(b"%PDF-1.4")
        assert excinfo.value.kind == ErrorKind.CONVERSION
        assert excinfo.value.recoverable is True

    @patch("invoice_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_timeout_is_analysis_timeout(self, mock_convert: MagicMock) -> None:
        mock_convert.side_effect = PDFPopplerTimeoutError("Run poppler timeout.")
        with pytest.raises(AnalysisTimeout) as excinfo:
            PDFHandler(timeout=1).render_first_page(b"%PDF-1.4")
        assert excinfo.value.kind == ErrorKind.TIMEOUT

    @patch("invoice_ocr.ocr.pdf_handler.convert_from_bytes")
    def test_no_pages_is_conversion_failure(self, mock_convert: MagicMock) -> None:
        mock_convert.return_value = []
        with pytest.raises(ConversionFailure):
            PDFHandler().render_first_page(b"%PDF-1.4")
