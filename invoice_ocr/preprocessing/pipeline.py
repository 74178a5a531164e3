"""Document preprocessing: from source bytes to a binarized bitmap.

PDFs are rasterized (first page only), raster images are decoded and
downscaled to a bounded size, and every bitmap is binarized before OCR.
"""

import asyncio
import io
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from invoice_ocr.analysis.documents import MediaType, SourceDocument
from invoice_ocr.analysis.errors import ConversionFailure
from invoice_ocr.ocr.pdf_handler import PDFHandler
from invoice_ocr.utils.config import PreprocessingConfig
from invoice_ocr.utils.logger import get_logger

from .binarize import binarize_fixed, binarize_otsu

logger = get_logger(__name__)


@dataclass
class RasterImage:
    """Normalized bitmap ready for OCR."""

    width: int
    height: int
    pixels: np.ndarray

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "RasterImage":
        height, width = pixels.shape[:2]
        return cls(width=width, height=height, pixels=pixels)


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Scale dimensions down, keeping the aspect ratio, to fit the bounds.

    Width is capped first, then height, so both limits hold afterwards.
    """
    if width > max_width:
        height = height * max_width / width
        width = max_width
    if height > max_height:
        width = width * max_height / height
        height = max_height
    return max(1, round(width)), max(1, round(height))


class Preprocessor:
    """Produces a binarized ``RasterImage`` from a ``SourceDocument``.

    Args:
        config: Preprocessing configuration.
        pdf_timeout: Seconds allowed for PDF rendering, or ``None``.
    """

    def __init__(
        self,
        config: PreprocessingConfig | None = None,
        pdf_timeout: float | None = None,
    ) -> None:
        self.config = config or PreprocessingConfig()
        self.pdf_handler = PDFHandler(scale=self.config.pdf_render_scale, timeout=pdf_timeout)

    async def process(self, document: SourceDocument) -> RasterImage:
        """Rasterize and binarize a document without blocking the event loop.

        Raises:
            ConversionFailure: If the document is empty, not a valid PDF,
                or cannot be decoded as an image.
        """
        if document.size == 0:
            raise ConversionFailure("Document is empty")
        return await asyncio.to_thread(self.process_sync, document)

    def process_sync(self, document: SourceDocument) -> RasterImage:
        """Blocking variant of ``process``."""
        if document.size == 0:
            raise ConversionFailure("Document is empty")

        if document.media_type == MediaType.PDF:
            image = self.pdf_handler.render_first_page(document.content)
        else:
            image = self._resize(self._decode_image(document.content))

        binary = self._binarize(image)
        raster = RasterImage.from_array(binary)
        logger.info(
            "Preprocessed %s into a %dx%d binary image",
            document.name,
            raster.width,
            raster.height,
        )
        return raster

    def _decode_image(self, content: bytes) -> np.ndarray:
        try:
            with Image.open(io.BytesIO(content)) as img:
                return np.array(img.convert("RGB"))
        except (UnidentifiedImageError, OSError) as exc:
            raise ConversionFailure(f"Unable to load image: {exc}") from exc

    def _resize(self, image: np.ndarray) -> np.ndarray:
        height, width = image.shape[:2]
        new_width, new_height = fit_within(
            width, height, self.config.max_width, self.config.max_height
        )
        if (new_width, new_height) == (width, height):
            return image
        logger.debug("Downscaling image from %dx%d to %dx%d", width, height, new_width, new_height)
        return cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)

    def _binarize(self, image: np.ndarray) -> np.ndarray:
        if self.config.threshold_method == "otsu":
            return binarize_otsu(image)
        return binarize_fixed(image, self.config.binarize_threshold)
