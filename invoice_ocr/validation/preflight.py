"""Preflight checks run before a document enters the analysis pipeline."""

from invoice_ocr.analysis.documents import MediaType, SourceDocument
from invoice_ocr.analysis.errors import PreflightRejection
from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024


class FileTooLarge(PreflightRejection):
    """The document exceeds the configured size ceiling."""

    default_message = "File too large for automatic analysis"


class UnsupportedMediaType(PreflightRejection):
    """The document is not a PDF, JPEG or PNG."""

    default_message = "Unsupported document type"


class PreflightValidator:
    """Rejects documents the pipeline must not attempt.

    Args:
        max_file_size_bytes: Largest accepted document, in bytes.
    """

    def __init__(self, max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE) -> None:
        self.max_file_size_bytes = max_file_size_bytes

    def validate(self, document: SourceDocument) -> None:
        """Raise ``PreflightRejection`` if the document cannot be analyzed.

        Zero-byte documents pass; they fail later during conversion.

        Raises:
            FileTooLarge: If the document exceeds the size ceiling.
            UnsupportedMediaType: If the media type is not supported.
        """
        if document.size > self.max_file_size_bytes:
            logger.warning(
                "Rejected %s: %d bytes exceeds the %d byte limit",
                document.name,
                document.size,
                self.max_file_size_bytes,
            )
            raise FileTooLarge(
                f"File is {document.size} bytes, limit is {self.max_file_size_bytes}"
            )

        try:
            MediaType(document.media_type)
        except ValueError as exc:
            logger.warning("Rejected %s: unsupported media type %r", document.name, document.media_type)
            raise UnsupportedMediaType(
                f"Unsupported media type: {document.media_type}"
            ) from exc
