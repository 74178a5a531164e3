"""Error taxonomy for document analysis.

Each failure raised inside the pipeline carries an ``ErrorKind`` and a
``recoverable`` flag assigned where it is raised. Exceptions coming from
third-party code are mapped onto the same kinds by ``classify_exception``,
which falls back to inspecting the message text.

Hierarchy:
    AnalysisError
    ├── InitializationFailure   (recoverable)
    ├── ConversionFailure       (recoverable)
    ├── TextExtractionFailure   (recoverable)
    ├── AnalysisTimeout         (recoverable)
    ├── ParsingFailure          (not recoverable)
    └── PreflightRejection      (not recoverable)
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Closed set of failure categories."""

    INITIALIZATION = "initialization"
    CONVERSION = "conversion"
    TEXT_EXTRACTION = "text_extraction"
    PARSING = "parsing"
    PREFLIGHT = "preflight"
    TIMEOUT = "timeout"
    NETWORK = "network"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    UNKNOWN = "unknown"


class AnalysisError(Exception):
    """Base exception for every analysis failure.

    Attributes:
        kind: Category of the failure.
        recoverable: Whether another attempt could succeed.
        message: Human-readable description for logs.
    """

    default_kind = ErrorKind.UNKNOWN
    default_recoverable = True
    default_message = "Document analysis failed"

    def __init__(
        self,
        message: str | None = None,
        kind: ErrorKind | None = None,
        recoverable: bool | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.kind = kind or self.default_kind
        self.recoverable = (
            self.default_recoverable if recoverable is None else recoverable
        )
        super().__init__(self.message)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"recoverable={self.recoverable}, message={self.message!r})"
        )


class InitializationFailure(AnalysisError):
    """The OCR engine could not be constructed."""

    default_kind = ErrorKind.INITIALIZATION
    default_message = "Unable to initialize the OCR engine"


class ConversionFailure(AnalysisError):
    """The document could not be turned into a bitmap."""

    default_kind = ErrorKind.CONVERSION
    default_message = "Unable to convert the document"


class TextExtractionFailure(AnalysisError):
    """OCR produced no usable text."""

    default_kind = ErrorKind.TEXT_EXTRACTION
    default_message = "Unable to extract text from the document"


class AnalysisTimeout(AnalysisError):
    """A long-running step exceeded its configured timeout."""

    default_kind = ErrorKind.TIMEOUT
    default_message = "Document analysis timed out"


class ParsingFailure(AnalysisError):
    """Text was read but no field could be extracted."""

    default_kind = ErrorKind.PARSING
    default_recoverable = False
    default_message = "No relevant information found in the document"


class PreflightRejection(AnalysisError):
    """The document was refused before entering the pipeline."""

    default_kind = ErrorKind.PREFLIGHT
    default_recoverable = False
    default_message = "Document rejected before analysis"


_NETWORK_MARKERS = ("network", "fetch", "connection")
_MEMORY_MARKERS = ("memory", "out of")
_TIMEOUT_MARKERS = ("timeout", "timed out")

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INITIALIZATION: "The analysis engine could not start. Please try again.",
    ErrorKind.CONVERSION: (
        "This document could not be processed. Check the file format."
    ),
    ErrorKind.TEXT_EXTRACTION: (
        "The document content could not be read. The file may be corrupted."
    ),
    ErrorKind.PARSING: "Document analyzed but no relevant information was found.",
    ErrorKind.PREFLIGHT: "This file cannot be analyzed automatically.",
    ErrorKind.TIMEOUT: "The analysis is taking too long. Try a smaller file.",
    ErrorKind.NETWORK: "Connection problem. Check your network and try again.",
    ErrorKind.RESOURCE_EXHAUSTED: (
        "The file is too large to be analyzed automatically."
    ),
}

GENERIC_USER_MESSAGE = (
    "An unexpected error occurred during analysis. "
    "You can continue by filling in the fields manually."
)


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def classify_exception(exc: BaseException) -> AnalysisError:
    """Map any exception onto the analysis taxonomy.

    Typed ``AnalysisError`` instances are returned unchanged. Other
    exceptions come from code outside our control and are classified by
    type first, then by message content.

    Args:
        exc: The exception to classify.

    Returns:
        An ``AnalysisError`` describing the failure.
    """
    if isinstance(exc, AnalysisError):
        return exc

    message = str(exc) or type(exc).__name__

    if isinstance(exc, MemoryError) or _contains_any(message, _MEMORY_MARKERS):
        kind, recoverable = ErrorKind.RESOURCE_EXHAUSTED, False
    elif isinstance(exc, ConnectionError) or _contains_any(message, _NETWORK_MARKERS):
        kind, recoverable = ErrorKind.NETWORK, True
    elif isinstance(exc, TimeoutError) or _contains_any(message, _TIMEOUT_MARKERS):
        kind, recoverable = ErrorKind.TIMEOUT, True
    else:
        kind, recoverable = ErrorKind.UNKNOWN, True

    error = AnalysisError(message, kind=kind, recoverable=recoverable)
    error.__cause__ = exc
    return error


def user_message(exc: BaseException) -> str:
    """Return a message suitable for showing to the end user.

    Args:
        exc: A classified or raw exception.

    Returns:
        A short, non-technical explanation.
    """
    error = classify_exception(exc)
    if error.kind in USER_MESSAGES:
        return USER_MESSAGES[error.kind]

    if _contains_any(error.message, _MEMORY_MARKERS):
        return USER_MESSAGES[ErrorKind.RESOURCE_EXHAUSTED]
    if _contains_any(error.message, _NETWORK_MARKERS):
        return USER_MESSAGES[ErrorKind.NETWORK]
    if _contains_any(error.message, _TIMEOUT_MARKERS):
        return USER_MESSAGES[ErrorKind.TIMEOUT]
    return GENERIC_USER_MESSAGE
