"""Input and output types of the analysis pipeline."""

import datetime
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from pathlib import Path
from typing import Any

# Receives (percent in [0, 100], message). Advisory only.
ProgressCallback = Callable[[float, str], None]


class MediaType(StrEnum):
    """Declared media type of a source document."""

    PDF = "pdf"
    JPEG = "jpeg"
    PNG = "png"

    @classmethod
    def from_content_type(cls, content_type: str) -> "MediaType":
        """Resolve a MIME type such as ``image/jpeg``.

        Raises:
            ValueError: If the MIME type is not supported.
        """
        normalized = content_type.split(";")[0].strip().lower()
        mapping = {
            "application/pdf": cls.PDF,
            "image/jpeg": cls.JPEG,
            "image/jpg": cls.JPEG,
            "image/png": cls.PNG,
        }
        if normalized not in mapping:
            raise ValueError(f"Unsupported content type: {content_type}")
        return mapping[normalized]

    @classmethod
    def from_suffix(cls, suffix: str) -> "MediaType":
        """Resolve a file extension such as ``.jpg``.

        Raises:
            ValueError: If the extension is not supported.
        """
        normalized = suffix.lower().lstrip(".")
        mapping = {"pdf": cls.PDF, "jpg": cls.JPEG, "jpeg": cls.JPEG, "png": cls.PNG}
        if normalized not in mapping:
            raise ValueError(f"Unsupported file extension: {suffix}")
        return mapping[normalized]


class DocumentType(StrEnum):
    """Business direction of an invoice."""

    PURCHASE = "purchase"
    SALE = "sale"


@dataclass(frozen=True)
class SourceDocument:
    """Immutable document handed to the analyzer by the caller."""

    content: bytes
    media_type: MediaType
    name: str = "document"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Path) -> "SourceDocument":
        """Read a document from disk, inferring the media type from its suffix."""
        path = Path(path)
        return cls(
            content=path.read_bytes(),
            media_type=MediaType.from_suffix(path.suffix),
            name=path.name,
        )


@dataclass
class FieldConfidence:
    """Per-field confidence scores in [0, 100]."""

    company_name: int = 0
    date: int = 0
    amount: int = 0

    def all_zero(self) -> bool:
        return self.company_name == 0 and self.date == 0 and self.amount == 0


@dataclass
class ExtractionResult:
    """The only object returned to callers of ``DocumentAnalyzer.analyze``.

    Absent fields are ``None``; ``file_name`` is always set.
    """

    file_name: str
    company_name: str | None = None
    date: datetime.date | None = None
    amount: Decimal | None = None
    confidence: FieldConfidence = field(default_factory=FieldConfidence)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the interchange shape used by downstream storage.

        Keys are camelCase, absent fields are omitted, the date is ISO-8601.
        """
        result: dict[str, Any] = {}
        if self.company_name is not None:
            result["companyName"] = self.company_name
        if self.date is not None:
            result["date"] = self.date.isoformat()
        if self.amount is not None:
            result["amount"] = float(self.amount)
        result["fileName"] = self.file_name
        result["confidence"] = {
            "companyName": self.confidence.company_name,
            "date": self.confidence.date,
            "amount": self.confidence.amount,
        }
        return result
