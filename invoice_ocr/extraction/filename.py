"""Canonical filename generation for analyzed invoices.

Purchase invoices are prefixed ``Ach_`` and sales invoices ``Vte_``,
followed by a slug of the company name, e.g. ``Ach_mcdonalds.pdf``.
"""

import re

from invoice_ocr.analysis.documents import DocumentType

PREFIXES: dict[DocumentType, str] = {
    DocumentType.PURCHASE: "Ach_",
    DocumentType.SALE: "Vte_",
}
DEFAULT_STEM = "document"
MAX_STEM_LENGTH = 20

_DISALLOWED = re.compile(r"[^A-Za-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def generate_file_name(
    document_type: DocumentType, company_name: str | None = None
) -> str:
    """Build the canonical filename for a document.

    Args:
        document_type: Whether the invoice is a purchase or a sale.
        company_name: Extracted vendor or client name, if any.

    Returns:
        A name matching ``^(Ach_|Vte_)[a-z0-9_]*\\.pdf$``.
    """
    prefix = PREFIXES[DocumentType(document_type)]
    stem = _slugify(company_name) if company_name else ""
    return f"{prefix}{stem or DEFAULT_STEM}.pdf"


def _slugify(name: str) -> str:
    cleaned = _DISALLOWED.sub("", name).strip()
    return _WHITESPACE.sub("_", cleaned).lower()[:MAX_STEM_LENGTH]


def is_default_file_name(file_name: str) -> bool:
    """Return True if ``file_name`` carries no company information."""
    return file_name in {f"{prefix}{DEFAULT_STEM}.pdf" for prefix in PREFIXES.values()}
