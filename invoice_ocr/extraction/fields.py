"""Field extraction stage: runs every extractor and assembles the result."""

import datetime

from invoice_ocr.analysis.documents import DocumentType, ExtractionResult, FieldConfidence
from invoice_ocr.utils.config import ExtractionConfig
from invoice_ocr.utils.logger import get_logger

from .amounts import AmountExtractor
from .candidates import arbitrate
from .company import CompanyNameExtractor
from .dates import DateExtractor
from .filename import generate_file_name

logger = get_logger(__name__)


class FieldExtractor:
    """Turns recognized text into an ``ExtractionResult``.

    The three extractors share no state and may run in any order.

    Args:
        config: Extraction configuration.
        today: Reference date for date recency scoring.
    """

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        today: datetime.date | None = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.company_extractor = CompanyNameExtractor(self.config)
        self.date_extractor = DateExtractor(self.config, today=today)
        self.amount_extractor = AmountExtractor(self.config)

    def extract(self, text: str, document_type: DocumentType) -> ExtractionResult:
        """Extract all fields from ``text`` and generate the filename.

        Args:
            text: Recognized document text.
            document_type: Purchase or sale, used for the filename prefix.

        Returns:
            A fully formed result; missing fields have confidence 0.
        """
        company = arbitrate(self.company_extractor.extract(text))
        date = arbitrate(self.date_extractor.extract(text))
        amount = arbitrate(self.amount_extractor.extract(text))

        company_name = company.value if company else None
        result = ExtractionResult(
            file_name=generate_file_name(document_type, company_name),
            company_name=company_name,
            date=date.value if date else None,
            amount=amount.value if amount else None,
            confidence=FieldConfidence(
                company_name=company.confidence if company else 0,
                date=date.confidence if date else 0,
                amount=amount.confidence if amount else 0,
            ),
        )

        logger.info(
            "Extracted company=%r (%d), date=%s (%d), amount=%s (%d)",
            result.company_name,
            result.confidence.company_name,
            result.date,
            result.confidence.date,
            result.amount,
            result.confidence.amount,
        )
        return result
