"""Monetary amount extraction from OCR text.

Every tier of the rule table is evaluated; labelled totals carry the
highest base confidence and loosely labelled figures the lowest.
"""

import re
from decimal import Decimal, InvalidOperation

from invoice_ocr.utils.config import ExtractionConfig
from invoice_ocr.utils.logger import get_logger

from .candidates import FieldCandidate, PatternRule, clamp_confidence, compile_rule

logger = get_logger(__name__)

TYPICAL_RANGE_BONUS = 20
COMMA_DECIMAL_BONUS = 10

# "1 080,00" and "1.080,00" group thousands; the comma is then the decimal mark.
_GROUPED = r"\d{1,3}(?:[ .]\d{3})+,\d{2}"
_NUMBER = rf"({_GROUPED}|\d+(?:[.,]\d+)?)"
_COMMA_NUMBER = rf"({_GROUPED}|\d+,\d{{2}})"

AMOUNT_RULES: list[PatternRule] = [
    compile_rule(
        "labelled_total",
        r"(?:total\s+ttc|total\s+incl\.?\s*(?:tax(?:es)?|vat)|net\s+[àa]\s+payer"
        r"|net\s+payable|grand\s+total|total\s+g[ée]n[ée]ral|montant\s+total"
        r"|amount\s+due|total\s+due)\s*:?\s*" + _NUMBER + r"\s*€?",
        90,
        re.IGNORECASE,
    ),
    compile_rule("total", r"\btotal\s*:?\s*" + _NUMBER + r"\s*€", 70, re.IGNORECASE),
    compile_rule("comma_euro", _COMMA_NUMBER + r"\s*€", 50),
    compile_rule("euro", _NUMBER + r"\s*€", 30),
    compile_rule("line_end", _COMMA_NUMBER + r"[ \t]*€?[ \t]*$", 20, re.MULTILINE),
    compile_rule(
        "labelled_amount",
        r"\b(?:montant|prix|somme|amount|price|sum)\s*:?\s*" + _NUMBER,
        10,
        re.IGNORECASE,
    ),
]


def parse_amount(raw: str) -> Decimal | None:
    """Parse a matched figure, treating a comma as the decimal separator.

    When a comma is present, spaces and dots are thousands separators.

    Returns:
        The positive, finite amount, or ``None`` if it is not usable.
    """
    cleaned = raw.strip()
    if "," in cleaned:
        cleaned = cleaned.replace(" ", "").replace(".", "").replace(",", ".")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


class AmountExtractor:
    """Extracts candidate invoice totals from text.

    Args:
        config: Extraction configuration holding the amount ceiling and
            the typical invoice range.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self.rules = AMOUNT_RULES
        self.ceiling = Decimal(str(self.config.amount_ceiling))
        self.typical_min = Decimal(str(self.config.typical_amount_min))
        self.typical_max = Decimal(str(self.config.typical_amount_max))

    def extract(self, text: str) -> list[FieldCandidate]:
        """Return every amount below the ceiling found in ``text``."""
        candidates: list[FieldCandidate] = []

        for rule in self.rules:
            for match in rule.pattern.finditer(text):
                raw = match.group(1)
                amount = parse_amount(raw)
                if amount is None or amount >= self.ceiling:
                    continue

                score = rule.confidence_delta
                if self.typical_min <= amount <= self.typical_max:
                    score += TYPICAL_RANGE_BONUS
                if "," in raw:
                    score += COMMA_DECIMAL_BONUS

                candidates.append(
                    FieldCandidate(
                        value=amount,
                        confidence=clamp_confidence(score),
                        rule_id=rule.label,
                        position=match.start(1),
                    )
                )

        logger.debug("Amount extraction produced %d candidates", len(candidates))
        return candidates
