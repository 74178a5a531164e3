"""Company name extraction from OCR text.

Candidates come from an ordered rule table: legal-form adjacency, a known
brand lexicon, an explicit "Société/Company <name>" prefix, the shape of a
sole proprietor's name and, as a fallback, a line holding only a
capitalized phrase.
"""

import re

from invoice_ocr.utils.config import ExtractionConfig
from invoice_ocr.utils.logger import get_logger

from .candidates import FieldCandidate, PatternRule, clamp_confidence, compile_rule

logger = get_logger(__name__)

BASE_CONFIDENCE = 50
INVOICE_KEYWORD_BONUS = 15
FIRST_LINE_BONUS = 20
MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 50

_UPPER = "A-ZÀ-ÖØ-Þ"
_LOWER = "a-zß-öø-ÿ"
_LETTER = _UPPER + _LOWER
_NAME_BODY = rf"[{_LETTER}0-9&'’\- ]"

_LEGAL_FORMS = (
    r"(?:S\.A\.S\.?|SASU|SARL|SAS|EURL|SNC|SCI|SEL|EARL|GIE|SA"
    r"|Inc\.?|LLC|Ltd\.?|GmbH)"
)
_NOT_LEGAL_FORM = rf"(?!{_LEGAL_FORMS}(?![{_LETTER}]))"

_INVOICE_KEYWORDS = re.compile(
    r"\b(?:facture|invoice|ticket|reçu|recu|receipt|quittance|bill|note)\b",
    re.IGNORECASE,
)

# Tokens that mark a line as invoice vocabulary rather than a business name.
STOPWORDS = frozenset(
    {
        "total",
        "ttc",
        "ht",
        "tva",
        "vat",
        "tax",
        "facture",
        "invoice",
        "date",
        "montant",
        "amount",
        "net",
        "payer",
        "ticket",
        "caisse",
        "receipt",
        "reçu",
        "prix",
        "price",
        "somme",
        "sum",
        "subtotal",
        "sous",
        "terminal",
        "paiement",
        "payment",
        "transaction",
        "siret",
        "capital",
        "commande",
        "merci",
        "carte",
        "approuvé",
        "heure",
        "articles",
        "page",
    }
)

_SANITIZE = re.compile(r"[^\w\s&'-]|_")
_WHITESPACE = re.compile(r"\s+")


def sanitize_company_name(name: str) -> str:
    """Normalize a raw match into a display name.

    Keeps letters, digits, spaces, ``&``, ``'`` and ``-``, collapses
    whitespace and capitalizes each word.
    """
    cleaned = _SANITIZE.sub("", name.replace("’", "'"))
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return " ".join(word[:1].upper() + word[1:].lower() for word in cleaned.split(" ") if word)


def _brand_pattern(brands: list[str]) -> str:
    alternatives = []
    for brand in sorted(brands, key=len, reverse=True):
        words = [re.escape(w).replace("'", "['’]?") for w in brand.split()]
        alternatives.append(r"[ \t]+".join(words))
    return rf"(?<![{_LETTER}])({'|'.join(alternatives)})(?![{_LETTER}])"


def build_company_rules(config: ExtractionConfig) -> list[PatternRule]:
    """Build the ordered rule table for company names."""
    rules = [
        compile_rule(
            "legal_form",
            rf"(?<![{_LETTER}])([{_UPPER}]{_NAME_BODY}{{1,50}}?)[ \t]+{_LEGAL_FORMS}(?![{_LETTER}])",
            30,
        ),
        compile_rule(
            "legal_form",
            rf"(?<![{_LETTER}]){_LEGAL_FORMS}[ \t]+([{_UPPER}]{_NAME_BODY}{{1,50}})",
            30,
        ),
    ]
    if config.known_brands:
        rules.append(
            compile_rule("known_brand", _brand_pattern(config.known_brands), 25, re.IGNORECASE)
        )
    rules.extend(
        [
            compile_rule(
                "company_prefix",
                r"(?i:soci[ée]t[ée]|entreprise|company|organi[sz]ation)[ \t]*:?[ \t]+"
                rf"([{_UPPER}]{_NAME_BODY}{{1,50}})",
                0,
            ),
            compile_rule(
                "person_name",
                rf"(?<![{_LETTER}])([{_UPPER}][{_LOWER}]+(?:-[{_UPPER}][{_LOWER}]+)?"
                rf"(?:[ \t]+{_NOT_LEGAL_FORM}[{_UPPER}]{{2,}}(?:[-'][{_UPPER}]{{2,}})?)+)(?![{_LETTER}])",
                20,
            ),
            compile_rule(
                "capitalized_phrase",
                rf"^[ \t]*([{_UPPER}][{_LETTER}&'’\- ]{{2,40}}?)[ \t]*$",
                0,
                re.MULTILINE,
            ),
        ]
    )
    return rules


def _first_line_span(text: str) -> tuple[int, int] | None:
    offset = 0
    for line in text.splitlines(keepends=True):
        if len(line.strip()) > 3:
            return offset, offset + len(line)
        offset += len(line)
    return None


def _is_vocabulary(name: str) -> bool:
    tokens = re.split(r"[\s\-']+", name.lower())
    return any(token in STOPWORDS for token in tokens)


def trim_vocabulary(name: str, keep_tail: bool) -> str:
    """Cut a sanitized name at invoice vocabulary.

    Legal-form matches swallow the whole line, so only the words nearest
    the legal form are kept: the tail when the name precedes the form,
    the head when it follows it.
    """
    words = name.split(" ")
    hits = [i for i, word in enumerate(words) if _is_vocabulary(word)]
    if not hits:
        return name
    kept = words[hits[-1] + 1 :] if keep_tail else words[: hits[0]]
    return " ".join(kept)


class CompanyNameExtractor:
    """Extracts vendor or client name candidates from invoice text.

    Args:
        config: Extraction configuration providing the brand lexicon.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self.rules = build_company_rules(self.config)

    def extract(self, text: str) -> list[FieldCandidate]:
        """Return every plausible company name found in ``text``."""
        candidates: list[FieldCandidate] = []
        has_keywords = _INVOICE_KEYWORDS.search(text) is not None
        first_line = _first_line_span(text)

        for rule in self.rules:
            for match in rule.pattern.finditer(text):
                raw = match.group(1)
                name = sanitize_company_name(raw)
                if rule.label == "legal_form":
                    name = trim_vocabulary(name, keep_tail=match.end(1) < match.end())
                if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
                    continue
                if _is_vocabulary(name):
                    continue

                position = match.start(1)
                score = BASE_CONFIDENCE + rule.confidence_delta
                if has_keywords:
                    score += INVOICE_KEYWORD_BONUS
                if first_line and first_line[0] <= position < first_line[1]:
                    score += FIRST_LINE_BONUS

                candidates.append(
                    FieldCandidate(
                        value=name,
                        confidence=clamp_confidence(score),
                        rule_id=rule.label,
                        position=position,
                    )
                )

        logger.debug("Company extraction produced %d candidates", len(candidates))
        return candidates
