"""Transaction date extraction from OCR text.

Supports day-first numeric dates (``/``, ``-`` or ``.`` separators, four
or two digit years), ISO dates and dates written with a French or English
month name.
"""

import datetime
import re
from collections.abc import Callable
from dataclasses import dataclass

from invoice_ocr.utils.config import ExtractionConfig
from invoice_ocr.utils.logger import get_logger

from .candidates import FieldCandidate, clamp_confidence

logger = get_logger(__name__)

NUMERIC_BASE_CONFIDENCE = 50
TEXTUAL_MONTH_BONUS = 20
RECENT_DATE_BONUS = 20
KEYWORD_BONUS = 15
KEYWORD_WINDOW = 50
TWO_DIGIT_YEAR_PIVOT = 50

MONTHS: dict[str, int] = {
    "janvier": 1,
    "février": 2,
    "fevrier": 2,
    "mars": 3,
    "avril": 4,
    "mai": 5,
    "juin": 6,
    "juillet": 7,
    "août": 8,
    "aout": 8,
    "septembre": 9,
    "octobre": 10,
    "novembre": 11,
    "décembre": 12,
    "decembre": 12,
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_MONTH_ALTERNATION = "|".join(sorted(MONTHS, key=len, reverse=True))

_DATE_KEYWORDS = re.compile(
    r"\b(?:date|invoice|issued|of\s+the|facture|émis|émise|émission|établi|du|le)\b",
    re.IGNORECASE,
)


def pivot_year(year: int) -> int:
    """Expand a two digit year: below 50 is 20xx, otherwise 19xx."""
    if year >= 100:
        return year
    return 2000 + year if year < TWO_DIGIT_YEAR_PIVOT else 1900 + year


def _day_month_year(m: re.Match[str]) -> tuple[int, int, int]:
    return int(m.group("day")), int(m.group("month")), int(m.group("year"))


def _textual(m: re.Match[str]) -> tuple[int, int, int]:
    return int(m.group("day")), MONTHS[m.group("month").lower()], int(m.group("year"))


@dataclass(frozen=True)
class DateRule:
    """A date pattern, its base confidence and how to read its groups."""

    label: str
    pattern: re.Pattern[str]
    confidence_delta: int
    parse: Callable[[re.Match[str]], tuple[int, int, int]]


DATE_RULES: list[DateRule] = [
    DateRule(
        "dmy_numeric",
        re.compile(r"\b(?P<day>\d{1,2})(?P<sep>[/.\-])(?P<month>\d{1,2})(?P=sep)(?P<year>\d{4})\b"),
        NUMERIC_BASE_CONFIDENCE,
        _day_month_year,
    ),
    DateRule(
        "iso",
        re.compile(r"\b(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})\b"),
        NUMERIC_BASE_CONFIDENCE,
        _day_month_year,
    ),
    DateRule(
        "dmy_short",
        re.compile(r"\b(?P<day>\d{1,2})(?P<sep>[/.\-])(?P<month>\d{1,2})(?P=sep)(?P<year>\d{2})\b"),
        NUMERIC_BASE_CONFIDENCE,
        _day_month_year,
    ),
    DateRule(
        "dmy_textual",
        re.compile(
            rf"\b(?P<day>\d{{1,2}})(?:er|st|nd|rd|th)?\s+(?P<month>{_MONTH_ALTERNATION})\.?,?\s+(?P<year>\d{{4}})\b",
            re.IGNORECASE,
        ),
        NUMERIC_BASE_CONFIDENCE + TEXTUAL_MONTH_BONUS,
        _textual,
    ),
    DateRule(
        "mdy_textual",
        re.compile(
            rf"\b(?P<month>{_MONTH_ALTERNATION})\.?\s+(?P<day>\d{{1,2}})(?:st|nd|rd|th)?,?\s+(?P<year>\d{{4}})\b",
            re.IGNORECASE,
        ),
        NUMERIC_BASE_CONFIDENCE + TEXTUAL_MONTH_BONUS,
        _textual,
    ),
]


class DateExtractor:
    """Extracts plausible invoice dates from text.

    Args:
        config: Extraction configuration holding the year window and the
            number of days that count as "recent".
        today: Reference date for the recency bonus. Defaults to the
            current date at extraction time.
    """

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        today: datetime.date | None = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.today = today
        self.rules = DATE_RULES

    def extract(self, text: str) -> list[FieldCandidate]:
        """Return every valid date found in ``text`` with its confidence."""
        today = self.today or datetime.date.today()
        candidates: list[FieldCandidate] = []

        for rule in self.rules:
            for match in rule.pattern.finditer(text):
                day, month, year = rule.parse(match)
                parsed = self._validate(day, month, pivot_year(year))
                if parsed is None:
                    continue

                score = rule.confidence_delta
                if abs((today - parsed).days) <= self.config.recent_date_days:
                    score += RECENT_DATE_BONUS
                if self._has_keyword_nearby(text, match):
                    score += KEYWORD_BONUS

                candidates.append(
                    FieldCandidate(
                        value=parsed,
                        confidence=clamp_confidence(score),
                        rule_id=rule.label,
                        position=match.start(),
                    )
                )

        logger.debug("Date extraction produced %d candidates", len(candidates))
        return candidates

    def _validate(self, day: int, month: int, year: int) -> datetime.date | None:
        if not (1 <= day <= 31 and 1 <= month <= 12):
            return None
        if not self.config.date_year_min <= year <= self.config.date_year_max:
            return None
        try:
            return datetime.date(year, month, day)
        except ValueError:
            return None

    @staticmethod
    def _has_keyword_nearby(text: str, match: re.Match[str]) -> bool:
        before = text[max(0, match.start() - KEYWORD_WINDOW) : match.start()]
        after = text[match.end() : match.end() + KEYWORD_WINDOW]
        return _DATE_KEYWORDS.search(before) is not None or (
            _DATE_KEYWORDS.search(after) is not None
        )
