"""Shared building blocks for the field extractors.

Extractors describe their patterns as a table of ``PatternRule`` entries,
produce ``FieldCandidate`` values from the matches, and pick a winner with
``arbitrate``.
"""

import re
from dataclasses import dataclass

MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 100


@dataclass(frozen=True)
class PatternRule:
    """A labelled regular expression with its confidence contribution.

    Args:
        label: Identifier recorded on every candidate the rule produces.
        pattern: Compiled regular expression.
        confidence_delta: Points added to (or used as) the base confidence.
    """

    label: str
    pattern: re.Pattern[str]
    confidence_delta: int


@dataclass(frozen=True)
class FieldCandidate:
    """A provisional value for one field, prior to arbitration."""

    value: object
    confidence: int
    rule_id: str
    position: int


def clamp_confidence(score: float) -> int:
    """Round and clamp a score into [0, 100]."""
    return int(max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, round(score))))


def compile_rule(label: str, pattern: str, confidence_delta: int, flags: int = 0) -> PatternRule:
    return PatternRule(label, re.compile(pattern, flags), confidence_delta)


def arbitrate(candidates: list[FieldCandidate]) -> FieldCandidate | None:
    """Select the winning candidate for a field.

    The strictly highest confidence wins; ties go to the candidate found
    earliest in the text, then to the rule listed first.

    Returns:
        The winner, or ``None`` when there are no candidates.
    """
    if not candidates:
        return None
    return min(candidates, key=lambda c: (-c.confidence, c.position))
