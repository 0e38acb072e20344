"""
Label similarity for brand/model equivalence matching.

Labels are compared after normalization (uppercase, accents removed,
only A-Z and 0-9 kept):

1. exact match -> 1.0
2. one label contains the other -> 0.8
3. otherwise Jaccard index over the sets of distinct characters

A label that normalizes to nothing scores 0.0 against any non-empty label.

The character-set score ignores order and repetition, so short or
anagram-like labels can score high. Thresholds stay configurable through
settings so results can be checked against historical data.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from catalog.models import ConfidenceLevel

EXACT_SCORE = 1.0
CONTAINMENT_SCORE = 0.8

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def normalize_label(text: Optional[str]) -> str:
    """Uppercase, strip accents and drop everything but letters and digits."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.upper())
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub("", without_marks)


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """Score two labels in [0, 1]. Symmetric and deterministic."""
    norm_a = normalize_label(a)
    norm_b = normalize_label(b)

    if norm_a == norm_b:
        return EXACT_SCORE

    # "" is a substring of everything
    if not norm_a or not norm_b:
        return 0.0

    if norm_a in norm_b or norm_b in norm_a:
        return CONTAINMENT_SCORE

    chars_a = set(norm_a)
    chars_b = set(norm_b)
    return len(chars_a & chars_b) / len(chars_a | chars_b)


@dataclass(frozen=True)
class MatchThresholds:
    """Score cut-offs for proposing and grading equivalences."""

    match: float = 0.70
    medium: float = 0.85
    high: float = 0.95

    @classmethod
    def from_settings(cls) -> "MatchThresholds":
        return cls(
            match=getattr(settings, "EQUIVALENCE_MATCH_THRESHOLD", cls.match),
            medium=getattr(settings, "EQUIVALENCE_MEDIUM_THRESHOLD", cls.medium),
            high=getattr(settings, "EQUIVALENCE_HIGH_THRESHOLD", cls.high),
        )


def confidence_for_score(score: float, thresholds: MatchThresholds) -> Optional[str]:
    """Confidence tier for a score, or None when it is below the match threshold."""
    if score < thresholds.match:
        return None
    if score >= thresholds.high:
        return ConfidenceLevel.HIGH
    if score >= thresholds.medium:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW
