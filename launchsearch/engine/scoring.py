"""Relevance scoring for search candidates.

total = field_match * 0.6 + usage_weight * 0.4

A perfect usage weight adds at most 0.4 on top of the text match, and an item
that does not match the text at all is never a candidate.
"""

import math
from typing import Any, Iterable, List, Optional, Sequence, TypeVar

from .classifier import normalize_query


EXACT_MATCH = 1.0
PREFIX_MATCH = 0.92
SUBSTRING_MATCH = 0.74

TEXT_WEIGHT = 0.6
USAGE_WEIGHT = 0.4

T = TypeVar('T')


def field_score(query: str, fields: Iterable[Optional[str]]) -> float:
    """
    Best match of the query against any of the fields.

    Args:
        query: Raw query text
        fields: Candidate fields (labels, identifiers); None entries are skipped

    Returns:
        One of 0, 0.74, 0.92 or 1.0
    """
    q = normalize_query(query)
    if not q:
        return 0.0

    best = 0.0
    for value in fields:
        if not value:
            continue
        value = value.lower()
        if value == q:
            best = max(best, EXACT_MATCH)
        elif value.startswith(q):
            best = max(best, PREFIX_MATCH)
        elif q in value:
            best = max(best, SUBSTRING_MATCH)

    return best


def clamp_weight(weight: Any) -> float:
    """Coerce a stored weight into [0, 1]; anything unusable counts as 0."""
    if not weight:
        return 0.0
    try:
        value = float(weight)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def total_score(match_score: float, weight: Any) -> float:
    return match_score * TEXT_WEIGHT + clamp_weight(weight) * USAGE_WEIGHT


def rank(candidates: Sequence[T]) -> List[T]:
    """Order candidates by ``total_score`` descending, keeping source order on ties."""
    return sorted(candidates, key=lambda c: c.total_score, reverse=True)


def maybe_reverse(items: Sequence[T], reverse: bool) -> List[T]:
    """Bottom-up display flips the list as a whole; scores are untouched."""
    if not reverse:
        return list(items)
    return list(reversed(items))
