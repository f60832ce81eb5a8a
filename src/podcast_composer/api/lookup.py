"""Resolve notebook and episode profile references by id or fuzzy name.

Exact id matches win, then case-insensitive exact names, then the best
rapidfuzz score at or above the threshold.
"""

from typing import Protocol, TypeVar

from loguru import logger
from rapidfuzz import fuzz

log = logger.bind(stage="lookup")


class _Named(Protocol):
    id: str
    name: str


T = TypeVar("T", bound=_Named)


def score_candidates(candidates: list[T], query: str) -> list[tuple[T, float]]:
    """Score each candidate name against query. Returns pairs sorted descending."""
    log.debug(f"Scoring {len(candidates)} candidates against {query!r}")

    scored = [
        (c, round(fuzz.token_sort_ratio(query.lower(), c.name.lower()), 1))
        for c in candidates
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)

    if scored:
        best, score = scored[0]
        log.debug(f"Best match: {best.name!r} score={score:.0f}")

    return scored


def resolve(candidates: list[T], ref: str, threshold: int = 80) -> T | None:
    """Find the candidate referenced by id or name, or None."""
    ref = ref.strip()
    if not ref:
        return None

    for c in candidates:
        if c.id == ref:
            return c

    lowered = ref.lower()
    for c in candidates:
        if c.name.lower() == lowered:
            return c

    scored = score_candidates(candidates, ref)
    if scored and scored[0][1] >= threshold:
        return scored[0][0]

    log.debug(f"No candidate matched {ref!r} (threshold={threshold})")
    return None
