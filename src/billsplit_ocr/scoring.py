"""
Scoring primitives.

Every heuristic in the extractors returns ScoredCandidate values built with a
ScoreSheet, and a single reducer picks the winner. Keeping the reasons next to
the points makes each heuristic testable on its own and readable in debug logs.
"""

from dataclasses import dataclass
from typing import Generic, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ScoredCandidate(Generic[T]):
    candidate: T
    score: float
    reasons: Tuple[str, ...] = ()


class ScoreSheet:
    """Accumulates points with a reason for each adjustment."""

    def __init__(self, base: float = 0):
        self.score = base
        self.reasons: List[str] = []

    def add(self, points: float, reason: str) -> None:
        self.score += points
        self.reasons.append(f"{reason} ({points:+g})")

    def result(self, candidate: T) -> ScoredCandidate[T]:
        return ScoredCandidate(candidate, self.score, tuple(self.reasons))


def select_best(candidates: Iterable[ScoredCandidate[T]],
                min_score: Optional[float] = None) -> Optional[ScoredCandidate[T]]:
    """
    Highest score wins; the earliest candidate wins a tie.
    With min_score set, the winner must score strictly above it.
    """
    best = None
    for cand in candidates:
        if best is None or cand.score > best.score:
            best = cand
    if best is None:
        return None
    if min_score is not None and best.score <= min_score:
        return None
    return best
