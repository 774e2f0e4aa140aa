from __future__ import annotations

from dataclasses import dataclass
from typing import List

from docqa.core.types import Query, ScoredCandidate


# Identity questions ("name?") barely overlap anything semantically; the
# positional heuristics carry them, so almost any hit is allowed through.
IDENTITY_THRESHOLD = 0.01
# Short queries embed vaguely and score low even when the answer is present.
SHORT_QUERY_THRESHOLD = 0.08
DEFAULT_THRESHOLD = 0.18
SHORT_QUERY_MAX_WORDS = 3


@dataclass(frozen=True)
class GateResult:
    top_score: float
    threshold: float

    @property
    def passed(self) -> bool:
        return self.top_score >= self.threshold


def confidence_threshold(query: Query) -> float:
    if query.is_identity:
        return IDENTITY_THRESHOLD
    if query.word_count <= SHORT_QUERY_MAX_WORDS:
        return SHORT_QUERY_THRESHOLD
    return DEFAULT_THRESHOLD


def gate(query: Query, sources: List[ScoredCandidate]) -> GateResult:
    top = sources[0].combined_score if sources else float("-inf")
    return GateResult(top_score=top, threshold=confidence_threshold(query))
