from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from docqa.core.types import Chunk, RetrievedItem, ScoredCandidate


# Standard RRF constant from Cormack et al.; damps the gap between adjacent top ranks.
RRF_K = 60


@dataclass(frozen=True)
class RRFWeights:
    k: int = RRF_K
    w_semantic: float = 1.0
    w_bm25: float = 1.0


def _rrf_contribution(rank: int, k: int) -> float:
    # rank is 1-based. Higher rank number => smaller contribution
    return 1.0 / (k + rank)


def reciprocal_rank_fusion(
    rankings: Sequence[Sequence[Tuple[str, int]]],
    k: int = RRF_K,
    weights: Optional[Sequence[float]] = None,
) -> List[Tuple[str, float]]:
    """
    Fuse rankings of (id, rank) pairs: score(id) = sum of w / (k + rank).

    Scores are accumulated ranking by ranking, in list order, so the float sums
    and the first-seen order used for ties are reproducible. Output is sorted by
    score descending; equal scores keep first-seen order.
    """
    if weights is not None and len(weights) != len(rankings):
        raise ValueError("Length of weights must match number of rankings")

    scores: Dict[str, float] = {}
    for idx, ranking in enumerate(rankings):
        w = 1.0 if weights is None else weights[idx]
        for item_id, rank in ranking:
            scores[item_id] = scores.get(item_id, 0.0) + w * _rrf_contribution(rank, k)

    return sorted(scores.items(), key=lambda x: x[1], reverse=True)


def weighted_rrf_fuse(
    semantic: List[RetrievedItem],
    bm25: List[RetrievedItem],
    weights: RRFWeights,
    fusion_weight: float = 1.0,
) -> List[ScoredCandidate]:
    """
    Merge semantic + BM25 rankings over the same candidate set.

    RRF(d) = ws/(k+rank_semantic(d)) + wb/(k+rank_bm25(d))
    combined(d) = semantic_score(d) + fusion_weight * RRF(d)

    The combined score stays on the cosine scale so the confidence gate can use
    absolute thresholds, while lexical agreement reorders near-ties. Result is
    sorted by combined score descending, ties in semantic order.
    """
    seen: Dict[str, Tuple[Chunk, Optional[RetrievedItem], Optional[RetrievedItem]]] = {}

    for item in semantic:
        cid = item.chunk.chunk_id
        if cid not in seen:
            seen[cid] = (item.chunk, item, None)

    for item in bm25:
        cid = item.chunk.chunk_id
        if cid not in seen:
            seen[cid] = (item.chunk, None, item)
        else:
            chunk, s_item, b_item = seen[cid]
            seen[cid] = (chunk, s_item, b_item or item)

    fused_scores = dict(
        reciprocal_rank_fusion(
            [
                [(i.chunk.chunk_id, i.rank) for i in semantic],
                [(i.chunk.chunk_id, i.rank) for i in bm25],
            ],
            k=weights.k,
            weights=[weights.w_semantic, weights.w_bm25],
        )
    )

    fused: List[ScoredCandidate] = []
    for chunk_id, (chunk, s_item, b_item) in seen.items():
        sem = (s_item.score or 0.0) if s_item else 0.0
        rrf = fused_scores.get(chunk_id, 0.0)
        fused.append(
            ScoredCandidate(
                chunk=chunk,
                semantic_score=sem,
                bm25_score=(b_item.score or 0.0) if b_item else 0.0,
                fused_score=rrf,
                combined_score=sem + fusion_weight * rrf,
                semantic_rank=s_item.rank if s_item else None,
                bm25_rank=b_item.rank if b_item else None,
            )
        )

    fused.sort(key=lambda x: x.combined_score, reverse=True)
    return fused
