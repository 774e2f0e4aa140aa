from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence

from docqa.core.types import ScoredCandidate
from docqa.retrieval.semantic import cosine_similarity


# 0.7 keeps relevance dominant; redundancy only wins against near-duplicates.
MMR_LAMBDA = 0.7
DEFAULT_TOP_K = 8


def mmr_rerank(
    candidates: Sequence[ScoredCandidate],
    top_k: int = DEFAULT_TOP_K,
    lambda_param: float = MMR_LAMBDA,
) -> List[ScoredCandidate]:
    """
    Maximal Marginal Relevance over candidates sorted by combined score.

    MMR(d) = lambda * combined(d) - (1 - lambda) * max_{s in selected} cos(d, s)

    Seeds with the top candidate, then greedily adds the best MMR score; ties
    go to the earlier candidate. Inputs no longer than top_k come back as is.
    """
    if len(candidates) <= top_k:
        return list(candidates)
    if top_k <= 0:
        return []

    pool = list(range(len(candidates)))
    seed = max(pool, key=lambda i: (candidates[i].combined_score, -i))
    selected = [seed]
    pool.remove(seed)

    # max similarity to the selected set, updated as each pick lands
    max_sim = {i: cosine_similarity(candidates[i].chunk.embedding, candidates[seed].chunk.embedding) for i in pool}

    while pool and len(selected) < top_k:
        best, best_val = pool[0], None
        for i in pool:
            val = lambda_param * candidates[i].combined_score - (1 - lambda_param) * max_sim[i]
            if best_val is None or val > best_val:
                best, best_val = i, val
        selected.append(best)
        pool.remove(best)
        for i in pool:
            sim = cosine_similarity(candidates[i].chunk.embedding, candidates[best].chunk.embedding)
            if sim > max_sim[i]:
                max_sim[i] = sim

    return [candidates[i] for i in selected]


def assign_source_ids(candidates: Sequence[ScoredCandidate]) -> List[ScoredCandidate]:
    """Label the final ranking S1..Sk; these are the only ids citations may use."""
    return [replace(c, source_id=f"S{i}") for i, c in enumerate(candidates, start=1)]
