from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import numpy as np

from docqa.core.errors import EmbeddingDimensionError
from docqa.core.types import Chunk, RetrievedItem


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| |b|); a zero vector on either side gives 0.0."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def cosine_scores(query_vector: Sequence[float], chunks: Sequence[Chunk]) -> List[float]:
    """Similarity of every chunk to the query, in input order."""
    if not chunks:
        return []
    q = np.asarray(query_vector, dtype=np.float64)
    for c in chunks:
        if len(c.embedding) != q.shape[0]:
            raise EmbeddingDimensionError(expected=q.shape[0], found=len(c.embedding), chunk_id=c.chunk_id)

    m = np.asarray([c.embedding for c in chunks], dtype=np.float64)
    denom = np.linalg.norm(m, axis=1) * np.linalg.norm(q)
    dots = m @ q
    safe = np.where(denom == 0.0, 1.0, denom)
    return np.where(denom == 0.0, 0.0, dots / safe).tolist()


class SemanticScorer:
    def __init__(self, boost_fn: Optional[Callable[[Chunk], float]] = None):
        """
        boost_fn(chunk) -> float is added to the raw cosine before ranking.
        """
        self.boost_fn = boost_fn

    def retrieve(self, query_vector: Sequence[float], chunks: Sequence[Chunk], top_k: Optional[int] = None) -> List[RetrievedItem]:
        scores = cosine_scores(query_vector, chunks)
        if self.boost_fn is not None:
            scores = [s + self.boost_fn(c) for s, c in zip(scores, chunks)]

        # stable: equal scores keep storage order
        order = sorted(range(len(chunks)), key=lambda i: scores[i], reverse=True)
        if top_k is not None:
            order = order[:top_k]

        return [
            RetrievedItem(chunk=chunks[i], source="semantic", rank=rank, score=scores[i])
            for rank, i in enumerate(order, start=1)
        ]
