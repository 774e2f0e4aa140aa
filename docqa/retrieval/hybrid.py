from __future__ import annotations

import logging
from typing import List, Literal, Sequence

from docqa.core.types import Chunk, Query, RetrievedItem, ScoredCandidate
from docqa.retrieval.bm25_retriever import BM25Retriever
from docqa.retrieval.diversity import DEFAULT_TOP_K, MMR_LAMBDA, assign_source_ids, mmr_rerank
from docqa.retrieval.fusion import RRFWeights, weighted_rrf_fuse
from docqa.retrieval.query_intent import positional_boost
from docqa.retrieval.semantic import SemanticScorer

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_POOL = 20


class HybridRetriever:
    """Semantic top-N -> BM25 over the same N -> RRF -> MMR -> S1..Sk labels."""

    def __init__(
        self,
        weights: RRFWeights = RRFWeights(),
        candidate_pool_size: int = DEFAULT_CANDIDATE_POOL,
        final_top_k: int = DEFAULT_TOP_K,
        mmr_lambda: float = MMR_LAMBDA,
        bm25_scope: Literal["candidates", "corpus"] = "candidates",
        fusion_weight: float = 1.0,
    ):
        self.weights = weights
        self.candidate_pool_size = candidate_pool_size
        self.final_top_k = final_top_k
        self.mmr_lambda = mmr_lambda
        self.bm25_scope = bm25_scope
        self.fusion_weight = fusion_weight

    def rank_semantic(self, query: Query, chunks: Sequence[Chunk]) -> List[RetrievedItem]:
        semantic = SemanticScorer(boost_fn=positional_boost if query.is_identity else None)
        return semantic.retrieve(query.vector, chunks, top_k=self.candidate_pool_size)

    def rank_lexical(self, query: Query, semantic: List[RetrievedItem], chunks: Sequence[Chunk]) -> List[RetrievedItem]:
        bm25 = BM25Retriever(corpus=chunks if self.bm25_scope == "corpus" else None)
        # lexical scoring uses the raw text, not the expansion
        return bm25.retrieve(query.raw_text, [item.chunk for item in semantic])

    def fuse(self, semantic: List[RetrievedItem], lexical: List[RetrievedItem]) -> List[ScoredCandidate]:
        logger.debug("Fusing %d semantic candidates, %d with lexical hits", len(semantic), len(lexical))
        return weighted_rrf_fuse(semantic, lexical, self.weights, fusion_weight=self.fusion_weight)

    def diversify(self, fused: List[ScoredCandidate]) -> List[ScoredCandidate]:
        diverse = mmr_rerank(fused, top_k=self.final_top_k, lambda_param=self.mmr_lambda)
        return assign_source_ids(diverse)

    def score_candidates(self, query: Query, chunks: Sequence[Chunk]) -> List[ScoredCandidate]:
        """Fused candidates sorted by combined score, before diversification."""
        sem = self.rank_semantic(query, chunks)
        return self.fuse(sem, self.rank_lexical(query, sem, chunks))

    def retrieve(self, query: Query, chunks: Sequence[Chunk]) -> List[ScoredCandidate]:
        return self.diversify(self.score_candidates(query, chunks))
