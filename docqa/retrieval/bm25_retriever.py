from __future__ import annotations

from typing import List, Optional, Sequence

from docqa.core.types import Chunk, RetrievedItem
from docqa.indexing.bm25_index import BM25Index


class BM25Retriever:
    def __init__(self, corpus: Optional[Sequence[Chunk]] = None):
        """
        corpus: chunks whose statistics (idf, average length) score the candidates.
        None scopes the statistics to whatever candidate set is passed in.
        """
        self.corpus_index = BM25Index.build(corpus) if corpus is not None else None

    def retrieve(self, query: str, candidates: Sequence[Chunk]) -> List[RetrievedItem]:
        """Rank the candidates lexically. Zero-score chunks are left out of the ranking."""
        if self.corpus_index is None:
            scored = BM25Index.build(candidates).search(query)
        else:
            wanted = {c.chunk_id for c in candidates}
            scored = [(c, s) for c, s in self.corpus_index.search(query) if c.chunk_id in wanted]

        items: List[RetrievedItem] = []
        for chunk, score in scored:
            if score <= 0.0:
                continue
            items.append(RetrievedItem(chunk=chunk, source="bm25", rank=len(items) + 1, score=score))
        return items
