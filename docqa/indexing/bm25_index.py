from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from rank_bm25 import BM25Okapi

from docqa.core.types import Chunk


# Standard Okapi values: k1 saturates term frequency, b controls length normalization.
BM25_K1 = 1.5
BM25_B = 0.75

# Tokens this short are mostly stopwords and initials.
MIN_TOKEN_LEN = 3

_NON_WORD_RE = re.compile(r"[^a-z0-9]+")


def simple_tokenize(s: str) -> List[str]:
    return [t for t in _NON_WORD_RE.sub(" ", s.lower()).split() if len(t) >= MIN_TOKEN_LEN]


class LuceneBM25(BM25Okapi):
    """BM25Okapi with the non-negative idf ln((N - n + 0.5) / (n + 0.5) + 1).

    Okapi's idf goes negative for terms in more than half of the documents,
    which matters here because the corpus is a small candidate set.
    """

    def _calc_idf(self, nd: Dict[str, int]) -> None:
        n = self.corpus_size
        for word, freq in nd.items():
            self.idf[word] = math.log((n - freq + 0.5) / (freq + 0.5) + 1)


@dataclass
class BM25Index:
    chunks: List[Chunk]
    tokenized: List[List[str]]
    bm25: Optional[LuceneBM25]

    @classmethod
    def build(cls, chunks: Sequence[Chunk], k1: float = BM25_K1, b: float = BM25_B) -> "BM25Index":
        """Index exactly the chunks given; idf and avg length come from this set only."""
        chunks = list(chunks)
        tokenized = [simple_tokenize(c.text) for c in chunks]

        # avgdl would be zero (or undefined) without any tokens
        if not chunks or not any(tokenized):
            return cls(chunks=chunks, tokenized=tokenized, bm25=None)

        return cls(chunks=chunks, tokenized=tokenized, bm25=LuceneBM25(tokenized, k1=k1, b=b))

    def scores(self, query: str) -> List[float]:
        """One score per indexed chunk, in index order."""
        if self.bm25 is None:
            return [0.0] * len(self.chunks)
        q_tokens = simple_tokenize(query)
        if not q_tokens:
            return [0.0] * len(self.chunks)
        return [float(s) for s in self.bm25.get_scores(q_tokens)]

    def search(self, query: str, top_k: Optional[int] = None) -> List[Tuple[Chunk, float]]:
        scores = self.scores(query)
        # sorted() is stable, so equal scores keep index order
        ranked = sorted(range(len(scores)), key=lambda i: scores[i], reverse=True)
        if top_k is not None:
            ranked = ranked[:top_k]
        return [(self.chunks[i], scores[i]) for i in ranked]
