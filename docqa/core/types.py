from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Chunk:
    chunk_id: str
    doc_id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    embedding: List[float] = field(default_factory=list, repr=False)

    @property
    def page(self) -> Optional[int]:
        return _as_int(self.metadata.get("page"))

    @property
    def chunk_index(self) -> Optional[int]:
        return _as_int(self.metadata.get("chunk_index"))

    @property
    def is_document_start(self) -> bool:
        """First chunk of its document.

        Single-chunk pages carry no chunk_index, so page 1 without an index
        counts as the start as well.
        """
        page, idx = self.page, self.chunk_index
        if idx == 0:
            return page is None or page == 1
        return idx is None and page == 1

    @property
    def is_early_page_one(self) -> bool:
        # second chunk of page 1; the first one is covered by is_document_start
        return self.page == 1 and self.chunk_index == 1


def _as_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Query:
    raw_text: str
    expanded_text: str
    is_identity: bool = False
    vector: List[float] = field(default_factory=list, repr=False)

    @property
    def word_count(self) -> int:
        return len(self.raw_text.split())


@dataclass(frozen=True)
class RetrievedItem:
    chunk: Chunk
    source: str                 # "semantic" | "bm25"
    rank: int                   # 1-based rank in that list
    score: Optional[float] = None


@dataclass(frozen=True)
class ScoredCandidate:
    chunk: Chunk
    semantic_score: float
    bm25_score: float = 0.0
    fused_score: float = 0.0
    combined_score: float = 0.0
    semantic_rank: Optional[int] = None
    bm25_rank: Optional[int] = None
    source_id: Optional[str] = None   # S1..Sk, assigned after diversification

    @property
    def chunk_id(self) -> str:
        return self.chunk.chunk_id

    @property
    def text(self) -> str:
        return self.chunk.text


@dataclass(frozen=True)
class ChunkInput:
    """A pre-segmented piece of a document awaiting embedding."""
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentInfo:
    doc_id: str
    chunk_count: int
    ingested_at: Optional[datetime] = None
