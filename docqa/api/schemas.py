from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from docqa.core.events import FinalAnswer, IngestRequest, PartialAnswer, QueryError, SourcesReady
from docqa.core.types import ChunkInput, DocumentInfo, ScoredCandidate


class AskRequest(BaseModel):
    query: str
    debug: bool = False


class Citation(BaseModel):
    source_id: str
    doc_id: str
    chunk_id: str
    page: Optional[int] = None


class Source(BaseModel):
    source_id: str
    doc_id: str
    chunk_id: str
    page: Optional[int] = None
    text: str
    combined_score: float

    @classmethod
    def from_candidate(cls, c: ScoredCandidate) -> "Source":
        return cls(
            source_id=c.source_id or "",
            doc_id=c.chunk.doc_id,
            chunk_id=c.chunk_id,
            page=c.chunk.page,
            text=c.text,
            combined_score=c.combined_score,
        )


class AskResponse(BaseModel):
    answer: str
    sources: List[Source]
    citations: List[Citation]
    debug: Optional[Dict[str, Any]] = None


class ChunkIn(BaseModel):
    text: str
    page: Optional[int] = None
    chunk_index: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_input(self) -> ChunkInput:
        meta = dict(self.metadata)
        if self.page is not None:
            meta["page"] = self.page
        if self.chunk_index is not None:
            meta["chunk_index"] = self.chunk_index
        return ChunkInput(text=self.text, metadata=meta)


class IngestIn(BaseModel):
    doc_id: str
    chunks: List[ChunkIn]

    def to_request(self) -> IngestRequest:
        return IngestRequest(doc_id=self.doc_id, chunks=tuple(c.to_input() for c in self.chunks))


class IngestResponse(BaseModel):
    doc_id: str
    chunk_count: int


class DeleteResponse(BaseModel):
    doc_id: str
    deleted_chunks: int


def debug_items(sources: List[ScoredCandidate]) -> List[Dict[str, Any]]:
    return [
        {
            "source_id": s.source_id,
            "chunk_id": s.chunk_id,
            "semantic_score": s.semantic_score,
            "bm25_score": s.bm25_score,
            "fused_score": s.fused_score,
            "combined_score": s.combined_score,
            "semantic_rank": s.semantic_rank,
            "bm25_rank": s.bm25_rank,
            "preview": (s.text or "")[:160],
        }
        for s in sources
    ]


def event_to_dict(event: object) -> Dict[str, Any]:
    """JSON-ready form of a query event (embeddings left out)."""
    if isinstance(event, SourcesReady):
        return {"kind": event.kind, "sources": [Source.from_candidate(s).model_dump() for s in event.sources]}
    if isinstance(event, PartialAnswer):
        return {"kind": event.kind, "text": event.text}
    if isinstance(event, FinalAnswer):
        return {
            "kind": event.kind,
            "text": event.text,
            "sources": [Source.from_candidate(s).model_dump() for s in event.sources],
        }
    if isinstance(event, QueryError):
        return {"kind": event.kind, "message": event.message}
    raise TypeError(f"Not a query event: {type(event).__name__}")


class DocumentOut(BaseModel):
    doc_id: str
    chunk_count: int
    ingested_at: Optional[datetime] = None

    @classmethod
    def from_info(cls, d: DocumentInfo) -> "DocumentOut":
        return cls(doc_id=d.doc_id, chunk_count=d.chunk_count, ingested_at=d.ingested_at)
