from __future__ import annotations

import logging
from typing import List, Sequence

from docqa.core.errors import IngestionError
from docqa.core.events import EventSink, IngestDone, IngestError, IngestProgress, IngestRequest
from docqa.core.types import Chunk
from docqa.generation.llm import Embedder
from docqa.indexing.chunk_store import ChunkStore

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 5


def chunk_id(doc_id: str, position: int) -> str:
    # stable across re-ingestion of the same document
    return f"{doc_id}-{position}"


class Ingestor:
    """Embeds pre-segmented chunks and stores a document in a single write.

    Nothing is written until every chunk is embedded, so a failure leaves the
    previously stored version of the document (and every other one) untouched.
    """

    def __init__(self, store: ChunkStore, embedder: Embedder):
        self.store = store
        self.embedder = embedder

    def embed_chunks(self, request: IngestRequest, emit: EventSink) -> List[Chunk]:
        total = len(request.chunks)
        dim = None
        out: List[Chunk] = []
        for i, piece in enumerate(request.chunks):
            vec = [float(x) for x in self.embedder.embed(piece.text)]
            if dim is None:
                dim = len(vec)
            elif len(vec) != dim:
                raise IngestionError(request.doc_id, f"embedding dimension changed from {dim} to {len(vec)}")

            out.append(
                Chunk(
                    chunk_id=chunk_id(request.doc_id, i),
                    doc_id=request.doc_id,
                    text=piece.text,
                    metadata=dict(piece.metadata),
                    embedding=vec,
                )
            )
            if i % PROGRESS_EVERY == 0:
                emit(IngestProgress(doc_id=request.doc_id, percent=i / total * 100))
        return out

    def ingest(self, request: IngestRequest, emit: EventSink) -> bool:
        """Store one document; emits progress then exactly one IngestDone or IngestError."""
        try:
            if not request.chunks:
                raise IngestionError(request.doc_id, "document has no chunks")
            chunks = self.embed_chunks(request, emit)
            self.store.replace_document(request.doc_id, chunks)
        except Exception as exc:
            logger.exception("Ingestion of %s failed", request.doc_id)
            emit(IngestError(doc_id=request.doc_id, message=str(exc)))
            return False

        logger.info("Ingested %s: %d chunks", request.doc_id, len(chunks))
        emit(IngestProgress(doc_id=request.doc_id, percent=100.0))
        emit(IngestDone(doc_id=request.doc_id, chunk_count=len(chunks)))
        return True

    def ingest_many(self, requests: Sequence[IngestRequest], emit: EventSink) -> int:
        """Ingest documents one by one; a failure only affects its own document."""
        return sum(1 for r in requests if self.ingest(r, emit))
