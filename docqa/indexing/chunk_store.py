from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from docqa.core.types import Chunk, DocumentInfo

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ChunkStore(Protocol):
    """Persisted chunks. ``generation`` changes after every successful write."""

    @property
    def generation(self) -> int: ...

    def get_all(self) -> List[Chunk]: ...

    def put(self, chunk: Chunk) -> None: ...

    def put_many(self, chunks: Iterable[Chunk]) -> None: ...

    def delete_by_doc(self, doc_id: str) -> int: ...

    def replace_document(self, doc_id: str, chunks: List[Chunk]) -> None: ...

    def list_documents(self) -> List[DocumentInfo]: ...


class InMemoryChunkStore:
    def __init__(self, chunks: Optional[Iterable[Chunk]] = None):
        self._chunks: Dict[str, Chunk] = {}
        self._written_at: Dict[str, datetime] = {}
        self._generation = 0
        self._lock = threading.Lock()
        if chunks:
            self.put_many(chunks)

    @property
    def generation(self) -> int:
        return self._generation

    def get_all(self) -> List[Chunk]:
        with self._lock:
            return list(self._chunks.values())

    def put(self, chunk: Chunk) -> None:
        self.put_many([chunk])

    def put_many(self, chunks: Iterable[Chunk]) -> None:
        with self._lock:
            now = _now()
            for chunk in chunks:
                self._chunks[chunk.chunk_id] = chunk
                self._written_at[chunk.chunk_id] = now
            self._generation += 1

    def delete_by_doc(self, doc_id: str) -> int:
        with self._lock:
            doomed = [cid for cid, c in self._chunks.items() if c.doc_id == doc_id]
            for cid in doomed:
                del self._chunks[cid]
                del self._written_at[cid]
            self._generation += 1
        return len(doomed)

    def replace_document(self, doc_id: str, chunks: List[Chunk]) -> None:
        with self._lock:
            for cid in [cid for cid, c in self._chunks.items() if c.doc_id == doc_id]:
                del self._chunks[cid]
                del self._written_at[cid]
            now = _now()
            for chunk in chunks:
                self._chunks[chunk.chunk_id] = chunk
                self._written_at[chunk.chunk_id] = now
            self._generation += 1

    def list_documents(self) -> List[DocumentInfo]:
        with self._lock:
            counts: Dict[str, int] = {}
            latest: Dict[str, datetime] = {}
            for cid, c in self._chunks.items():
                counts[c.doc_id] = counts.get(c.doc_id, 0) + 1
                written = self._written_at[cid]
                if c.doc_id not in latest or written > latest[c.doc_id]:
                    latest[c.doc_id] = written
        return [DocumentInfo(doc_id=d, chunk_count=counts[d], ingested_at=latest[d]) for d in sorted(counts)]


_SCHEMA = """
CREATE TABLE IF NOT EXISTS chunks (
  chunk_id    VARCHAR(255) PRIMARY KEY,
  doc_id      VARCHAR(255) NOT NULL,
  position    INTEGER NOT NULL,
  text        TEXT NOT NULL,
  metadata    TEXT NOT NULL,
  embedding   TEXT NOT NULL,
  ingested_at VARCHAR(64) NOT NULL
)
"""

_INDEX = "CREATE INDEX IF NOT EXISTS ix_chunks_doc_id ON chunks (doc_id)"

# One row; every write bumps it in the same transaction as the write itself.
_META_SCHEMA = """
CREATE TABLE IF NOT EXISTS store_meta (
  id          INTEGER PRIMARY KEY,
  generation  INTEGER NOT NULL
)
"""

_META_SEED = "INSERT INTO store_meta (id, generation) VALUES (1, 0) ON CONFLICT (id) DO NOTHING"


class SQLChunkStore:
    """Flat chunk table; embeddings are JSON arrays scanned in full by the caller.

    ``position`` is the chunk's ordinal inside its document and, together with
    doc_id, fixes the storage order that ranking ties fall back to.

    The generation counter is a row in ``store_meta``, so every process sharing
    the database sees writes made by the others.
    """

    def __init__(self, dsn: str):
        self.engine: Engine = create_engine(dsn, pool_pre_ping=True, future=True)
        with self.engine.begin() as conn:
            conn.execute(text(_SCHEMA))
            conn.execute(text(_INDEX))
            conn.execute(text(_META_SCHEMA))
            conn.execute(text(_META_SEED))

    @property
    def generation(self) -> int:
        with self.engine.connect() as conn:
            return int(conn.execute(text("SELECT generation FROM store_meta WHERE id = 1")).scalar_one())

    def get_all(self) -> List[Chunk]:
        sql = text("""
        SELECT chunk_id, doc_id, text, metadata, embedding
        FROM chunks
        ORDER BY doc_id, position, chunk_id;
        """)
        out: List[Chunk] = []
        with self.engine.connect() as conn:
            rows = conn.execute(sql).mappings().all()
            for r in rows:
                out.append(
                    Chunk(
                        chunk_id=r["chunk_id"],
                        doc_id=r["doc_id"],
                        text=r["text"],
                        metadata=json.loads(r["metadata"] or "{}"),
                        embedding=[float(x) for x in json.loads(r["embedding"] or "[]")],
                    )
                )
        return out

    def put(self, chunk: Chunk) -> None:
        self.put_many([chunk])

    def put_many(self, chunks: Iterable[Chunk]) -> None:
        """Upsert all chunks in one transaction; nothing is written if any row fails."""
        q = text("""
        INSERT INTO chunks (chunk_id, doc_id, position, text, metadata, embedding, ingested_at)
        VALUES (:chunk_id, :doc_id, :position, :text, :metadata, :embedding, :ingested_at)
        ON CONFLICT (chunk_id) DO UPDATE SET
          doc_id = EXCLUDED.doc_id,
          position = EXCLUDED.position,
          text = EXCLUDED.text,
          metadata = EXCLUDED.metadata,
          embedding = EXCLUDED.embedding,
          ingested_at = EXCLUDED.ingested_at;
        """)
        now = _now()
        rows = [_row(c, now) for c in chunks]
        if not rows:
            return
        with self.engine.begin() as conn:
            conn.execute(q, rows)
            _bump(conn)
        logger.debug("Stored %d chunks", len(rows))

    def delete_by_doc(self, doc_id: str) -> int:
        with self.engine.begin() as conn:
            res = conn.execute(text("DELETE FROM chunks WHERE doc_id = :doc_id"), {"doc_id": doc_id})
            _bump(conn)
        return int(res.rowcount or 0)

    def replace_document(self, doc_id: str, chunks: List[Chunk]) -> None:
        """Swap a document's chunks atomically."""
        q = text("""
        INSERT INTO chunks (chunk_id, doc_id, position, text, metadata, embedding, ingested_at)
        VALUES (:chunk_id, :doc_id, :position, :text, :metadata, :embedding, :ingested_at);
        """)
        now = _now()
        with self.engine.begin() as conn:
            conn.execute(text("DELETE FROM chunks WHERE doc_id = :doc_id"), {"doc_id": doc_id})
            if chunks:
                conn.execute(q, [_row(c, now) for c in chunks])
            _bump(conn)

    def list_documents(self) -> List[DocumentInfo]:
        sql = text("""
        SELECT doc_id, COUNT(*) AS chunk_count, MAX(ingested_at) AS ingested_at
        FROM chunks
        GROUP BY doc_id
        ORDER BY doc_id;
        """)
        with self.engine.connect() as conn:
            rows = conn.execute(sql).mappings().all()
        return [
            DocumentInfo(
                doc_id=r["doc_id"],
                chunk_count=int(r["chunk_count"]),
                ingested_at=datetime.fromisoformat(r["ingested_at"]) if r["ingested_at"] else None,
            )
            for r in rows
        ]


def _bump(conn: Connection) -> None:
    conn.execute(text("UPDATE store_meta SET generation = generation + 1 WHERE id = 1"))


def _row(chunk: Chunk, ingested_at: datetime) -> Dict[str, Any]:
    return {
        "chunk_id": chunk.chunk_id,
        "doc_id": chunk.doc_id,
        "position": _position(chunk),
        "text": chunk.text,
        "metadata": _to_json(chunk.metadata),
        "embedding": _to_json(list(chunk.embedding)),
        # ISO-8601 in UTC sorts lexically, which MAX() relies on
        "ingested_at": ingested_at.isoformat(),
    }


def _position(chunk: Chunk) -> int:
    # ids look like "<doc_id>-<ordinal>"
    tail = chunk.chunk_id.rsplit("-", 1)[-1]
    if tail.isdigit():
        return int(tail)
    return chunk.chunk_index or 0


def _to_json(d: Any) -> str:
    return json.dumps(d, ensure_ascii=False)
