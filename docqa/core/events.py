"""Requests accepted by the pipeline and the events it emits.

Each message kind is its own frozen dataclass carrying only the fields that kind
needs; ``kind`` is a literal tag so consumers can dispatch without inspecting
the payload shape.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Literal, Tuple, Union

from docqa.core.types import ChunkInput, ScoredCandidate


# --- requests -----------------------------------------------------------------

@dataclass(frozen=True)
class QueryRequest:
    text: str
    kind: Literal["query"] = "query"


@dataclass(frozen=True)
class IngestRequest:
    doc_id: str
    chunks: Tuple[ChunkInput, ...] = field(default_factory=tuple)
    kind: Literal["ingest"] = "ingest"


@dataclass(frozen=True)
class DeleteDocumentRequest:
    doc_id: str
    kind: Literal["delete_document"] = "delete_document"


# --- query events -------------------------------------------------------------

@dataclass(frozen=True)
class SourcesReady:
    sources: List[ScoredCandidate]
    kind: Literal["sources_ready"] = "sources_ready"


@dataclass(frozen=True)
class PartialAnswer:
    text: str
    kind: Literal["partial_answer"] = "partial_answer"


@dataclass(frozen=True)
class FinalAnswer:
    text: str
    sources: List[ScoredCandidate]
    kind: Literal["final_answer"] = "final_answer"


@dataclass(frozen=True)
class QueryError:
    message: str
    kind: Literal["error"] = "error"


QueryEvent = Union[SourcesReady, PartialAnswer, FinalAnswer, QueryError]


# --- ingestion events ---------------------------------------------------------

@dataclass(frozen=True)
class IngestProgress:
    doc_id: str
    percent: float
    kind: Literal["ingest_progress"] = "ingest_progress"


@dataclass(frozen=True)
class IngestDone:
    doc_id: str
    chunk_count: int
    kind: Literal["ingest_done"] = "ingest_done"


@dataclass(frozen=True)
class IngestError:
    doc_id: str
    message: str
    kind: Literal["ingest_error"] = "ingest_error"


IngestEvent = Union[IngestProgress, IngestDone, IngestError]

EventSink = Callable[[object], None]


def is_terminal(event: object) -> bool:
    return isinstance(event, (FinalAnswer, QueryError, IngestDone, IngestError))
