from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import List, Literal, Optional, Union

from docqa.core.config import Settings
from docqa.core.errors import EmptyCorpusError, PreconditionError, QueryCancelled
from docqa.core.events import (
    DeleteDocumentRequest,
    EventSink,
    FinalAnswer,
    IngestRequest,
    PartialAnswer,
    QueryError,
    QueryRequest,
    SourcesReady,
)
from docqa.core.types import DocumentInfo, Query, ScoredCandidate
from docqa.generation.answerer import Answerer, fallback_answer
from docqa.generation.extractive import extract_name
from docqa.generation.gating import gate
from docqa.generation.llm import Embedder, Generator, SamplingConfig
from docqa.generation.prompting import CONTEXT_CHAR_BUDGET, NO_DOCUMENTS_MESSAGE
from docqa.indexing.chunk_store import ChunkStore
from docqa.ingestion.ingest_pipeline import Ingestor
from docqa.pipeline.cache import ChunkCache
from docqa.pipeline.stream import QueryStream
from docqa.retrieval.diversity import DEFAULT_TOP_K, MMR_LAMBDA
from docqa.retrieval.fusion import RRF_K, RRFWeights
from docqa.retrieval.hybrid import DEFAULT_CANDIDATE_POOL, HybridRetriever
from docqa.retrieval.query_intent import expand_query, is_identity_query

logger = logging.getLogger(__name__)

Emit = EventSink


class Stage(str, Enum):
    IDLE = "idle"
    EMBEDDING = "embedding"
    SCORING = "scoring_candidates"
    FUSING = "fusing"
    DIVERSIFYING = "diversifying"
    GATING = "gating"
    EXTRACTIVE = "extractive_fallback"
    GENERATING = "generating"
    COMPLETED = "completed"


@dataclass(frozen=True)
class PipelineConfig:
    candidate_pool_size: int = DEFAULT_CANDIDATE_POOL
    final_top_k: int = DEFAULT_TOP_K
    rrf_k: int = RRF_K
    mmr_lambda: float = MMR_LAMBDA
    bm25_scope: Literal["candidates", "corpus"] = "candidates"
    context_char_budget: int = CONTEXT_CHAR_BUDGET
    sampling: SamplingConfig = SamplingConfig()

    @classmethod
    def from_settings(cls, s: Settings) -> "PipelineConfig":
        return cls(
            candidate_pool_size=s.candidate_pool_size,
            final_top_k=s.final_top_k,
            rrf_k=s.rrf_k,
            mmr_lambda=s.mmr_lambda,
            bm25_scope=s.bm25_scope,
            context_char_budget=s.context_char_budget,
            sampling=SamplingConfig(temperature=s.temperature, max_new_tokens=s.max_new_tokens),
        )


class QueryPipeline:
    """Answers one query at a time against the chunk store.

    Queries, ingestion and deletion all take the same lock, so a query never
    reads the store while a write to it is in flight.
    """

    def __init__(
        self,
        store: ChunkStore,
        embedder: Embedder,
        llm: Generator,
        config: PipelineConfig = PipelineConfig(),
    ):
        self.store = store
        self.embedder = embedder
        self.config = config
        self.cache = ChunkCache(store)
        self.retriever = HybridRetriever(
            weights=RRFWeights(k=config.rrf_k),
            candidate_pool_size=config.candidate_pool_size,
            final_top_k=config.final_top_k,
            mmr_lambda=config.mmr_lambda,
            bm25_scope=config.bm25_scope,
        )
        self.answerer = Answerer(llm, sampling=config.sampling, context_char_budget=config.context_char_budget)
        self.ingestor = Ingestor(store, embedder)
        self.stage = Stage.IDLE
        self._lock = threading.Lock()

    # --- dispatch ----------------------------------------------------------------

    def handle(self, request: Union[QueryRequest, IngestRequest, DeleteDocumentRequest], emit: Emit) -> None:
        if isinstance(request, QueryRequest):
            self.ask(request.text, emit)
        elif isinstance(request, IngestRequest):
            self.ingest(request, emit)
        elif isinstance(request, DeleteDocumentRequest):
            self.delete_document(request.doc_id)
        else:
            raise TypeError(f"Unsupported request: {type(request).__name__}")

    # --- queries -----------------------------------------------------------------

    def ask(self, text: str, emit: Emit, cancelled: Optional[threading.Event] = None) -> None:
        """Emit SourcesReady, any PartialAnswer events, then one FinalAnswer or QueryError."""
        with self._lock:
            try:
                self._ask(text, emit, cancelled)
            except Exception as exc:
                logger.exception("Query failed in stage %s", self.stage.value)
                emit(QueryError(message=str(exc) or type(exc).__name__))
            finally:
                self.stage = Stage.IDLE

    def answer(self, text: str) -> Union[FinalAnswer, QueryError]:
        """Run a query and return only its terminal event."""
        events: List[object] = []
        self.ask(text, events.append)
        return events[-1]  # type: ignore[return-value]

    def stream(self, text: str) -> QueryStream:
        return QueryStream(self, text)

    def _ask(self, text: str, emit: Emit, cancelled: Optional[threading.Event]) -> None:
        if not text.strip():
            raise ValueError("Query is empty.")

        try:
            chunks = self.cache.get()
            if not chunks:
                raise EmptyCorpusError("No documents stored")
            self._enter(Stage.EMBEDDING, cancelled)
            query = self.build_query(text)
            sources = self.retrieve(query, chunks, cancelled)
        except PreconditionError as exc:
            logger.warning("Cannot answer from the stored corpus: %s", exc)
            self._no_documents(emit)
            return

        emit(SourcesReady(sources=sources))
        answer = self.compose_answer(query, sources, emit, cancelled)
        self.stage = Stage.COMPLETED
        emit(FinalAnswer(text=answer, sources=sources))

    def build_query(self, text: str) -> Query:
        expanded = expand_query(text)
        identity = is_identity_query(text)
        vector = [float(x) for x in self.embedder.embed(expanded)]
        logger.debug("Query %r identity=%s expanded=%r", text, identity, expanded)
        return Query(raw_text=text, expanded_text=expanded, is_identity=identity, vector=vector)

    def retrieve(self, query: Query, chunks, cancelled: Optional[threading.Event] = None) -> List[ScoredCandidate]:
        self._enter(Stage.SCORING, cancelled)
        semantic = self.retriever.rank_semantic(query, chunks)
        lexical = self.retriever.rank_lexical(query, semantic, chunks)
        self._enter(Stage.FUSING, cancelled)
        fused = self.retriever.fuse(semantic, lexical)
        self._enter(Stage.DIVERSIFYING, cancelled)
        return self.retriever.diversify(fused)

    def compose_answer(
        self,
        query: Query,
        sources: List[ScoredCandidate],
        emit: Emit,
        cancelled: Optional[threading.Event] = None,
    ) -> str:
        self._enter(Stage.GATING, cancelled)
        result = gate(query, sources)
        logger.info(
            "Gate: top=%.4f threshold=%.2f identity=%s -> %s",
            result.top_score, result.threshold, query.is_identity,
            "generate" if result.passed else "extract",
        )

        if query.is_identity:
            name = extract_name(sources)
            if name is not None:
                logger.info("Identity answered from document structure")
                return name

        if not result.passed:
            self._enter(Stage.EXTRACTIVE, cancelled)
            return fallback_answer(query.raw_text, sources)

        self._enter(Stage.GENERATING, cancelled)

        def on_partial(partial: str) -> None:
            if cancelled is not None and cancelled.is_set():
                raise QueryCancelled("Query cancelled.")
            emit(PartialAnswer(text=partial))

        return self.answerer.answer(query.raw_text, sources, on_partial=on_partial)

    def _enter(self, stage: Stage, cancelled: Optional[threading.Event]) -> None:
        if cancelled is not None and cancelled.is_set():
            raise QueryCancelled("Query cancelled.")
        self.stage = stage

    @staticmethod
    def _no_documents(emit: Emit) -> None:
        emit(SourcesReady(sources=[]))
        emit(FinalAnswer(text=NO_DOCUMENTS_MESSAGE, sources=[]))

    # --- corpus writes -----------------------------------------------------------

    def ingest(self, request: IngestRequest, emit: Emit) -> bool:
        with self._lock:
            return self.ingestor.ingest(request, emit)

    def delete_document(self, doc_id: str) -> int:
        with self._lock:
            removed = self.store.delete_by_doc(doc_id)
        logger.info("Deleted %d chunks of %s", removed, doc_id)
        return removed

    def list_documents(self) -> List[DocumentInfo]:
        return self.store.list_documents()
