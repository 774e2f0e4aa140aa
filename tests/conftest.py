from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence

import pytest

from docqa.core.types import Chunk, ScoredCandidate
from docqa.generation.llm import LLMResponse, SamplingConfig
from docqa.generation.prompting import ChatPrompt
from docqa.indexing.chunk_store import InMemoryChunkStore


def make_chunk(
    chunk_id: str,
    text: str,
    embedding: Sequence[float] = (1.0, 0.0, 0.0),
    doc_id: str = "doc1",
    page: Optional[int] = None,
    chunk_index: Optional[int] = None,
) -> Chunk:
    meta = {}
    if page is not None:
        meta["page"] = page
    if chunk_index is not None:
        meta["chunk_index"] = chunk_index
    return Chunk(chunk_id=chunk_id, doc_id=doc_id, text=text, metadata=meta, embedding=list(embedding))


def make_source(
    n: int,
    text: str,
    combined: float = 0.5,
    embedding: Sequence[float] = (1.0, 0.0, 0.0),
    page: Optional[int] = None,
    chunk_index: Optional[int] = None,
) -> ScoredCandidate:
    chunk = make_chunk(f"doc1-{n}", text, embedding, page=page, chunk_index=chunk_index)
    return ScoredCandidate(
        chunk=chunk,
        semantic_score=combined,
        combined_score=combined,
        source_id=f"S{n}",
    )


def unit(*xs: float) -> List[float]:
    norm = math.sqrt(sum(x * x for x in xs))
    return [x / norm for x in xs]


class StaticEmbedder:
    """Looks texts up in a table; anything else gets the default vector."""

    def __init__(self, table: Optional[Dict[str, List[float]]] = None, default: Sequence[float] = (1.0, 0.0, 0.0)):
        self.table = table or {}
        self.default = list(default)
        self.calls: List[str] = []

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return list(self.table.get(text, self.default))


class FailingEmbedder:
    def embed(self, text: str) -> List[float]:
        raise RuntimeError("embedding service unavailable")


class FakeGenerator:
    """Returns a canned answer, replaying ``partials`` through on_partial first."""

    def __init__(self, text: str = "", partials: Sequence[str] = (), error: Optional[Exception] = None):
        self.text = text
        self.partials = list(partials)
        self.error = error
        self.prompts: List[ChatPrompt] = []
        self.samplings: List[SamplingConfig] = []

    @property
    def called(self) -> bool:
        return bool(self.prompts)

    def generate(self, prompt: ChatPrompt, sampling: SamplingConfig, on_partial=None) -> LLMResponse:
        self.prompts.append(prompt)
        self.samplings.append(sampling)
        if self.error is not None:
            raise self.error
        if on_partial is not None:
            for p in self.partials:
                on_partial(p)
        return LLMResponse(text=self.text)


@pytest.fixture
def store() -> InMemoryChunkStore:
    return InMemoryChunkStore()
