from __future__ import annotations

from functools import lru_cache

from docqa.core.config import settings
from docqa.generation.openai_client import OpenAIEmbedder, OpenAILLM
from docqa.indexing.chunk_store import SQLChunkStore
from docqa.pipeline.query_pipeline import PipelineConfig, QueryPipeline


@lru_cache(maxsize=1)
def get_pipeline() -> QueryPipeline:
    """Shared pipeline; built on first request so importing the app needs no credentials."""
    return QueryPipeline(
        store=SQLChunkStore(settings.database_url),
        embedder=OpenAIEmbedder(api_key=settings.openai_api_key, model=settings.embedding_model),
        llm=OpenAILLM(api_key=settings.openai_api_key, model=settings.llm_model),
        config=PipelineConfig.from_settings(settings),
    )
