import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from docqa.core.config import settings
from docqa.core.events import FinalAnswer, PartialAnswer, QueryError, SourcesReady
from docqa.core.logging_utils import setup_logging
from docqa.generation.openai_client import OpenAIEmbedder, OpenAILLM
from docqa.indexing.chunk_store import SQLChunkStore
from docqa.pipeline.query_pipeline import PipelineConfig, QueryPipeline

load_dotenv()
setup_logging(settings.log_level, settings.log_file)

query = " ".join(sys.argv[1:]) or "What is this document about?"

pipeline = QueryPipeline(
    store=SQLChunkStore(settings.database_url),
    embedder=OpenAIEmbedder(api_key=settings.openai_api_key, model=settings.embedding_model),
    llm=OpenAILLM(api_key=settings.openai_api_key, model=settings.llm_model),
    config=PipelineConfig.from_settings(settings),
)

for event in pipeline.stream(query):
    if isinstance(event, SourcesReady):
        print("SOURCES:")
        for s in event.sources:
            print(" ", s.source_id, s.chunk_id, "score=", round(s.combined_score, 4), "|", s.text[:80])
    elif isinstance(event, PartialAnswer):
        print("\r" + event.text[-100:], end="", flush=True)
    elif isinstance(event, FinalAnswer):
        print("\n\nANSWER:\n", event.text)
    elif isinstance(event, QueryError):
        print("\nERROR:", event.message)
