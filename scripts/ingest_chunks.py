import json
import sys
from pathlib import Path
# Ensure project root is on sys.path so `import docqa` works when running this file directly.
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from docqa.core.config import settings
from docqa.core.events import IngestDone, IngestError, IngestProgress, IngestRequest
from docqa.core.logging_utils import setup_logging
from docqa.core.types import ChunkInput
from docqa.generation.openai_client import OpenAIEmbedder
from docqa.indexing.chunk_store import SQLChunkStore
from docqa.ingestion.ingest_pipeline import Ingestor

load_dotenv()
setup_logging(settings.log_level, settings.log_file)

if len(sys.argv) < 3:
    print("Usage: python scripts/ingest_chunks.py <doc_id> <chunks.jsonl>")
    print('  one chunk per line: {"text": "...", "page": 1, "chunk_index": 0}')
    raise SystemExit(1)

doc_id, path = sys.argv[1], sys.argv[2]

pieces = []
with open(path, "r", encoding="utf-8") as f:
    for line in f:
        if not line.strip():
            continue
        row = json.loads(line)
        meta = {k: row[k] for k in ("page", "chunk_index") if row.get(k) is not None}
        pieces.append(ChunkInput(text=row["text"], metadata=meta))

ingestor = Ingestor(
    store=SQLChunkStore(settings.database_url),
    embedder=OpenAIEmbedder(api_key=settings.openai_api_key, model=settings.embedding_model),
)


def report(event):
    if isinstance(event, IngestProgress):
        print(f"  {event.percent:5.1f}%")
    elif isinstance(event, IngestDone):
        print(f"Ingested {event.doc_id}: {event.chunk_count} chunks")
    elif isinstance(event, IngestError):
        print(f"Failed {event.doc_id}: {event.message}")


ok = ingestor.ingest(IngestRequest(doc_id=doc_id, chunks=tuple(pieces)), report)
raise SystemExit(0 if ok else 1)
