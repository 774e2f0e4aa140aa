from conftest import FailingEmbedder, StaticEmbedder, make_chunk
from docqa.core.events import IngestDone, IngestError, IngestProgress, IngestRequest
from docqa.core.types import ChunkInput
from docqa.indexing.chunk_store import InMemoryChunkStore
from docqa.ingestion.ingest_pipeline import Ingestor, chunk_id


def _request(doc_id, n):
    return IngestRequest(
        doc_id=doc_id,
        chunks=tuple(ChunkInput(f"Paragraph {i} of {doc_id}.", {"page": 1 + i // 4}) for i in range(n)),
    )


class _ShrinkingEmbedder:
    def __init__(self):
        self.n = 0

    def embed(self, text):
        self.n += 1
        return [1.0, 0.0, 0.0] if self.n == 1 else [1.0, 0.0]


def test_chunk_ids_are_positional():
    assert chunk_id("report", 0) == "report-0"
    assert chunk_id("report", 12) == "report-12"


def test_ingest_reports_progress_then_done(store):
    events = []
    assert Ingestor(store, StaticEmbedder()).ingest(_request("manual", 12), events.append)

    progress = [e.percent for e in events if isinstance(e, IngestProgress)]
    assert progress[0] == 0.0
    assert progress == sorted(progress)
    assert progress[-1] == 100.0
    assert len(progress) == 4
    assert events[-1] == IngestDone(doc_id="manual", chunk_count=12)

    chunks = store.get_all()
    assert [c.chunk_id for c in chunks] == [f"manual-{i}" for i in range(12)]
    assert chunks[5].page == 2
    assert chunks[5].embedding == [1.0, 0.0, 0.0]


def test_reingest_replaces_previous_version(store):
    ingestor = Ingestor(store, StaticEmbedder())
    ingestor.ingest(_request("manual", 6), lambda e: None)
    ingestor.ingest(_request("manual", 2), lambda e: None)
    assert [c.chunk_id for c in store.get_all()] == ["manual-0", "manual-1"]


def test_failure_leaves_store_untouched():
    store = InMemoryChunkStore([make_chunk("manual-0", "previous version", doc_id="manual")])
    generation = store.generation
    events = []

    assert not Ingestor(store, FailingEmbedder()).ingest(_request("manual", 3), events.append)
    assert events == [IngestError(doc_id="manual", message="embedding service unavailable")]
    assert store.generation == generation
    assert [c.text for c in store.get_all()] == ["previous version"]


def test_inconsistent_dimensions_fail(store):
    events = []
    assert not Ingestor(store, _ShrinkingEmbedder()).ingest(_request("manual", 2), events.append)
    assert isinstance(events[-1], IngestError)
    assert "dimension" in events[-1].message
    assert store.get_all() == []


def test_empty_document_is_an_error(store):
    events = []
    assert not Ingestor(store, StaticEmbedder()).ingest(IngestRequest(doc_id="empty"), events.append)
    assert isinstance(events[-1], IngestError)


def test_ingest_many_isolates_failures(store):
    events = []
    requests = [_request("a", 2), IngestRequest(doc_id="empty"), _request("b", 1)]
    assert Ingestor(store, StaticEmbedder()).ingest_many(requests, events.append) == 2

    terminal = [e for e in events if isinstance(e, (IngestDone, IngestError))]
    assert [(e.kind, e.doc_id) for e in terminal] == [
        ("ingest_done", "a"), ("ingest_error", "empty"), ("ingest_done", "b"),
    ]
    assert sorted(c.doc_id for c in store.get_all()) == ["a", "a", "b"]
