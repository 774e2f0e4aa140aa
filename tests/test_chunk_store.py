import pytest

from conftest import FakeGenerator, StaticEmbedder, make_chunk
from docqa.core.events import IngestRequest
from docqa.core.types import ChunkInput
from docqa.generation.prompting import NO_DOCUMENTS_MESSAGE
from docqa.indexing.chunk_store import InMemoryChunkStore, SQLChunkStore
from docqa.ingestion.ingest_pipeline import Ingestor
from docqa.pipeline.query_pipeline import QueryPipeline


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryChunkStore()
    return SQLChunkStore(f"sqlite:///{tmp_path / 'chunks.db'}")


def _ids(store):
    return [c.chunk_id for c in store.get_all()]


def test_put_many_and_generation(any_store):
    start = any_store.generation
    any_store.put_many([
        make_chunk("a-0", "first", [0.1, 0.2], doc_id="a", page=1, chunk_index=0),
        make_chunk("a-1", "second", [0.3, 0.4], doc_id="a", page=1, chunk_index=1),
    ])
    assert any_store.generation > start
    assert sorted(_ids(any_store)) == ["a-0", "a-1"]


def test_put_overwrites_same_id(any_store):
    any_store.put(make_chunk("a-0", "old", doc_id="a"))
    any_store.put(make_chunk("a-0", "new", doc_id="a"))
    chunks = any_store.get_all()
    assert [c.text for c in chunks] == ["new"]


def test_delete_by_doc_only_touches_that_doc(any_store):
    any_store.put_many([
        make_chunk("a-0", "x", doc_id="a"),
        make_chunk("a-1", "y", doc_id="a"),
        make_chunk("b-0", "z", doc_id="b"),
    ])
    before = any_store.generation
    assert any_store.delete_by_doc("a") == 2
    assert any_store.generation > before
    assert _ids(any_store) == ["b-0"]
    assert any_store.delete_by_doc("missing") == 0


def test_replace_document(any_store):
    any_store.put_many([
        make_chunk("a-0", "old 0", doc_id="a"),
        make_chunk("a-1", "old 1", doc_id="a"),
        make_chunk("b-0", "other", doc_id="b"),
    ])
    any_store.replace_document("a", [make_chunk("a-0", "new 0", doc_id="a")])
    texts = {c.chunk_id: c.text for c in any_store.get_all()}
    assert texts == {"a-0": "new 0", "b-0": "other"}


def test_sql_store_round_trips_metadata_and_order(tmp_path):
    store = SQLChunkStore(f"sqlite:///{tmp_path / 'chunks.db'}")
    store.put_many([
        make_chunk("b-0", "beta", [0.0, 1.0], doc_id="b"),
        make_chunk("a-10", "alpha ten", [1.0, 0.0], doc_id="a", page=3, chunk_index=10),
        make_chunk("a-2", "alpha two", [0.5, 0.5], doc_id="a", page=1, chunk_index=2),
    ])

    chunks = store.get_all()
    assert [c.chunk_id for c in chunks] == ["a-2", "a-10", "b-0"]
    assert chunks[1].metadata == {"page": 3, "chunk_index": 10}
    assert chunks[1].page == 3
    assert chunks[0].embedding == [0.5, 0.5]


def test_sql_store_persists_across_instances(tmp_path):
    dsn = f"sqlite:///{tmp_path / 'chunks.db'}"
    SQLChunkStore(dsn).put(make_chunk("a-0", "kept", doc_id="a"))
    assert [c.text for c in SQLChunkStore(dsn).get_all()] == ["kept"]


def test_list_documents(any_store):
    assert any_store.list_documents() == []
    any_store.put_many([
        make_chunk("b-0", "z", doc_id="b"),
        make_chunk("a-0", "x", doc_id="a"),
        make_chunk("a-1", "y", doc_id="a"),
    ])

    docs = any_store.list_documents()
    assert [(d.doc_id, d.chunk_count) for d in docs] == [("a", 2), ("b", 1)]
    assert all(d.ingested_at is not None and d.ingested_at.tzinfo is not None for d in docs)

    any_store.delete_by_doc("a")
    assert [d.doc_id for d in any_store.list_documents()] == ["b"]


def test_replace_document_refreshes_ingest_time(any_store):
    any_store.put_many([make_chunk("a-0", "old", doc_id="a")])
    first = any_store.list_documents()[0].ingested_at
    any_store.replace_document("a", [make_chunk("a-0", "new", doc_id="a"), make_chunk("a-1", "more", doc_id="a")])

    doc = any_store.list_documents()[0]
    assert doc.chunk_count == 2
    assert doc.ingested_at >= first


def test_sql_generation_is_shared_between_instances(tmp_path):
    dsn = f"sqlite:///{tmp_path / 'chunks.db'}"
    reader, writer = SQLChunkStore(dsn), SQLChunkStore(dsn)
    start = reader.generation

    writer.put(make_chunk("a-0", "x", doc_id="a"))
    assert reader.generation == writer.generation == start + 1

    writer.replace_document("a", [make_chunk("a-0", "y", doc_id="a")])
    writer.delete_by_doc("a")
    assert reader.generation == start + 3


def test_reopening_a_store_keeps_its_generation(tmp_path):
    dsn = f"sqlite:///{tmp_path / 'chunks.db'}"
    SQLChunkStore(dsn).put(make_chunk("a-0", "x", doc_id="a"))
    assert SQLChunkStore(dsn).generation == 1


def test_pipeline_sees_ingestion_from_another_store_instance(tmp_path):
    dsn = f"sqlite:///{tmp_path / 'chunks.db'}"
    pipeline = QueryPipeline(SQLChunkStore(dsn), StaticEmbedder(), FakeGenerator(text="Two years [S1]."))
    assert pipeline.answer("what does the warranty cover").text == NO_DOCUMENTS_MESSAGE

    request = IngestRequest(doc_id="manual", chunks=(ChunkInput("The warranty covers parts for two years."),))
    assert Ingestor(SQLChunkStore(dsn), StaticEmbedder()).ingest(request, lambda e: None)

    final = pipeline.answer("what does the warranty cover")
    assert final.text == "Two years [S1]."
    assert final.sources[0].chunk_id == "manual-0"
