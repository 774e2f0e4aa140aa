from conftest import make_source
from docqa.retrieval.diversity import assign_source_ids, mmr_rerank


def _pool():
    return [
        make_source(1, "alpha", combined=0.90, embedding=[1.0, 0.0, 0.0]),
        make_source(2, "alpha", combined=0.89, embedding=[1.0, 0.0, 0.0]),
        make_source(3, "beta", combined=0.60, embedding=[0.0, 1.0, 0.0]),
        make_source(4, "gamma", combined=0.55, embedding=[0.0, 0.0, 1.0]),
        make_source(5, "delta", combined=0.20, embedding=[0.7, 0.7, 0.0]),
    ]


def test_output_is_bounded_subset_seeded_by_top():
    pool = _pool()
    out = mmr_rerank(pool, top_k=3)
    assert len(out) == 3
    assert out[0] is pool[0]
    assert all(c in pool for c in out)
    assert len({c.chunk_id for c in out}) == 3


def test_near_duplicate_loses_to_distinct_candidate():
    out = mmr_rerank(_pool(), top_k=2)
    # 0.7*0.89 - 0.3*1.0 < 0.7*0.60 - 0.3*0.0
    assert [c.chunk_id for c in out] == ["doc1-1", "doc1-3"]


def test_input_not_longer_than_k_is_unchanged():
    pool = _pool()
    assert mmr_rerank(pool, top_k=5) == pool
    assert mmr_rerank(pool[:2], top_k=8) == pool[:2]


def test_same_input_same_order():
    assert [c.chunk_id for c in mmr_rerank(_pool(), top_k=4)] == [c.chunk_id for c in mmr_rerank(_pool(), top_k=4)]


def test_assign_source_ids_follows_order():
    labeled = assign_source_ids(list(reversed(_pool())))
    assert [s.source_id for s in labeled] == ["S1", "S2", "S3", "S4", "S5"]
    assert labeled[0].chunk_id == "doc1-5"
