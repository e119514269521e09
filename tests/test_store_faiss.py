"""Tests for the namespaced FAISS vector store."""
import pytest

from docqa.errors import VectorStoreError
from docqa.rag.store import VectorRecord
from docqa.rag.store_faiss import FAISSVectorStore


def _record(vector_id, values, text=None):
    return VectorRecord(id=vector_id, values=values, metadata={"text": text or vector_id})


async def test_query_ranks_by_cosine_similarity(faiss_store):
    await faiss_store.upsert("ns", [
        _record("a", [1.0, 0.0, 0.0]),
        _record("b", [1.0, 1.0, 0.0]),
        _record("c", [0.0, 0.0, 5.0]),
    ])

    matches = await faiss_store.query("ns", [2.0, 0.0, 0.0], top_k=3)

    assert [m.id for m in matches] == ["a", "b", "c"]
    assert matches[0].score == pytest.approx(1.0, abs=1e-5)
    assert matches[1].score == pytest.approx(0.7071, abs=1e-3)
    assert matches[2].score == pytest.approx(0.0, abs=1e-5)
    assert matches[0].text == "a"


async def test_query_is_limited_to_top_k_and_namespace(faiss_store):
    await faiss_store.upsert("one", [_record(f"v{i}", [1.0, float(i)]) for i in range(4)])
    await faiss_store.upsert("two", [_record("other", [1.0, 0.0])])

    matches = await faiss_store.query("one", [1.0, 0.0], top_k=2)

    assert len(matches) == 2
    assert all(m.id.startswith("v") for m in matches)
    assert await faiss_store.query("missing", [1.0, 0.0], top_k=2) == []


async def test_upsert_replaces_existing_id(faiss_store):
    await faiss_store.upsert("ns", [_record("doc-chunk-0", [1.0, 0.0], "old")])
    await faiss_store.upsert("ns", [_record("doc-chunk-0", [0.0, 1.0], "new")])

    matches = await faiss_store.query("ns", [0.0, 1.0], top_k=5)

    assert len(matches) == 1
    assert matches[0].text == "new"
    assert matches[0].score == pytest.approx(1.0, abs=1e-5)


async def test_list_namespaces(faiss_store):
    assert await faiss_store.list_namespaces() == []

    await faiss_store.upsert("first", [_record("a", [1.0, 0.0])])
    await faiss_store.upsert("second", [_record("b", [0.0, 1.0])])

    assert sorted(await faiss_store.list_namespaces()) == ["first", "second"]


async def test_dimension_mismatch_is_rejected(faiss_store):
    await faiss_store.upsert("ns", [_record("a", [1.0, 0.0, 0.0])])

    with pytest.raises(VectorStoreError):
        await faiss_store.upsert("ns", [_record("b", [1.0, 0.0])])
    with pytest.raises(VectorStoreError):
        await faiss_store.query("ns", [1.0, 0.0], top_k=1)


async def test_namespaces_persist_across_instances(tmp_path):
    store = FAISSVectorStore(index_dir=tmp_path)
    await store.initialize()
    await store.upsert("saved", [_record("report.pdf-chunk-0", [0.5, 0.5], "kept text")])
    assert (tmp_path / "saved" / "vectors.index").exists()
    assert (tmp_path / "saved" / "records.json").exists()

    reloaded = FAISSVectorStore(index_dir=tmp_path)
    await reloaded.initialize()

    assert await reloaded.list_namespaces() == ["saved"]
    matches = await reloaded.query("saved", [1.0, 1.0], top_k=1)
    assert matches[0].id == "report.pdf-chunk-0"
    assert matches[0].text == "kept text"

    # Upserting after a reload keeps the earlier vectors
    await reloaded.upsert("saved", [_record("report.pdf-chunk-1", [1.0, 0.0])])
    assert len(await reloaded.query("saved", [1.0, 1.0], top_k=5)) == 2
