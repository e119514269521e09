"""Tests for the Pinecone vector store against a stand-in SDK client."""
from types import SimpleNamespace

import pytest

from docqa.errors import VectorStoreError
from docqa.rag.store import VectorRecord
from docqa.rag.store_pinecone import PineconeVectorStore


class StubIndex:
    def __init__(self):
        self.upserts = []
        self.queries = []
        self.fail = False

    def upsert(self, vectors, namespace, batch_size):
        if self.fail:
            raise RuntimeError("upsert rejected")
        self.upserts.append((namespace, vectors, batch_size))

    def query(self, vector, top_k, include_metadata, namespace):
        self.queries.append((namespace, vector, top_k, include_metadata))
        return SimpleNamespace(matches=[
            SimpleNamespace(id="report.pdf-chunk-0", score=0.87, metadata={"text": "hello"}),
            SimpleNamespace(id="report.pdf-chunk-1", score=0.42, metadata=None),
        ])

    def describe_index_stats(self):
        return SimpleNamespace(namespaces={"ns-1": {"vector_count": 3}, "ns-2": {"vector_count": 1}})


class StubPinecone:
    def __init__(self, existing=()):
        self.existing = list(existing)
        self.created = []
        self.index = StubIndex()

    def list_indexes(self):
        return SimpleNamespace(names=lambda: list(self.existing))

    def create_index(self, name, dimension, metric, spec):
        self.created.append((name, dimension, metric, spec))
        self.existing.append(name)

    def Index(self, name):
        return self.index


def _store(client):
    return PineconeVectorStore(
        api_key="pc-key",
        index_name="query-assistant",
        dimension=768,
        cloud="aws",
        region="us-east-1",
        upsert_batch_size=100,
        client=client,
    )


async def test_initialize_creates_missing_index():
    client = StubPinecone()

    await _store(client).initialize()

    name, dimension, metric, spec = client.created[0]
    assert (name, dimension, metric) == ("query-assistant", 768, "cosine")


async def test_initialize_reuses_existing_index():
    client = StubPinecone(existing=["query-assistant"])

    await _store(client).initialize()

    assert client.created == []


async def test_upsert_and_query():
    client = StubPinecone(existing=["query-assistant"])
    store = _store(client)
    await store.initialize()

    count = await store.upsert("ns-1", [
        VectorRecord(id="report.pdf-chunk-0", values=[0.1, 0.2], metadata={"text": "hello"}),
    ])
    matches = await store.query("ns-1", [0.1, 0.2], top_k=5)

    assert count == 1
    namespace, vectors, batch_size = client.index.upserts[0]
    assert namespace == "ns-1"
    assert vectors == [{"id": "report.pdf-chunk-0", "values": [0.1, 0.2], "metadata": {"text": "hello"}}]
    assert batch_size == 100
    assert client.index.queries[0] == ("ns-1", [0.1, 0.2], 5, True)
    assert [(m.id, m.score, m.text) for m in matches] == [
        ("report.pdf-chunk-0", 0.87, "hello"),
        ("report.pdf-chunk-1", 0.42, ""),
    ]


async def test_list_namespaces():
    store = _store(StubPinecone(existing=["query-assistant"]))
    await store.initialize()

    assert await store.list_namespaces() == ["ns-1", "ns-2"]


async def test_sdk_failures_become_vector_store_errors():
    client = StubPinecone(existing=["query-assistant"])
    store = _store(client)
    await store.initialize()
    client.index.fail = True

    with pytest.raises(VectorStoreError):
        await store.upsert("ns", [VectorRecord(id="a", values=[1.0], metadata={"text": "a"})])


async def test_calls_before_initialize_fail():
    with pytest.raises(VectorStoreError):
        await _store(StubPinecone()).list_namespaces()
