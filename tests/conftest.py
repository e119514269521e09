"""Pytest configuration and fixtures shared by the test suite."""
import asyncio
import re

import pytest

from docqa.db import DocumentRegistry
from docqa.errors import ProviderUnavailableError
from docqa.rag.chunker import TextChunker
from docqa.rag.ingest import IngestPipeline
from docqa.rag.retriever import Retriever
from docqa.rag.store import VectorStore
from docqa.rag.store_faiss import FAISSVectorStore
from docqa.services import Services


# Each keyword is one embedding dimension, so texts sharing words score high
VOCABULARY = ["termination", "clause", "payment", "invoice", "cat", "dog", "weather"]


class FakeEmbedder:
    """Bag-of-keywords embedder that records calls and concurrency."""

    def __init__(self, fail_on: str = None, delay: float = 0.0):
        self.fail_on = fail_on
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed(self, text: str):
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.fail_on and self.fail_on in text:
                raise ProviderUnavailableError()
            words = re.findall(r"[a-z]+", text.lower())
            return [float(words.count(word)) for word in VOCABULARY] + [0.01]
        finally:
            self.in_flight -= 1


class FakeGenerator:
    """Records (question, context) pairs and returns a canned answer."""

    def __init__(self, answer: str = "generated answer"):
        self.answer = answer
        self.calls = []

    async def generate(self, question: str, context: str) -> str:
        self.calls.append((question, context))
        return self.answer

    async def list_models(self):
        return ["gemini-1.5-flash", "text-embedding-004"]


class RecordingStore(VectorStore):
    """In-memory store returning preset matches and recording every call."""

    def __init__(self, matches_by_namespace=None):
        self.matches_by_namespace = dict(matches_by_namespace or {})
        self.upserts = []
        self.queries = []

    async def upsert(self, namespace, records):
        self.upserts.append((namespace, list(records)))
        return len(records)

    async def query(self, namespace, vector, top_k):
        self.queries.append((namespace, list(vector), top_k))
        return list(self.matches_by_namespace.get(namespace, []))[:top_k]

    async def list_namespaces(self):
        return list(self.matches_by_namespace)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def registry(tmp_path):
    registry = DocumentRegistry(tmp_path / "documents.sqlite")
    registry.init_database()
    return registry


@pytest.fixture
def faiss_store():
    return FAISSVectorStore(persist=False)


@pytest.fixture
def services(embedder, generator, faiss_store, registry):
    """Service graph over fakes and an in-memory FAISS store."""
    pipeline = IngestPipeline(
        embedder=embedder,
        vector_store=faiss_store,
        registry=registry,
        chunker=TextChunker(chunk_size=500, chunk_overlap=100),
        embed_concurrency=4,
    )
    retriever = Retriever(
        embedder=embedder,
        generator=generator,
        vector_store=faiss_store,
        top_k=5,
        score_threshold=0.5,
        fallback_top_n=0,
        max_matches=5,
    )
    return Services(
        embedder=embedder,
        generator=generator,
        vector_store=faiss_store,
        registry=registry,
        pipeline=pipeline,
        retriever=retriever,
        validate_config=False,
    )


@pytest.fixture
async def client(services):
    """Quart test client with startup hooks run."""
    from docqa.main import create_app

    app = create_app(services, expose_error_details=True)
    async with app.test_app() as test_app:
        yield test_app.test_client()
