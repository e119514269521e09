"""Explicit wiring of the clients, stores and pipelines used by the app."""
from dataclasses import dataclass
import structlog

from docqa import config
from docqa.db import DocumentRegistry
from docqa.gemini_client import GeminiClient
from docqa.rag.chunker import TextChunker
from docqa.rag.ingest import IngestPipeline
from docqa.rag.retriever import Retriever
from docqa.rag.store import VectorStore, create_vector_store

logger = structlog.get_logger()


@dataclass
class Services:
    """Everything a request handler needs, constructed once per process."""

    embedder: object
    generator: object
    vector_store: VectorStore
    registry: DocumentRegistry
    pipeline: IngestPipeline
    retriever: Retriever
    validate_config: bool = True

    async def initialize(self) -> None:
        """Prepare every dependency. Must succeed before traffic is accepted.

        Raises:
            ConfigurationError: If the configuration is incomplete
            VectorStoreError: If the vector store cannot be reached
        """
        if self.validate_config:
            config.validate()

        self.registry.init_database()
        await self.vector_store.initialize()

        logger.info(
            "services_initialized",
            vector_store=type(self.vector_store).__name__,
        )


def build_services() -> Services:
    """Build the production service graph from config."""
    gemini = GeminiClient()
    vector_store = create_vector_store()
    registry = DocumentRegistry()

    pipeline = IngestPipeline(
        embedder=gemini,
        vector_store=vector_store,
        registry=registry,
        chunker=TextChunker(),
        embed_concurrency=config.EMBED_CONCURRENCY,
    )
    retriever = Retriever(embedder=gemini, generator=gemini, vector_store=vector_store)

    return Services(
        embedder=gemini,
        generator=gemini,
        vector_store=vector_store,
        registry=registry,
        pipeline=pipeline,
        retriever=retriever,
    )
