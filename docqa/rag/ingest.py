"""Upload pipeline for indexing a single document.

Orchestrates:
- Text extraction
- Text chunking
- Bounded concurrent embedding generation
- One batch upsert into a fresh namespace
- Namespace registration
"""
import asyncio
import uuid
from dataclasses import dataclass
from typing import List, Optional
import structlog

from docqa import config
from docqa.db import DocumentRegistry
from docqa.errors import EmptyDocumentError
from docqa.rag.chunker import TextChunker
from docqa.rag.extractor import extract_text_async
from docqa.rag.store import VectorRecord, VectorStore

logger = structlog.get_logger()

CHUNK_ID_SEPARATOR = "-chunk-"


def make_chunk_id(file_name: str, chunk_index: int) -> str:
    return f"{file_name}{CHUNK_ID_SEPARATOR}{chunk_index}"


@dataclass
class IngestResult:
    """Outcome of a successful upload."""

    namespace: str
    file_name: str
    chunk_count: int


class IngestPipeline:
    """Pipeline for turning an uploaded document into namespaced vectors."""

    def __init__(
        self,
        embedder,
        vector_store: VectorStore,
        registry: Optional[DocumentRegistry] = None,
        chunker: Optional[TextChunker] = None,
        embed_concurrency: int = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            embedder: Object with an async embed(text) -> List[float]
            vector_store: Vector store gateway
            registry: Optional namespace registry updated after each upload
            chunker: Text chunker (default sizes from config)
            embed_concurrency: Maximum embedding calls in flight
        """
        self.embedder = embedder
        self.vector_store = vector_store
        self.registry = registry
        self.chunker = chunker or TextChunker()
        self.embed_concurrency = embed_concurrency or config.EMBED_CONCURRENCY

        logger.info(
            "ingest_pipeline_initialized",
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
            embed_concurrency=self.embed_concurrency,
        )

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Embed all texts concurrently, at most embed_concurrency at a time.

        The first failure cancels the remaining calls and is re-raised.

        Returns:
            Embeddings in the same order as texts
        """
        if not texts:
            return []

        semaphore = asyncio.Semaphore(self.embed_concurrency)

        async def embed_one(text: str) -> List[float]:
            async with semaphore:
                return await self.embedder.embed(text)

        tasks = [asyncio.ensure_future(embed_one(text)) for text in texts]
        try:
            embeddings = await asyncio.gather(*tasks)
        except Exception as e:
            for task in tasks:
                task.cancel()
            logger.error(
                "embedding_generation_failed",
                error=str(e),
                error_type=type(e).__name__,
                chunk_count=len(texts),
            )
            raise

        logger.info("embeddings_generated", count=len(embeddings))
        return list(embeddings)

    async def ingest_document(
        self, file_name: str, data: bytes, media_type: str
    ) -> IngestResult:
        """Extract, chunk, embed and upsert one document into a new namespace.

        Args:
            file_name: Original file name, used in vector ids
            data: Raw file content
            media_type: "pdf" or "text"

        Returns:
            IngestResult with the new namespace

        Raises:
            CorruptDocumentError, DecodeError: If the content cannot be read
            EmptyDocumentError: If no text was extracted
            ProviderUnavailableError: If any embedding call fails
            VectorStoreError: If the upsert fails
        """
        logger.info(
            "ingesting_document",
            file_name=file_name,
            media_type=media_type,
            byte_count=len(data),
        )

        text = await extract_text_async(data, media_type)
        if not text.strip():
            logger.warning("empty_document", file_name=file_name)
            raise EmptyDocumentError()

        chunks = self.chunker.chunk_text(text)
        namespace = str(uuid.uuid4())

        embeddings = await self.generate_embeddings([c.content for c in chunks])

        records = [
            VectorRecord(
                id=make_chunk_id(file_name, chunk.chunk_index),
                values=embedding,
                metadata={"text": chunk.content},
            )
            for chunk, embedding in zip(chunks, embeddings)
        ]

        await self.vector_store.upsert(namespace, records)

        if self.registry is not None:
            self.registry.register_document(
                namespace=namespace,
                file_name=file_name,
                media_type=media_type,
                chunk_count=len(records),
            )

        logger.info(
            "document_ingested",
            file_name=file_name,
            namespace=namespace,
            **self.chunker.get_chunk_stats(chunks),
        )

        return IngestResult(
            namespace=namespace, file_name=file_name, chunk_count=len(records)
        )
