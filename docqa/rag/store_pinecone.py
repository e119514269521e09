"""Pinecone vector store for managed deployments.

The Pinecone SDK is synchronous; every call runs in a worker thread so the
event loop keeps serving other requests.
"""
import asyncio
from typing import Any, Dict, List, Optional
import structlog
from pinecone import Pinecone, ServerlessSpec

from docqa import config
from docqa.errors import VectorStoreError
from docqa.rag.store import Match, VectorRecord, VectorStore

logger = structlog.get_logger()


class PineconeVectorStore(VectorStore):
    """Pinecone serverless index, one namespace per uploaded document."""

    def __init__(
        self,
        api_key: str = None,
        index_name: str = None,
        dimension: int = None,
        metric: str = "cosine",
        cloud: str = None,
        region: str = None,
        upsert_batch_size: int = None,
        client: Optional[Pinecone] = None,
    ):
        self.api_key = api_key or config.PINECONE_API_KEY
        self.index_name = index_name or config.PINECONE_INDEX
        self.dimension = dimension or config.EMBEDDING_DIMENSION
        self.metric = metric
        self.cloud = cloud or config.PINECONE_CLOUD
        self.region = region or config.PINECONE_REGION
        self.upsert_batch_size = upsert_batch_size or config.PINECONE_UPSERT_BATCH_SIZE
        self._client = client
        self._index = None

    async def initialize(self) -> None:
        """Connect to the index, creating it first if it does not exist.

        Raises:
            VectorStoreError: If Pinecone cannot be reached or the index cannot be created
        """
        try:
            if self._client is None:
                self._client = Pinecone(api_key=self.api_key)

            existing = await asyncio.to_thread(lambda: self._client.list_indexes().names())

            if self.index_name not in existing:
                logger.info(
                    "pinecone_creating_index",
                    index_name=self.index_name,
                    dimension=self.dimension,
                    metric=self.metric,
                )
                await asyncio.to_thread(
                    self._client.create_index,
                    name=self.index_name,
                    dimension=self.dimension,
                    metric=self.metric,
                    spec=ServerlessSpec(cloud=self.cloud, region=self.region),
                )
            else:
                logger.info("pinecone_index_found", index_name=self.index_name)

            self._index = self._client.Index(self.index_name)

        except Exception as e:
            logger.error("pinecone_init_failed", index_name=self.index_name, error=str(e))
            raise VectorStoreError(f"Failed to initialize Pinecone index: {e}") from e

    def _require_index(self):
        if self._index is None:
            raise VectorStoreError(
                "Pinecone index has not been initialized. Call initialize() first."
            )
        return self._index

    async def upsert(self, namespace: str, records: List[VectorRecord]) -> int:
        index = self._require_index()
        if not records:
            return 0

        vectors = [
            {"id": record.id, "values": list(record.values), "metadata": record.metadata}
            for record in records
        ]

        try:
            await asyncio.to_thread(
                index.upsert,
                vectors=vectors,
                namespace=namespace,
                batch_size=self.upsert_batch_size,
            )
        except Exception as e:
            logger.error("pinecone_upsert_failed", namespace=namespace, error=str(e))
            raise VectorStoreError(f"Failed to upsert vectors: {e}") from e

        logger.info("vectors_upserted", namespace=namespace, count=len(vectors))
        return len(vectors)

    async def query(self, namespace: str, vector: List[float], top_k: int) -> List[Match]:
        index = self._require_index()

        try:
            response = await asyncio.to_thread(
                index.query,
                vector=list(vector),
                top_k=top_k,
                include_metadata=True,
                namespace=namespace,
            )
        except Exception as e:
            logger.error("pinecone_query_failed", namespace=namespace, error=str(e))
            raise VectorStoreError(f"Failed to query vectors: {e}") from e

        return [
            Match(id=m.id, score=float(m.score), metadata=dict(m.metadata or {}))
            for m in response.matches
        ]

    async def list_namespaces(self) -> List[str]:
        index = self._require_index()

        try:
            stats = await asyncio.to_thread(index.describe_index_stats)
        except Exception as e:
            logger.error("pinecone_describe_failed", error=str(e))
            raise VectorStoreError(f"Failed to describe index: {e}") from e

        namespaces: Dict[str, Any] = stats.namespaces or {}
        return list(namespaces.keys())
