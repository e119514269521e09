"""Vector store gateway interface shared by the FAISS and Pinecone backends."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from docqa import config
from docqa.errors import ConfigurationError


@dataclass
class VectorRecord:
    """An embedded chunk ready to be upserted."""

    id: str
    values: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Match:
    """A scored result of a similarity query."""

    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.metadata.get("text", "")


class VectorStore(ABC):
    """Namespace-scoped vector storage and similarity search."""

    async def initialize(self) -> None:
        """Connect to or load the store. Must finish before serving traffic."""

    @abstractmethod
    async def upsert(self, namespace: str, records: List[VectorRecord]) -> int:
        """Insert or replace records by id within a namespace.

        Returns:
            Number of records written
        """

    @abstractmethod
    async def query(self, namespace: str, vector: List[float], top_k: int) -> List[Match]:
        """Return up to top_k matches from one namespace, best first."""

    @abstractmethod
    async def list_namespaces(self) -> List[str]:
        """Return every namespace that holds at least one vector."""


def create_vector_store(backend: str = None) -> VectorStore:
    """Build the configured vector store backend."""
    backend = backend or config.VECTOR_BACKEND

    if backend == "pinecone":
        from docqa.rag.store_pinecone import PineconeVectorStore

        return PineconeVectorStore()
    if backend == "faiss":
        from docqa.rag.store_faiss import FAISSVectorStore

        return FAISSVectorStore()

    raise ConfigurationError(f"Unknown vector backend: {backend!r}")
