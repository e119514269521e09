"""FAISS vector store for local, self-hosted deployments.

Handles:
- One inner-product index per namespace over L2-normalised vectors,
  so scores are cosine similarities in [-1, 1]
- Upsert by id (last write wins)
- Optional persistence of each namespace to disk
"""
import asyncio
import json
from pathlib import Path
from typing import List, Optional, Dict, Any
import numpy as np
import faiss
import structlog

from docqa import config
from docqa.errors import VectorStoreError
from docqa.rag.store import Match, VectorRecord, VectorStore

logger = structlog.get_logger()

INDEX_FILE = "vectors.index"
RECORDS_FILE = "records.json"


def _normalized(vectors: List[List[float]]) -> np.ndarray:
    try:
        array = np.array(vectors, dtype=np.float32)
    except ValueError as e:
        raise VectorStoreError(f"Invalid vectors: {e}") from e
    if array.ndim != 2 or array.shape[1] == 0:
        raise VectorStoreError("Vectors must be a non-empty list of equal-length lists")
    array = np.ascontiguousarray(array)
    faiss.normalize_L2(array)
    return array


class _Namespace:
    """Vectors, ids and metadata of a single namespace."""

    def __init__(self, dimension: int):
        self.dimension = dimension
        self.ids: List[str] = []
        self.metadata: List[Dict[str, Any]] = []
        self.vectors = np.zeros((0, dimension), dtype=np.float32)
        self.index = faiss.IndexFlatIP(dimension)

    def upsert(self, ids: List[str], vectors: np.ndarray, metadata: List[Dict[str, Any]]) -> None:
        rows = {
            vector_id: (vector, meta)
            for vector_id, vector, meta in zip(self.ids, self.vectors, self.metadata)
        }
        # Existing ids keep their position, new ids are appended
        for vector_id, vector, meta in zip(ids, vectors, metadata):
            rows[vector_id] = (vector, meta)

        self.ids = list(rows)
        self.metadata = [meta for _, meta in rows.values()]
        self.vectors = np.array(
            [vector for vector, _ in rows.values()], dtype=np.float32
        ).reshape(-1, self.dimension)

        # IndexFlat has no in-place update, rebuild from the id-keyed rows
        self.index = faiss.IndexFlatIP(self.dimension)
        self.index.add(self.vectors)

    def search(self, query: np.ndarray, top_k: int) -> List[Match]:
        top_k = min(top_k, self.index.ntotal)
        if top_k <= 0:
            return []

        scores, positions = self.index.search(query, top_k)
        return [
            Match(id=self.ids[pos], score=float(score), metadata=dict(self.metadata[pos]))
            for score, pos in zip(scores[0].tolist(), positions[0].tolist())
            if pos >= 0
        ]


class FAISSVectorStore(VectorStore):
    """FAISS-based namespaced vector store with optional persistence."""

    def __init__(
        self,
        index_dir: Optional[Path] = None,
        dimension: Optional[int] = None,
        persist: bool = True,
    ):
        """Initialize the FAISS vector store.

        Args:
            index_dir: Directory holding one sub-directory per namespace
                (default: config.FAISS_INDEX_DIR)
            dimension: Embedding dimension (detected from the first upsert if None)
            persist: Write namespaces to disk after every upsert
        """
        self.index_dir = Path(index_dir) if index_dir else config.FAISS_INDEX_DIR
        self.dimension = dimension
        self.persist = persist
        self._namespaces: Dict[str, _Namespace] = {}

        logger.info(
            "faiss_store_initialized",
            index_dir=str(self.index_dir),
            persist=self.persist,
        )

    async def initialize(self) -> None:
        """Load every persisted namespace from disk."""
        if not self.persist:
            return

        self.index_dir.mkdir(parents=True, exist_ok=True)

        for namespace_dir in sorted(self.index_dir.iterdir()):
            if (namespace_dir / INDEX_FILE).exists() and (namespace_dir / RECORDS_FILE).exists():
                self._load_namespace(namespace_dir)

        logger.info(
            "faiss_namespaces_loaded",
            namespace_count=len(self._namespaces),
            dimension=self.dimension,
        )

    def _load_namespace(self, namespace_dir: Path) -> None:
        try:
            index = faiss.read_index(str(namespace_dir / INDEX_FILE))
            with open(namespace_dir / RECORDS_FILE, "r") as f:
                records = json.load(f)
        except Exception as e:
            raise VectorStoreError(
                f"Failed to load namespace {namespace_dir.name}: {e}"
            ) from e

        if self.dimension is None:
            self.dimension = index.d
        elif index.d != self.dimension:
            raise VectorStoreError(
                f"Dimension mismatch: namespace {namespace_dir.name} has dim={index.d}, "
                f"store expects dim={self.dimension}. Please rebuild the index."
            )

        namespace = _Namespace(index.d)
        namespace.ids = records["ids"]
        namespace.metadata = records["metadata"]
        namespace.vectors = index.reconstruct_n(0, index.ntotal)
        namespace.index = index
        self._namespaces[namespace_dir.name] = namespace

    def _save_namespace(self, name: str) -> None:
        namespace = self._namespaces[name]
        namespace_dir = self.index_dir / name
        namespace_dir.mkdir(parents=True, exist_ok=True)

        try:
            faiss.write_index(namespace.index, str(namespace_dir / INDEX_FILE))
            with open(namespace_dir / RECORDS_FILE, "w") as f:
                json.dump({"ids": namespace.ids, "metadata": namespace.metadata}, f)
        except Exception as e:
            raise VectorStoreError(f"Failed to save namespace {name}: {e}") from e

        logger.debug("faiss_namespace_saved", namespace=name, path=str(namespace_dir))

    async def upsert(self, namespace: str, records: List[VectorRecord]) -> int:
        """Insert or replace records in a namespace.

        Raises:
            VectorStoreError: On dimension mismatch or a failed save
        """
        if not records:
            return 0

        vectors = _normalized([record.values for record in records])

        if self.dimension is None:
            self.dimension = vectors.shape[1]
        if vectors.shape[1] != self.dimension:
            raise VectorStoreError(
                f"Embedding dimension mismatch: expected {self.dimension}, "
                f"got {vectors.shape[1]}"
            )

        if namespace not in self._namespaces:
            self._namespaces[namespace] = _Namespace(self.dimension)

        self._namespaces[namespace].upsert(
            [record.id for record in records],
            vectors,
            [dict(record.metadata) for record in records],
        )

        if self.persist:
            await asyncio.to_thread(self._save_namespace, namespace)

        logger.info(
            "vectors_upserted",
            namespace=namespace,
            count=len(records),
            total_vectors=self._namespaces[namespace].index.ntotal,
        )
        return len(records)

    async def query(self, namespace: str, vector: List[float], top_k: int) -> List[Match]:
        """Search one namespace for the closest vectors by cosine similarity."""
        store = self._namespaces.get(namespace)
        if store is None:
            return []

        query = _normalized([vector])
        if query.shape[1] != store.dimension:
            raise VectorStoreError(
                f"Query dimension mismatch: expected {store.dimension}, "
                f"got {query.shape[1]}"
            )

        matches = store.search(query, top_k)

        logger.debug(
            "vector_search_completed",
            namespace=namespace,
            top_k=top_k,
            results_found=len(matches),
        )
        return matches

    async def list_namespaces(self) -> List[str]:
        return [name for name, ns in self._namespaces.items() if ns.index.ntotal > 0]
