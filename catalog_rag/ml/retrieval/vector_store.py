"""
Vector Store
Nearest-neighbour storage for item embeddings: Qdrant-backed and in-memory.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import Distance, PointStruct, UpdateStatus, VectorParams

logger = logging.getLogger(__name__)


class VectorStoreError(Exception):
    """Exception raised for vector store errors."""

    pass


_DISTANCES = {
    "cosine": Distance.COSINE,
    "dot": Distance.DOT,
    "euclid": Distance.EUCLID,
}


class VectorStore(ABC):
    """
    Contract the retrieval engine requires from a vector store.

    Points are keyed by catalog item id; an upsert for an existing id
    replaces it. ``search`` returns ids most similar first.
    """

    @abstractmethod
    def collection_exists(self, collection: str) -> bool:
        """Check whether a collection exists."""

    @abstractmethod
    def create_collection(self, collection: str, vector_size: int, distance: str = "cosine") -> None:
        """Create a collection; an existing collection is not an error."""

    @abstractmethod
    def upsert(
        self, collection: str, point_id: int, vector: Sequence[float], payload: Dict[str, Any]
    ) -> None:
        """Insert or replace a single point."""

    def upsert_batch(
        self, collection: str, points: Sequence[Tuple[int, Sequence[float], Dict[str, Any]]]
    ) -> int:
        """
        Insert or replace several points.

        Args:
            collection: Collection name
            points: (id, vector, payload) tuples

        Returns:
            Number of points upserted
        """
        for point_id, vector, payload in points:
            self.upsert(collection, point_id, vector, payload)
        return len(points)

    @abstractmethod
    def search(self, collection: str, vector: Sequence[float], top_k: int) -> List[int]:
        """Ids of the ``top_k`` nearest points."""

    @abstractmethod
    def delete_collection(self, collection: str) -> None:
        """Drop a collection and all its points."""


class QdrantVectorStore(VectorStore):
    """
    Vector store backed by a Qdrant server.

    Write operations raise ``VectorStoreError``; ``search`` logs failures
    and returns an empty list.
    """

    def __init__(
        self,
        url: str = "http://localhost:6333",
        api_key: Optional[str] = None,
        timeout: int = 5,
        client: Optional[QdrantClient] = None,
    ):
        """
        Initialize Qdrant vector store.

        Args:
            url: Qdrant server URL
            api_key: Optional API key
            timeout: Request timeout in seconds
            client: Pre-built client (skips connection setup)
        """
        if client is not None:
            self.client = client
        elif api_key:
            self.client = QdrantClient(url=url, api_key=api_key, timeout=timeout)
        else:
            self.client = QdrantClient(url=url, timeout=timeout)

        logger.info(f"Qdrant vector store initialized: {url} (timeout={timeout}s)")

    def collection_exists(self, collection: str) -> bool:
        try:
            return bool(self.client.collection_exists(collection_name=collection))
        except Exception as e:
            raise VectorStoreError(f"Failed to check collection '{collection}': {e}") from e

    def create_collection(self, collection: str, vector_size: int, distance: str = "cosine") -> None:
        if distance not in _DISTANCES:
            raise VectorStoreError(f"Unsupported distance: {distance}")

        try:
            self.client.create_collection(
                collection_name=collection,
                vectors_config=VectorParams(size=vector_size, distance=_DISTANCES[distance]),
            )
            logger.info(f"Created collection '{collection}' (size={vector_size}, {distance})")
        except UnexpectedResponse as e:
            # Another worker created it first
            if e.status_code == 409:
                logger.debug(f"Collection '{collection}' already exists")
                return
            raise VectorStoreError(f"Failed to create collection '{collection}': {e}") from e
        except Exception as e:
            raise VectorStoreError(f"Failed to create collection '{collection}': {e}") from e

    def upsert(
        self, collection: str, point_id: int, vector: Sequence[float], payload: Dict[str, Any]
    ) -> None:
        self.upsert_batch(collection, [(point_id, vector, payload)])

    def upsert_batch(
        self, collection: str, points: Sequence[Tuple[int, Sequence[float], Dict[str, Any]]]
    ) -> int:
        if not points:
            return 0

        point_structs = [
            PointStruct(id=point_id, vector=list(vector), payload=payload)
            for point_id, vector, payload in points
        ]

        try:
            result = self.client.upsert(
                collection_name=collection, points=point_structs, wait=True  # Wait for indexing
            )
        except Exception as e:
            raise VectorStoreError(f"Upsert into '{collection}' failed: {e}") from e

        if result.status != UpdateStatus.COMPLETED:
            raise VectorStoreError(f"Upsert into '{collection}' not completed: {result.status}")

        return len(point_structs)

    def search(self, collection: str, vector: Sequence[float], top_k: int) -> List[int]:
        try:
            response = self.client.query_points(
                collection_name=collection,
                query=list(vector),
                limit=top_k,
                with_payload=False,
            )
        except Exception as e:
            logger.warning(f"Qdrant search in '{collection}' failed: {e}")
            return []

        return [int(point.id) for point in response.points]

    def delete_collection(self, collection: str) -> None:
        try:
            self.client.delete_collection(collection_name=collection)
            logger.info(f"Deleted collection '{collection}'")
        except Exception as e:
            raise VectorStoreError(f"Failed to delete collection '{collection}': {e}") from e


class InMemoryVectorStore(VectorStore):
    """
    Process-local vector store with exact cosine search.

    Suitable for development, tests and small catalogs.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[int, np.ndarray]] = {}
        self._sizes: Dict[str, int] = {}
        self._payloads: Dict[str, Dict[int, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def collection_exists(self, collection: str) -> bool:
        with self._lock:
            return collection in self._collections

    def create_collection(self, collection: str, vector_size: int, distance: str = "cosine") -> None:
        if distance != "cosine":
            raise VectorStoreError(f"Unsupported distance: {distance}")

        with self._lock:
            if collection in self._collections:
                return
            self._collections[collection] = {}
            self._payloads[collection] = {}
            self._sizes[collection] = vector_size

        logger.debug(f"Created in-memory collection '{collection}' (size={vector_size})")

    def upsert(
        self, collection: str, point_id: int, vector: Sequence[float], payload: Dict[str, Any]
    ) -> None:
        array = np.asarray(vector, dtype=np.float32).ravel()

        with self._lock:
            if collection not in self._collections:
                raise VectorStoreError(f"Collection '{collection}' does not exist")
            if array.size != self._sizes[collection]:
                raise VectorStoreError(
                    f"Vector dimension mismatch: expected {self._sizes[collection]}, got {array.size}"
                )
            self._collections[collection][point_id] = array
            self._payloads[collection][point_id] = dict(payload)

    def search(self, collection: str, vector: Sequence[float], top_k: int) -> List[int]:
        with self._lock:
            points = dict(self._collections.get(collection, {}))

        if not points or top_k <= 0:
            return []

        query = np.asarray(vector, dtype=np.float32).ravel()
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            return []

        ids = list(points.keys())
        matrix = np.vstack([points[i] for i in ids])
        if matrix.shape[1] != query.size:
            logger.warning(
                f"Query dimension {query.size} does not match collection '{collection}'"
            )
            return []

        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0] = 1.0
        similarities = matrix @ query / (norms * query_norm)

        # Stable sort keeps insertion order on ties
        order = np.argsort(-similarities, kind="stable")[:top_k]
        return [ids[i] for i in order]

    def delete_collection(self, collection: str) -> None:
        with self._lock:
            self._collections.pop(collection, None)
            self._payloads.pop(collection, None)
            self._sizes.pop(collection, None)

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, {}))

    def get_payload(self, collection: str, point_id: int) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._payloads.get(collection, {}).get(point_id)
