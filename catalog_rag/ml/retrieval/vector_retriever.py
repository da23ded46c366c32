"""
Vector Retriever
Semantic retrieval: lazily indexes the catalog into the vector store and
answers queries by nearest-neighbour search, degrading to a fixed slice of
the catalog whenever a collaborator fails.
"""

import logging
import time
from typing import List, Optional, Sequence

from ...models import CatalogItem
from ..caching import VectorIndexCache
from ..config import CacheConfig, VectorConfig
from ..embeddings import EmbeddingProvider
from .ranking import cosine_similarity
from .vector_store import VectorStore

logger = logging.getLogger(__name__)


class VectorRetriever:
    """
    Semantic retrieval over a catalog snapshot.

    Each call embeds the query, indexes items the cache has not seen
    (creating the collection on first use), then searches the store. Results follow
    search rank. The result is empty only when the catalog is empty.

    Example:
        >>> retriever = VectorRetriever(HashEmbeddingProvider(), InMemoryVectorStore())
        >>> items = retriever.filter_semantic("gift for a gamer", catalog)
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: VectorStore,
        cache: Optional[VectorIndexCache] = None,
        config: Optional[VectorConfig] = None,
        cache_config: Optional[CacheConfig] = None,
    ):
        """
        Initialize vector retriever.

        Args:
            embedder: Embedding provider
            store: Vector store
            cache: Index cache (in-process cache if not provided)
            config: Vector retrieval configuration
            cache_config: Index cache policy
        """
        self.embedder = embedder
        self.store = store
        self.cache = cache if cache is not None else VectorIndexCache()
        self.config = config or VectorConfig()
        self.cache_config = cache_config or CacheConfig()

        # Set once the collection is known to exist; cleared by reset_index
        self._collection_ready = False

        logger.info(
            f"Vector retriever initialized: collection='{self.config.collection_name}', "
            f"dimension={self.embedder.dimension}, top_k={self.config.top_k}"
        )

    def filter_semantic(
        self, query: Optional[str], items: Sequence[CatalogItem]
    ) -> List[CatalogItem]:
        """
        Retrieve the items most similar to the query.

        Args:
            query: Raw query text
            items: Catalog snapshot

        Returns:
            Items found by the vector search, most similar first, or the
            first ``fallback_limit`` items if the search fails or finds nothing
        """
        catalog = list(items)
        if not catalog:
            return []

        start_time = time.time()

        try:
            query_vector = self.embedder.embed("" if query is None else str(query))
            self.index_items(catalog)

            if not any(query_vector):
                logger.debug("Empty query vector, skipping vector search")
                return self._fallback(catalog)

            ids = self.store.search(
                self.config.collection_name, query_vector, self.config.top_k
            )
        except Exception as e:
            logger.warning(f"Semantic retrieval failed, using fallback: {e}")
            return self._fallback(catalog)

        by_id = {item.id: item for item in catalog}
        results = []
        seen = set()
        for item_id in ids:
            item = by_id.get(item_id)
            if item is not None and item_id not in seen:
                seen.add(item_id)
                results.append(item)

        if not results:
            logger.warning("Vector search returned no catalog item, using fallback")
            return self._fallback(catalog)

        elapsed_ms = (time.time() - start_time) * 1000
        logger.debug(f"Semantic retrieval: {len(results)} items in {elapsed_ms:.2f}ms")

        return results

    def ensure_collection(self) -> None:
        """
        Create the collection if it does not exist yet.

        The store is asked once per retriever; later calls return immediately.
        Concurrent first calls may both create, which the store tolerates.
        """
        if self._collection_ready:
            return

        name = self.config.collection_name
        if not self.store.collection_exists(name):
            self.store.create_collection(
                name, vector_size=self.embedder.dimension, distance=self.config.distance
            )
        self._collection_ready = True

    def index_items(self, items: Sequence[CatalogItem]) -> int:
        """
        Embed and upsert every item the cache does not know yet.

        Creates the collection first when something is pending. Items are
        recorded in the cache only after their upsert succeeded.

        Args:
            items: Catalog items

        Returns:
            Number of items indexed by this call
        """
        refresh = self.cache_config.refresh_on_change
        pending = [
            item
            for item in items
            if not self.cache.has(item.id, item.fingerprint() if refresh else None)
        ]
        if not pending:
            return 0

        self.ensure_collection()

        logger.info(f"Indexing {len(pending)} items into '{self.config.collection_name}'")

        batch_size = self.config.index_batch_size
        indexed = 0
        for i in range(0, len(pending), batch_size):
            batch = pending[i : i + batch_size]
            vectors = self.embedder.embed_batch([item.indexable_text() for item in batch])

            self.store.upsert_batch(
                self.config.collection_name,
                [(item.id, vector, item.payload()) for item, vector in zip(batch, vectors)],
            )

            for item, vector in zip(batch, vectors):
                self.cache.record(item.id, vector, item.fingerprint() if refresh else None)
            indexed += len(batch)

        logger.info(f"Indexing complete: {indexed} items")

        return indexed

    def semantic_score(self, query: Optional[str], item: CatalogItem) -> float:
        """
        Cosine similarity between the query and an item's name and category.

        Returns 0.0 if either embedding cannot be produced.
        """
        try:
            query_vector = self.embedder.embed("" if query is None else str(query))
            item_vector = self.embedder.embed(f"{item.name} {item.category or ''}")
        except Exception as e:
            logger.warning(f"Semantic score for item {item.id} failed: {e}")
            return 0.0

        return cosine_similarity(query_vector, item_vector)

    def reset_index(self) -> None:
        """Drop the collection and forget every indexed item."""
        self._collection_ready = False
        self.store.delete_collection(self.config.collection_name)
        self.cache.clear()

        logger.info(f"Vector index '{self.config.collection_name}' reset")

    def _fallback(self, catalog: List[CatalogItem]) -> List[CatalogItem]:
        return catalog[: self.config.fallback_limit]
