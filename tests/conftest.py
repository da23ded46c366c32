"""
Pytest configuration and shared fixtures
"""

from typing import List, Sequence

import pytest

from catalog_rag.config import Settings, get_settings
from catalog_rag.ml.config import MLConfig, reset_config
from catalog_rag.ml.embeddings import EmbeddingError, EmbeddingProvider, HashEmbeddingProvider
from catalog_rag.ml.retrieval import InMemoryVectorStore, VectorRetriever, VectorStoreError
from catalog_rag.ml.retrieval.vector_store import VectorStore
from catalog_rag.models import CatalogItem


@pytest.fixture(autouse=True)
def reset_global_config():
    """Drop cached configuration between tests."""
    reset_config()
    get_settings.cache_clear()
    yield
    reset_config()
    get_settings.cache_clear()


@pytest.fixture
def sample_catalog() -> List[CatalogItem]:
    """Small storefront catalog."""
    rows = [
        (1, "Clean Code", "Guide du code propre", "32.50", "Livres", 5),
        (2, "Python pour débutants", "Apprendre Python pas à pas", "18", "Livres", 3),
        (3, "PlayStation 5", "Console de salon Sony", "499.99", "Consoles", 2),
        (4, "Nintendo Switch", "Console hybride", "299", "Consoles", 0),
        (5, "Manette sans fil", "Compatible PC et console", "59.90", "Accessoires", 10),
        (6, "Formation Docker", "Conteneurs en production", "120", "Formations", 50),
        (7, "Casque audio Bluetooth", "Réduction de bruit active", "89", None, 7),
        (8, "Tapis de souris", None, "9.99", "Accessoires", 100),
    ]
    return [
        CatalogItem(id=i, name=n, description=d, price=p, category=c, stock=s)
        for i, n, d, p, c, s in rows
    ]


@pytest.fixture
def two_item_catalog() -> List[CatalogItem]:
    return [
        CatalogItem(id=1, name="Book A", price=15, category="Books"),
        CatalogItem(id=2, name="Console X", price=250, category="Gaming"),
    ]


@pytest.fixture
def large_catalog() -> List[CatalogItem]:
    """Twenty generic items, enough to exercise every truncation limit."""
    return [
        CatalogItem(id=i, name=f"Article {i}", price=10 * i, category="Divers")
        for i in range(1, 21)
    ]


@pytest.fixture
def ml_config() -> MLConfig:
    return MLConfig()


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(_env_file=None, enable_semantic_retrieval=False)


@pytest.fixture
def hash_embedder() -> HashEmbeddingProvider:
    return HashEmbeddingProvider(dimension=384)


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def retriever(hash_embedder, memory_store, ml_config) -> VectorRetriever:
    return VectorRetriever(
        hash_embedder, memory_store, config=ml_config.vector, cache_config=ml_config.cache
    )


class FailingEmbedder(EmbeddingProvider):
    """Embedding provider whose backend is always down."""

    def __init__(self, dimension: int = 384):
        self._dimension = dimension
        self.calls = 0

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> List[float]:
        self.calls += 1
        raise EmbeddingError("embedding service unreachable")


class FailingVectorStore(VectorStore):
    """Vector store that cannot be reached."""

    def collection_exists(self, collection: str) -> bool:
        raise VectorStoreError("vector store unreachable")

    def create_collection(self, collection: str, vector_size: int, distance: str = "cosine") -> None:
        raise VectorStoreError("vector store unreachable")

    def upsert(self, collection, point_id, vector, payload) -> None:
        raise VectorStoreError("vector store unreachable")

    def search(self, collection: str, vector: Sequence[float], top_k: int) -> List[int]:
        return []

    def delete_collection(self, collection: str) -> None:
        raise VectorStoreError("vector store unreachable")


class EmptySearchStore(InMemoryVectorStore):
    """Accepts writes but never finds anything."""

    def search(self, collection: str, vector: Sequence[float], top_k: int) -> List[int]:
        return []


@pytest.fixture
def failing_embedder() -> FailingEmbedder:
    return FailingEmbedder()


@pytest.fixture
def failing_store() -> FailingVectorStore:
    return FailingVectorStore()


@pytest.fixture
def empty_search_store() -> EmptySearchStore:
    return EmptySearchStore()
