"""
Embeddings Module
Embedding provider contract and implementations.
"""

from .providers import (
    EmbeddingError,
    EmbeddingProvider,
    HashEmbeddingProvider,
    OllamaEmbeddingProvider,
)

__all__ = [
    "EmbeddingError",
    "EmbeddingProvider",
    "HashEmbeddingProvider",
    "OllamaEmbeddingProvider",
]
