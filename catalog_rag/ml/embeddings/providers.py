"""
Embedding Providers
Turn text into fixed-dimension vectors for the semantic retrieval path.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np
import requests

from ..keywords import KeywordExtractor

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Exception raised when an embedding cannot be produced."""

    pass


class EmbeddingProvider(ABC):
    """
    Contract the retrieval engine requires from an embedding provider.

    Vectors have a fixed ``dimension``. Empty input yields a zero vector
    rather than an error.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Dimension of the produced vectors."""

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """Embed a single text."""

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed several texts; same semantics per element as ``embed``."""
        return [self.embed(text) for text in texts]

    def zero_vector(self) -> List[float]:
        return [0.0] * self.dimension


class OllamaEmbeddingProvider(EmbeddingProvider):
    """
    Embeddings from an Ollama server (``POST /api/embed``).

    Uses a pooled ``requests.Session`` with a per-call timeout. Transport
    errors, HTTP errors and malformed responses raise ``EmbeddingError``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "all-minilm",
        dimension: int = 384,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Ollama embedding provider.

        Args:
            base_url: Ollama server URL
            model: Embedding model name
            dimension: Expected vector dimension
            timeout: Request timeout in seconds
            session: Optional pre-configured HTTP session
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._dimension = dimension
        self.timeout = timeout
        self.session = session or requests.Session()

        logger.info(f"Ollama embedding provider initialized: {self.base_url} (model={model})")

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> List[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed several texts in one request.

        Blank texts are not sent; they get a zero vector.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, in order

        Raises:
            EmbeddingError: If the server is unreachable or answers badly
        """
        cleaned = [(text or "").strip() for text in texts]
        results: List[List[float]] = [self.zero_vector() for _ in cleaned]

        pending = [(i, text) for i, text in enumerate(cleaned) if text]
        if not pending:
            return results

        try:
            response = self.session.post(
                f"{self.base_url}/api/embed",
                json={"model": self.model, "input": [text for _, text in pending]},
                timeout=self.timeout,
            )
            response.raise_for_status()
            embeddings = response.json()["embeddings"]
        except requests.RequestException as e:
            raise EmbeddingError(f"Ollama embedding request failed: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise EmbeddingError(f"Malformed Ollama embedding response: {e}") from e

        if not isinstance(embeddings, list):
            raise EmbeddingError(f"Malformed Ollama embedding response: {type(embeddings)}")
        if len(embeddings) != len(pending):
            raise EmbeddingError(
                f"Expected {len(pending)} embeddings, got {len(embeddings)}"
            )

        for (i, _), vector in zip(pending, embeddings):
            if not isinstance(vector, list):
                raise EmbeddingError(f"Malformed embedding: {type(vector)}")
            if len(vector) != self._dimension:
                raise EmbeddingError(
                    f"Embedding dimension mismatch: expected {self._dimension}, got {len(vector)}"
                )
            results[i] = [float(x) for x in vector]

        logger.debug(f"Embedded batch of {len(pending)} texts")

        return results


class HashEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic feature-hashing embeddings.

    Each keyword is hashed to a signed bucket, so texts sharing keywords
    get similar vectors. Needs no model or network, which makes it suitable
    for offline development and tests.
    """

    def __init__(self, dimension: int = 384, extractor: Optional[KeywordExtractor] = None):
        self._dimension = dimension
        self.extractor = extractor or KeywordExtractor()

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> List[float]:
        """Generate a unit-length vector from hashed keywords."""
        vector = np.zeros(self._dimension, dtype=np.float64)

        for token in self.extractor.extract(text):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "big") % self._dimension
            sign = 1.0 if digest[4] % 2 == 0 else -1.0
            vector[bucket] += sign

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm

        return vector.tolist()
