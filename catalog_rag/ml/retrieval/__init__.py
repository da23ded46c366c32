"""
Retrieval Module
Lexical filtering, relevance scoring and vector retrieval over a catalog snapshot.
"""

from .filters import (
    FilterOperator,
    FilterOutcome,
    FilterStage,
    LexicalFilterChain,
    PriceQueryParser,
    PriceRange,
    ProductFilter,
)
from .ranking import (
    BagOfWordsScorer,
    bag_of_words_score,
    cosine_similarity,
)
from .vector_retriever import VectorRetriever
from .vector_store import (
    InMemoryVectorStore,
    QdrantVectorStore,
    VectorStore,
    VectorStoreError,
)

__all__ = [
    "FilterOperator",
    "FilterOutcome",
    "FilterStage",
    "LexicalFilterChain",
    "PriceQueryParser",
    "PriceRange",
    "ProductFilter",
    "BagOfWordsScorer",
    "bag_of_words_score",
    "cosine_similarity",
    "VectorRetriever",
    "InMemoryVectorStore",
    "QdrantVectorStore",
    "VectorStore",
    "VectorStoreError",
]
