"""
Relevance Scoring
Bag-of-words overlap for the lexical path and cosine similarity for the semantic path.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ...models import CatalogItem
from ..keywords import KeywordExtractor, extract_keywords

logger = logging.getLogger(__name__)


def bag_of_words_score(
    query: Optional[str], item: CatalogItem, extractor: Optional[KeywordExtractor] = None
) -> float:
    """
    Count query keywords that appear in the item's name and category.

    Each keyword counts once, as a case-insensitive substring hit.

    Args:
        query: Raw query text
        item: Catalog item
        extractor: Keyword extractor (default stop-words if not provided)

    Returns:
        Number of matching keywords, as a float
    """
    keywords = extractor.extract(query) if extractor else extract_keywords(query)
    if not keywords:
        return 0.0

    text = item.lexical_text()
    return float(sum(1 for word in keywords if word in text))


def cosine_similarity(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    """
    Compute cosine similarity between two vectors.

    Returns 0.0 for empty vectors, mismatched lengths or zero norms.
    """
    if vector_a is None or vector_b is None:
        return 0.0

    a = np.asarray(vector_a, dtype=np.float64).ravel()
    b = np.asarray(vector_b, dtype=np.float64).ravel()

    if a.size == 0 or a.size != b.size:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


class BagOfWordsScorer:
    """
    Scores and ranks catalog items by keyword overlap with a query.

    Sorting is stable, so items with equal scores keep catalog order.
    """

    def __init__(self, extractor: Optional[KeywordExtractor] = None):
        self.extractor = extractor or KeywordExtractor()

    def score(self, query: Optional[str], item: CatalogItem) -> float:
        return bag_of_words_score(query, item, self.extractor)

    def rank(
        self, query: Optional[str], items: Sequence[CatalogItem]
    ) -> List[Tuple[CatalogItem, float]]:
        """
        Score every item and sort by descending score.

        Args:
            query: Raw query text
            items: Catalog items

        Returns:
            List of (item, score) tuples, best first
        """
        keywords = self.extractor.extract(query)
        if not keywords:
            return [(item, 0.0) for item in items]

        scored = []
        for item in items:
            text = item.lexical_text()
            scored.append((item, float(sum(1 for word in keywords if word in text))))

        # sorted() is stable: ties stay in catalog order
        return sorted(scored, key=lambda pair: pair[1], reverse=True)
