"""
Keyword Extraction
Tokenizes free text, strips stop-words and duplicates.
"""

import re
from typing import Iterable, List, Optional

from .config import DEFAULT_STOP_WORDS

# Whitespace and the punctuation the storefront queries are split on
_SPLIT_PATTERN = re.compile(r"[\s,.?!;:]+")


class KeywordExtractor:
    """
    Extracts discriminative keywords from a query.

    Tokens are lower-cased, tokens shorter than ``min_token_length`` and
    stop-words are dropped, and duplicates are removed keeping the
    first-seen order. Never raises: empty or missing text gives ``[]``.
    """

    def __init__(
        self,
        stop_words: Optional[Iterable[str]] = None,
        min_token_length: int = 3,
    ):
        self.stop_words = frozenset(
            w.lower() for w in (DEFAULT_STOP_WORDS if stop_words is None else stop_words)
        )
        self.min_token_length = min_token_length

    def tokenize(self, text: Optional[str]) -> List[str]:
        """Split text into lower-case tokens."""
        if not text:
            return []
        return [t for t in _SPLIT_PATTERN.split(str(text).lower()) if t]

    def extract(self, text: Optional[str]) -> List[str]:
        """
        Extract keywords from text.

        Args:
            text: Raw text (query, product name...)

        Returns:
            Ordered, de-duplicated list of lower-case keywords
        """
        keywords: List[str] = []
        seen = set()

        for token in self.tokenize(text):
            if len(token) < self.min_token_length or token in self.stop_words:
                continue
            if token in seen:
                continue
            seen.add(token)
            keywords.append(token)

        return keywords


_default_extractor = KeywordExtractor()


def extract_keywords(text: Optional[str]) -> List[str]:
    """Extract keywords with the default stop-word list."""
    return _default_extractor.extract(text)
