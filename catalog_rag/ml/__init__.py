"""
Retrieval Engine
Hybrid lexical / semantic product retrieval.
"""

from .config import MLConfig, get_ml_config, reset_config
from .keywords import KeywordExtractor, extract_keywords
from .search import RetrievalRouter, RetrievalStrategy, build_retrieval_router, get_retrieval_router

__all__ = [
    "MLConfig",
    "get_ml_config",
    "reset_config",
    "KeywordExtractor",
    "extract_keywords",
    "RetrievalRouter",
    "RetrievalStrategy",
    "build_retrieval_router",
    "get_retrieval_router",
]
