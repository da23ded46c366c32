"""
Search Module
Strategy routing and answer-context formatting.
"""

from .context import build_product_context, build_stats_line
from .search_service import (
    QueryClassifier,
    RetrievalResponse,
    RetrievalRouter,
    RetrievalStrategy,
    RoutingDecision,
    build_retrieval_router,
    get_retrieval_router,
    reset_retrieval_router,
)

__all__ = [
    "build_product_context",
    "build_stats_line",
    "QueryClassifier",
    "RetrievalResponse",
    "RetrievalRouter",
    "RetrievalStrategy",
    "RoutingDecision",
    "build_retrieval_router",
    "get_retrieval_router",
    "reset_retrieval_router",
]
