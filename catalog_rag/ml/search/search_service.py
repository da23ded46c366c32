"""
Retrieval Router
Picks a retrieval strategy per query and always returns a usable result.
"""

import asyncio
import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ...config import Settings, get_settings
from ...models import CatalogItem
from ..caching import RedisVectorIndexCache, VectorIndexCache, get_redis_cache
from ..config import MLConfig, RouterConfig, get_ml_config
from ..embeddings import OllamaEmbeddingProvider
from ..retrieval import (
    FilterStage,
    LexicalFilterChain,
    QdrantVectorStore,
    VectorRetriever,
    bag_of_words_score,
)

logger = logging.getLogger(__name__)


class RetrievalStrategy(Enum):
    """Retrieval strategies."""

    LEXICAL = "lexical"  # Rule-based filter chain
    VECTOR = "vector"  # Semantic vector search
    HYBRID = "hybrid"  # Classify each query, then lexical or vector


@dataclass
class RoutingDecision:
    """Strategy chosen for one query and the reason for it."""

    strategy: RetrievalStrategy
    reason: str
    matched: Optional[str] = None  # Vocabulary that triggered the decision

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "reason": self.reason,
            "matched": self.matched,
        }


class QueryClassifier:
    """
    Structural query classification.

    A query is "simple" (lexical) if its lower-cased text contains price
    vocabulary, a category name (configured vocabulary or any catalog
    category) or stock vocabulary. Anything else goes to vector search.
    """

    def __init__(self, config: Optional[RouterConfig] = None):
        self.config = config or RouterConfig()
        self._price_pattern = re.compile(self.config.price_vocabulary_pattern)

    def classify(
        self, query: Optional[str], items: Sequence[CatalogItem] = ()
    ) -> RoutingDecision:
        """
        Classify a query.

        Args:
            query: Raw query text
            items: Catalog snapshot (its categories count as category vocabulary)

        Returns:
            RoutingDecision with LEXICAL or VECTOR strategy
        """
        text = "" if query is None else str(query).lower()

        match = self._price_pattern.search(text)
        if match:
            return RoutingDecision(RetrievalStrategy.LEXICAL, "price", match.group(0))

        categories = list(self.config.category_vocabulary)
        categories += [c.lower() for c in LexicalFilterChain.distinct_categories(items)]
        for category in categories:
            if category and category in text:
                return RoutingDecision(RetrievalStrategy.LEXICAL, "category", category)

        for word in self.config.stock_vocabulary:
            if word in text:
                return RoutingDecision(RetrievalStrategy.LEXICAL, "stock", word)

        return RoutingDecision(RetrievalStrategy.VECTOR, "semantic")

    def is_simple_query(self, query: Optional[str], items: Sequence[CatalogItem] = ()) -> bool:
        return self.classify(query, items).strategy == RetrievalStrategy.LEXICAL


@dataclass
class RetrievalResponse:
    """
    Retrieval result with routing metadata.
    """

    items: List[CatalogItem]
    strategy: RetrievalStrategy  # Strategy actually executed
    decision: RoutingDecision
    elapsed_ms: float
    stage: Optional[FilterStage] = None  # Lexical stage that answered
    fallback: bool = False  # Error or timeout fallback

    # Debugging info
    debug_info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and API responses."""
        return {
            "item_ids": [item.id for item in self.items],
            "total_results": len(self.items),
            "strategy": self.strategy.value,
            "decision": self.decision.to_dict(),
            "stage": self.stage.value if self.stage else None,
            "fallback": self.fallback,
            "elapsed_ms": self.elapsed_ms,
        }


class RetrievalRouter:
    """
    Entry point of the retrieval engine.

    Each call runs Classify -> (lexical | semantic) -> Return exactly once.
    The semantic path is only attempted when a VectorRetriever is wired in;
    without one every query is answered by the lexical chain. Unexpected
    errors return the first ``error_fallback_limit`` items, so callers never
    see an exception.
    """

    def __init__(
        self,
        chain: Optional[LexicalFilterChain] = None,
        retriever: Optional[VectorRetriever] = None,
        classifier: Optional[QueryClassifier] = None,
        config: Optional[MLConfig] = None,
    ):
        """
        Initialize retrieval router.

        Args:
            chain: Lexical filter chain (built from config if not provided)
            retriever: Vector retriever (None disables the semantic path)
            classifier: Query classifier (built from config if not provided)
            config: Retrieval configuration
        """
        self.config = config or get_ml_config()
        self.chain = chain or LexicalFilterChain(self.config.lexical)
        self.retriever = retriever
        self.classifier = classifier or QueryClassifier(self.config.router)

        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

        if retriever is None:
            logger.warning("Semantic retrieval not configured, routing every query to lexical")

        logger.info(f"Retrieval router initialized (semantic={self.semantic_enabled})")

    @property
    def semantic_enabled(self) -> bool:
        return self.retriever is not None

    def retrieve(
        self,
        query: Optional[str],
        items: Sequence[CatalogItem],
        strategy: RetrievalStrategy = RetrievalStrategy.HYBRID,
    ) -> List[CatalogItem]:
        """
        Select the items relevant to a query.

        Args:
            query: Raw query text (may be empty or None)
            items: Catalog snapshot
            strategy: HYBRID classifies the query; LEXICAL/VECTOR force a path

        Returns:
            Relevant items; empty only for an empty catalog
        """
        return self.search(query, items, strategy).items

    def search(
        self,
        query: Optional[str],
        items: Sequence[CatalogItem],
        strategy: RetrievalStrategy = RetrievalStrategy.HYBRID,
    ) -> RetrievalResponse:
        """
        Same as ``retrieve`` but reports how the result was produced.
        """
        start_time = time.time()
        catalog: List[CatalogItem] = []

        try:
            catalog = list(items or [])
            decision = self._decide(query, catalog, strategy)

            stage = None
            if decision.strategy == RetrievalStrategy.VECTOR:
                results = self.retriever.filter_semantic(query, catalog)
            else:
                outcome = self.chain.apply(query, catalog)
                results, stage = outcome.items, outcome.stage

            response = RetrievalResponse(
                items=results,
                strategy=decision.strategy,
                decision=decision,
                elapsed_ms=(time.time() - start_time) * 1000,
                stage=stage,
            )

        except Exception as e:
            logger.warning(f"Retrieval failed, returning first items: {e}", exc_info=True)
            response = RetrievalResponse(
                items=catalog[: self.config.router.error_fallback_limit],
                strategy=RetrievalStrategy.LEXICAL,
                decision=RoutingDecision(RetrievalStrategy.LEXICAL, "error"),
                elapsed_ms=(time.time() - start_time) * 1000,
                stage=FilterStage.FALLBACK,
                fallback=True,
                debug_info={"error": str(e)},
            )

        logger.debug(
            f"Retrieval: strategy={response.strategy.value}, "
            f"reason={response.decision.reason}, "
            f"{len(response.items)}/{len(catalog)} items in {response.elapsed_ms:.2f}ms"
        )

        return response

    async def retrieve_async(
        self,
        query: Optional[str],
        items: Sequence[CatalogItem],
        strategy: RetrievalStrategy = RetrievalStrategy.HYBRID,
        timeout: Optional[float] = None,
    ) -> List[CatalogItem]:
        """Async variant of ``retrieve``."""
        response = await self.search_async(query, items, strategy, timeout)
        return response.items

    async def search_async(
        self,
        query: Optional[str],
        items: Sequence[CatalogItem],
        strategy: RetrievalStrategy = RetrievalStrategy.HYBRID,
        timeout: Optional[float] = None,
    ) -> RetrievalResponse:
        """
        Run ``search`` on the router's worker pool without blocking the event loop.

        Args:
            query: Raw query text
            items: Catalog snapshot
            strategy: Retrieval strategy
            timeout: Seconds to wait (router default if None)

        Returns:
            RetrievalResponse; on timeout, the lexical chain's answer
        """
        catalog = list(items or [])
        if timeout is None:
            timeout = self.config.router.default_timeout_seconds

        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._get_executor(), self.search, query, catalog, strategy)

        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Retrieval timed out after {timeout}s, answering with lexical filters")
            response = self.search(query, catalog, RetrievalStrategy.LEXICAL)
            response.fallback = True
            response.debug_info["timeout_seconds"] = timeout
            return response

    def similarity_score(self, query: Optional[str], item: CatalogItem) -> float:
        """Semantic similarity when available, bag-of-words score otherwise."""
        if self.retriever is not None:
            return self.retriever.semantic_score(query, item)
        return bag_of_words_score(query, item, self.chain.extractor)

    def extract_keywords(self, text: Optional[str]) -> List[str]:
        return self.chain.extractor.extract(text)

    def close(self) -> None:
        """Shut down the async worker pool."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            with self._executor_lock:
                if self._executor is None:
                    self._executor = ThreadPoolExecutor(
                        max_workers=self.config.router.async_workers,
                        thread_name_prefix="retrieval",
                    )
        return self._executor

    def _decide(
        self, query: Optional[str], catalog: List[CatalogItem], strategy: RetrievalStrategy
    ) -> RoutingDecision:
        if strategy == RetrievalStrategy.HYBRID:
            decision = self.classifier.classify(query, catalog)
        elif strategy == RetrievalStrategy.LEXICAL:
            decision = RoutingDecision(RetrievalStrategy.LEXICAL, "requested")
        elif strategy == RetrievalStrategy.VECTOR:
            decision = RoutingDecision(RetrievalStrategy.VECTOR, "requested")
        else:
            raise ValueError(f"Unsupported retrieval strategy: {strategy}")

        if decision.strategy == RetrievalStrategy.VECTOR and self.retriever is None:
            return RoutingDecision(RetrievalStrategy.LEXICAL, "semantic retrieval disabled")

        return decision


def build_retrieval_router(
    settings: Optional[Settings] = None, config: Optional[MLConfig] = None
) -> RetrievalRouter:
    """
    Wire a router and its collaborators from settings.

    If the semantic collaborators cannot be built, the router runs
    lexical-only.
    """
    settings = settings or get_settings()
    config = config or get_ml_config()

    retriever = None
    if settings.enable_semantic_retrieval:
        try:
            embedder = OllamaEmbeddingProvider(
                base_url=settings.ollama_url,
                model=settings.embedding_model,
                dimension=settings.embedding_dimension,
                timeout=settings.embedding_timeout,
            )
            store = QdrantVectorStore(
                url=settings.qdrant_url,
                api_key=settings.qdrant_api_key,
                timeout=settings.qdrant_timeout,
            )
            if settings.index_cache_backend == "redis":
                cache = RedisVectorIndexCache(get_redis_cache(settings), config.cache)
            else:
                cache = VectorIndexCache()

            retriever = VectorRetriever(
                embedder, store, cache=cache, config=config.vector, cache_config=config.cache
            )
        except Exception as e:
            logger.error(f"Could not configure semantic retrieval: {e}")
            retriever = None
    else:
        logger.info("Semantic retrieval disabled by settings")

    return RetrievalRouter(retriever=retriever, config=config)


# Global router instance
_retrieval_router: Optional[RetrievalRouter] = None
_retrieval_router_lock = threading.Lock()


def get_retrieval_router() -> RetrievalRouter:
    """Get global retrieval router (singleton pattern)."""
    global _retrieval_router
    if _retrieval_router is None:
        with _retrieval_router_lock:
            if _retrieval_router is None:
                _retrieval_router = build_retrieval_router()
    return _retrieval_router


def reset_retrieval_router() -> None:
    """Close and forget the global router (useful for testing)."""
    global _retrieval_router
    with _retrieval_router_lock:
        if _retrieval_router is not None:
            _retrieval_router.close()
        _retrieval_router = None
