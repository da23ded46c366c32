"""
Retrieval Configuration
Centralized configuration for lexical filtering, vector retrieval, index caching and routing.
"""

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple


class ConfigurationError(ValueError):
    """Exception raised for inconsistent retrieval configuration."""

    pass


# French function words and request verbs of the storefront, plus English counterparts
DEFAULT_STOP_WORDS: FrozenSet[str] = frozenset(
    {
        # French
        "le", "la", "les", "un", "une", "des", "de", "du", "à", "au", "aux",
        "je", "tu", "il", "nous", "vous", "ils", "que", "qui", "quoi", "quel",
        "est", "sont", "pour", "dans", "sur", "avec", "sans", "par", "me", "te",
        "se", "mon", "ton", "son", "ma", "ta", "sa", "mes", "tes", "ses",
        "veux", "cherche", "recommande", "propose", "donne", "montre", "trouve",
        # English
        "the", "and", "for", "with", "without", "from", "about", "that", "this",
        "you", "your", "are", "was", "have", "has", "any", "some", "can", "could",
        "would", "please", "want", "need", "looking", "show", "find", "give",
        "recommend", "suggest", "get",
    }
)

LEXICAL_STAGES: Tuple[str, ...] = ("price", "category", "keyword", "score")

# Query vocabulary that marks a "simple" (lexical) query
DEFAULT_PRICE_VOCABULARY_PATTERN = (
    r"\bmoins\s+de\b|\bplus\s+de\b|\bentre\b.*\bet\b|<|>|€|\$|£|\bprix\b|\bco[uû]t(?:e|s|er)?\b|"
    r"\bless\s+than\b|\bmore\s+than\b|\bbetween\b.*\band\b|\bunder\b|\bbelow\b|\babove\b|\bover\b|"
    r"\bcheap(?:er|est)?\b|\bprices?\b|\bcosts?\b|\bbudgets?\b"
)
DEFAULT_STOCK_VOCABULARY: Tuple[str, ...] = ("stock", "disponible", "available")
DEFAULT_CATEGORY_VOCABULARY: Tuple[str, ...] = (
    "livre",
    "formation",
    "console",
    "jeu",
    "development",
    "personnel",
)


@dataclass
class LexicalConfig:
    """Rule-based filter chain configuration."""

    # Stage priority (first matching stage short-circuits the chain)
    stage_order: Tuple[str, ...] = LEXICAL_STAGES

    # Truncation limits
    price_fallback_limit: int = 5  # Price filter matched nothing
    score_limit: int = 10  # Bag-of-words top results
    fallback_limit: int = 15  # No stage matched

    # Keyword extraction
    min_token_length: int = 3
    stop_words: FrozenSet[str] = field(default_factory=lambda: DEFAULT_STOP_WORDS)


@dataclass
class VectorConfig:
    """Vector retrieval configuration."""

    collection_name: str = "products"
    distance: str = "cosine"
    top_k: int = 10  # Nearest neighbours requested from the store
    fallback_limit: int = 10  # Items returned when the semantic path degrades
    index_batch_size: int = 32  # Items embedded per embed_batch call


@dataclass
class CacheConfig:
    """Vector index cache configuration."""

    # Re-embed an item when its indexed text changes (off = cache forever)
    refresh_on_change: bool = False
    redis_key_prefix: str = "index:item:"


@dataclass
class RouterConfig:
    """Strategy selection configuration."""

    price_vocabulary_pattern: str = DEFAULT_PRICE_VOCABULARY_PATTERN
    stock_vocabulary: Tuple[str, ...] = DEFAULT_STOCK_VOCABULARY
    category_vocabulary: Tuple[str, ...] = DEFAULT_CATEGORY_VOCABULARY

    # Result size when an unexpected error escapes every strategy
    error_fallback_limit: int = 15

    # Async bridging
    async_workers: int = 4
    default_timeout_seconds: Optional[float] = 30.0


@dataclass
class MLConfig:
    """Top-level retrieval configuration combining all sub-configs."""

    lexical: LexicalConfig = field(default_factory=LexicalConfig)
    vector: VectorConfig = field(default_factory=VectorConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    router: RouterConfig = field(default_factory=RouterConfig)

    @classmethod
    def from_env(cls) -> "MLConfig":
        """Load configuration from environment variables."""
        config = cls()

        # Override with environment variables if present
        if stage_order := os.getenv("RETRIEVAL_STAGE_ORDER"):
            config.lexical.stage_order = tuple(
                s.strip().lower() for s in stage_order.split(",") if s.strip()
            )

        if collection := os.getenv("VECTOR_COLLECTION"):
            config.vector.collection_name = collection

        if top_k := os.getenv("RETRIEVAL_TOP_K"):
            config.vector.top_k = int(top_k)

        if batch_size := os.getenv("INDEX_BATCH_SIZE"):
            config.vector.index_batch_size = int(batch_size)

        if refresh := os.getenv("INDEX_REFRESH_ON_CHANGE"):
            config.cache.refresh_on_change = refresh.lower() in ("1", "true", "yes")

        if workers := os.getenv("RETRIEVAL_ASYNC_WORKERS"):
            config.router.async_workers = int(workers)

        return config

    def validate(self) -> None:
        """Validate configuration consistency."""
        errors = []

        unknown = [s for s in self.lexical.stage_order if s not in LEXICAL_STAGES]
        if unknown:
            errors.append(f"Unknown lexical stages: {unknown}")
        if len(set(self.lexical.stage_order)) != len(self.lexical.stage_order):
            errors.append("Lexical stages must not repeat")

        for name in ("price_fallback_limit", "score_limit", "fallback_limit"):
            if getattr(self.lexical, name) < 0:
                errors.append(f"lexical.{name} must be >= 0")

        if self.vector.top_k <= 0:
            errors.append(f"vector.top_k must be > 0, got {self.vector.top_k}")
        if self.vector.index_batch_size <= 0:
            errors.append(
                f"vector.index_batch_size must be > 0, got {self.vector.index_batch_size}"
            )
        if self.vector.distance != "cosine":
            errors.append(f"Only cosine distance is supported, got {self.vector.distance}")

        if self.router.async_workers <= 0:
            errors.append(f"router.async_workers must be > 0, got {self.router.async_workers}")

        if errors:
            raise ConfigurationError(f"Config validation failed: {'; '.join(errors)}")


# Global configuration instance
_global_config: Optional[MLConfig] = None


def get_ml_config() -> MLConfig:
    """Get global retrieval configuration (singleton pattern)."""
    global _global_config
    if _global_config is None:
        config = MLConfig.from_env()
        config.validate()
        _global_config = config
    return _global_config


def reset_config() -> None:
    """Reset global configuration (useful for testing)."""
    global _global_config
    _global_config = None
