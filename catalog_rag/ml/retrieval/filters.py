"""
Lexical Filtering
Rule-based product filtering on in-memory catalog data: price ranges, category,
keywords and bag-of-words relevance, applied as a short-circuiting chain.
"""

import logging
import operator
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from ...models import CatalogItem
from ..config import LexicalConfig
from ..keywords import KeywordExtractor
from .ranking import BagOfWordsScorer

logger = logging.getLogger(__name__)


class FilterOperator(Enum):
    """Comparison operators for filters."""

    EQ = "="
    NE = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="


_OPERATOR_FUNCS: Dict[FilterOperator, Callable[[Any, Any], bool]] = {
    FilterOperator.EQ: operator.eq,
    FilterOperator.NE: operator.ne,
    FilterOperator.GT: operator.gt,
    FilterOperator.GTE: operator.ge,
    FilterOperator.LT: operator.lt,
    FilterOperator.LTE: operator.le,
}


@dataclass
class ProductFilter:
    """
    Single filter condition for catalog items.

    Example:
        ProductFilter("price", FilterOperator.LT, Decimal("20"))  # price < 20
        ProductFilter("category", FilterOperator.EQ, "Books")
    """

    field: str
    operator: FilterOperator
    value: Any

    def matches(self, item: CatalogItem) -> bool:
        """Evaluate the condition against an item; missing values never match."""
        actual = getattr(item, self.field, None)
        if actual is None:
            return False
        try:
            return _OPERATOR_FUNCS[self.operator](actual, self.value)
        except TypeError:
            return False


@dataclass
class PriceRange:
    """
    Price bounds parsed from a query.

    ``None`` bounds are open. Inclusive flags follow the query wording:
    "less than"/"more than" are strict, "between" is inclusive.
    """

    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    min_inclusive: bool = False
    max_inclusive: bool = False

    def build_filters(self) -> List[ProductFilter]:
        """Build list of ProductFilter objects from these bounds."""
        filters = []

        if self.min_price is not None:
            op = FilterOperator.GTE if self.min_inclusive else FilterOperator.GT
            filters.append(ProductFilter("price", op, self.min_price))
        if self.max_price is not None:
            op = FilterOperator.LTE if self.max_inclusive else FilterOperator.LT
            filters.append(ProductFilter("price", op, self.max_price))

        return filters

    def apply(self, items: Sequence[CatalogItem]) -> List[CatalogItem]:
        filters = self.build_filters()
        return [item for item in items if all(f.matches(item) for f in filters)]


# Comma digit grouping ("1,000" or "1,299.99") is tried before a decimal comma ("19,90")
_NUMBER = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?(?!\d)|\d+(?:[.,]\d+)?)"
_GROUPED = re.compile(r"\d{1,3}(?:,\d{3})+(?:\.\d+)?")

_LESS_THAN = re.compile(
    r"(?:moins\s+de|<\s?|inférieur|en\s+dessous|less\s+than|\bunder\b|\bbelow\b|cheaper\s+than)"
    r"\D*?" + _NUMBER
)
_GREATER_THAN = re.compile(
    r"(?:plus\s+de|>\s?|supérieur|au[- ]dessus|more\s+than|\babove\b|\bover\b)"
    r"\D*?" + _NUMBER
)
_BETWEEN = re.compile(r"(?:entre|between)\D*?" + _NUMBER + r"\D*?" + _NUMBER)


def _parse_amount(raw: str) -> Optional[Decimal]:
    if _GROUPED.fullmatch(raw):
        raw = raw.replace(",", "")
    try:
        return Decimal(raw.replace(",", "."))
    except InvalidOperation:
        return None


class PriceQueryParser:
    """
    Detects price constraints in a query.

    Patterns are tried in order: less-than, greater-than, between. A
    pattern whose number cannot be parsed is treated as not matching.
    """

    def parse(self, query: Optional[str]) -> Optional[PriceRange]:
        """
        Parse the first price constraint in a query.

        Args:
            query: Raw query text

        Returns:
            PriceRange or None if the query carries no price constraint
        """
        if not query:
            return None

        text = str(query).lower()

        match = _LESS_THAN.search(text)
        if match:
            amount = _parse_amount(match.group(1))
            if amount is not None:
                return PriceRange(max_price=amount)

        match = _GREATER_THAN.search(text)
        if match:
            amount = _parse_amount(match.group(1))
            if amount is not None:
                return PriceRange(min_price=amount)

        match = _BETWEEN.search(text)
        if match:
            low = _parse_amount(match.group(1))
            high = _parse_amount(match.group(2))
            if low is not None and high is not None:
                if low > high:
                    low, high = high, low
                return PriceRange(
                    min_price=low, max_price=high, min_inclusive=True, max_inclusive=True
                )

        return None


class FilterStage(Enum):
    """Stages of the lexical filter chain."""

    PRICE = "price"
    CATEGORY = "category"
    KEYWORD = "keyword"
    SCORE = "score"
    FALLBACK = "fallback"


@dataclass
class FilterOutcome:
    """Items selected by the chain and the stage that selected them."""

    items: List[CatalogItem]
    stage: FilterStage
    details: Dict[str, Any] = field(default_factory=dict)


class LexicalFilterChain:
    """
    Applies rule-based filters in priority order.

    The first stage that structurally matches the query short-circuits the
    chain. When no stage matches, the first ``fallback_limit`` catalog items
    are returned. The result is empty only when the catalog is empty.
    """

    def __init__(
        self,
        config: Optional[LexicalConfig] = None,
        extractor: Optional[KeywordExtractor] = None,
    ):
        self.config = config or LexicalConfig()
        self.extractor = extractor or KeywordExtractor(
            stop_words=self.config.stop_words,
            min_token_length=self.config.min_token_length,
        )
        self.price_parser = PriceQueryParser()
        self.scorer = BagOfWordsScorer(self.extractor)

        self.stages = [FilterStage(name) for name in self.config.stage_order]
        self._handlers = {
            FilterStage.PRICE: self._filter_price,
            FilterStage.CATEGORY: self._filter_category,
            FilterStage.KEYWORD: self._filter_keywords,
            FilterStage.SCORE: self._filter_score,
        }

        logger.debug(f"Lexical filter chain initialized: {[s.value for s in self.stages]}")

    def filter_classic(
        self, query: Optional[str], items: Sequence[CatalogItem]
    ) -> List[CatalogItem]:
        """Return the items selected by the first matching stage."""
        return self.apply(query, items).items

    def apply(self, query: Optional[str], items: Sequence[CatalogItem]) -> FilterOutcome:
        """
        Run the chain and report which stage answered.

        Args:
            query: Raw query text (may be empty or None)
            items: Full catalog

        Returns:
            FilterOutcome with the selected items and the matching stage
        """
        text = "" if query is None else str(query)
        catalog = list(items)

        for stage in self.stages:
            outcome = self._handlers[stage](text, catalog)
            if outcome is not None:
                logger.debug(
                    f"Lexical stage '{stage.value}' matched: "
                    f"{len(outcome.items)}/{len(catalog)} items"
                )
                return outcome

        logger.debug(f"No lexical stage matched, returning first {self.config.fallback_limit}")
        return FilterOutcome(catalog[: self.config.fallback_limit], FilterStage.FALLBACK)

    # ========== Stages ==========

    def _filter_price(self, query: str, items: List[CatalogItem]) -> Optional[FilterOutcome]:
        price_range = self.price_parser.parse(query)
        if price_range is None:
            return None

        matched = price_range.apply(items)
        details = {
            "min_price": price_range.min_price,
            "max_price": price_range.max_price,
        }

        if not matched:
            logger.debug("Price filter matched no item, using price fallback slice")
            details["fallback"] = True
            return FilterOutcome(
                items[: self.config.price_fallback_limit], FilterStage.PRICE, details
            )

        return FilterOutcome(matched, FilterStage.PRICE, details)

    def _filter_category(self, query: str, items: List[CatalogItem]) -> Optional[FilterOutcome]:
        query_lower = query.lower()

        for category in self.distinct_categories(items):
            if category.lower() in query_lower:
                matched = [item for item in items if item.category == category]
                return FilterOutcome(matched, FilterStage.CATEGORY, {"category": category})

        return None

    def _filter_keywords(self, query: str, items: List[CatalogItem]) -> Optional[FilterOutcome]:
        keywords = self.extractor.extract(query)
        if not keywords:
            return None

        matched = [
            item for item in items if any(k in item.name.lower() for k in keywords)
        ]
        if not matched:
            return None

        return FilterOutcome(matched, FilterStage.KEYWORD, {"keywords": keywords})

    def _filter_score(self, query: str, items: List[CatalogItem]) -> Optional[FilterOutcome]:
        ranked = self.scorer.rank(query, items)
        top = [item for item, score in ranked if score > 0][: self.config.score_limit]
        if not top:
            return None

        return FilterOutcome(top, FilterStage.SCORE)

    @staticmethod
    def distinct_categories(items: Sequence[CatalogItem]) -> List[str]:
        """Distinct non-empty categories, in catalog order."""
        seen = set()
        categories = []
        for item in items:
            if item.category and item.category not in seen:
                seen.add(item.category)
                categories.append(item.category)
        return categories
