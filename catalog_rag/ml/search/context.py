"""
Product Context
Renders retrieved items as the plain-text context handed to the answer generator.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from ...models import CatalogItem

DEFAULT_CONTEXT_LIMIT = 20
UNCATEGORIZED_LABEL = "Autre"


def format_price(price: Decimal) -> str:
    """Whole-euro price, rounded half up."""
    return f"{price.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}€"


def build_product_context(
    items: Sequence[CatalogItem], limit: int = DEFAULT_CONTEXT_LIMIT
) -> str:
    """
    Render one line per item: ``- name | price€ | category``.

    Args:
        items: Retrieved items, most relevant first
        limit: Maximum number of lines

    Returns:
        Newline-terminated lines, or an empty string for no items
    """
    lines = [
        f"- {item.name} | {format_price(item.price)} | {item.category or UNCATEGORIZED_LABEL}"
        for item in list(items)[:limit]
    ]
    return "".join(f"{line}\n" for line in lines)


def build_stats_line(found: int, total: int) -> str:
    return f"[Produits trouves: {found}/{total}]"
