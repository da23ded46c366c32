"""
Catalog item model.
The read-only view of a product that the retrieval engine works on.
"""

import hashlib
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CatalogItem(BaseModel):
    """
    A catalog product as supplied by the catalog collaborator.

    The retrieval engine only reads items; it never mutates or persists
    them, so instances are frozen and hashable.
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,  # Auto-strip whitespace
    )

    id: int
    name: str
    description: Optional[str] = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    category: Optional[str] = None
    stock: int = Field(default=0, ge=0)

    # === VALIDATORS ===

    @field_validator("description", "category", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty optional strings as missing."""
        if v is None:
            return None
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("name", mode="before")
    @classmethod
    def name_to_string(cls, v):
        if v is None:
            return ""
        return str(v)

    @field_validator("price", mode="before")
    @classmethod
    def clean_price(cls, v):
        """Clean price values such as "12,50 €" into Decimal."""
        if v is None or v == "":
            return Decimal("0")

        if isinstance(v, str):
            # Remove currency symbols and whitespace, accept decimal comma
            v = re.sub(r"[£$€\s]", "", v).replace(",", ".")
            try:
                return Decimal(v)
            except InvalidOperation:
                raise ValueError(f"Invalid price: {v!r}")

        if isinstance(v, float):
            return Decimal(str(v))

        return v

    # === METHODS ===

    def lexical_text(self) -> str:
        """Name and category, lower-cased, as used by bag-of-words scoring."""
        return f"{self.name} {self.category or ''}".lower()

    def indexable_text(self) -> str:
        """Text embedded for the vector index: name + category + description."""
        return f"{self.name} {self.category or ''} {self.description or ''}".strip()

    def payload(self) -> Dict[str, Any]:
        """Payload stored next to the vector in the vector collection."""
        return {
            "name": self.name,
            "price": float(self.price),
            "category": self.category or "",
            "stock": self.stock,
        }

    def fingerprint(self) -> str:
        """Content hash of the indexed text, used to detect stale embeddings."""
        return hashlib.sha256(self.indexable_text().encode("utf-8")).hexdigest()
