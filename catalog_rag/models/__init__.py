"""
Data Models Package
Domain entities consumed by the retrieval engine.
"""

from .product import CatalogItem

__all__ = ["CatalogItem"]
