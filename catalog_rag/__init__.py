"""
catalog-rag
Hybrid retrieval engine for product catalogs.
"""

__version__ = "0.1.0"
