"""
Integration test fixtures
"""

import pytest

from catalog_rag.ml.search import RetrievalRouter


@pytest.fixture
def lexical_router(ml_config):
    """Router with the semantic path disabled."""
    router = RetrievalRouter(retriever=None, config=ml_config)
    yield router
    router.close()


@pytest.fixture
def hybrid_router(retriever, ml_config):
    """Router with hash embeddings and an in-memory vector store."""
    router = RetrievalRouter(retriever=retriever, config=ml_config)
    yield router
    router.close()
