"""
Tests for query classification and the retrieval router.
"""

import asyncio
import time
from unittest.mock import MagicMock

import pytest

from catalog_rag.ml.config import MLConfig, RouterConfig
from catalog_rag.ml.retrieval import FilterStage, VectorRetriever
from catalog_rag.ml.search import (
    QueryClassifier,
    RetrievalRouter,
    RetrievalStrategy,
    build_retrieval_router,
    get_retrieval_router,
    reset_retrieval_router,
)
from catalog_rag.ml.search import search_service


def ids(items):
    return [item.id for item in items]


# ========== Classification ==========


@pytest.mark.parametrize(
    "query,reason",
    [
        ("moins de 20 euros", "price"),
        ("un truc à 30€", "price"),
        ("quel est le prix de la switch", "price"),
        ("anything under 40", "price"),
        ("combien ça coûte", "price"),
        ("what does it cost", "price"),
        ("show me cheaper options", "price"),
        ("entre 10 et 50", "price"),
        ("un bon livre de cuisine", "category"),
        ("une FORMATION en ligne", "category"),
        ("du développement personnel", "category"),
        ("des accessoires", "category"),
        ("est-ce disponible ?", "stock"),
        ("what is in stock", "stock"),
    ],
)
def test_simple_queries_route_lexical(query, reason, sample_catalog):
    decision = QueryClassifier().classify(query, sample_catalog)

    assert decision.strategy == RetrievalStrategy.LEXICAL
    assert decision.reason == reason


@pytest.mark.parametrize(
    "query",
    [
        "un cadeau pour mon frère qui aime la musique",
        "something relaxing for a rainy afternoon",
        "quelque chose pour écouter de la musique",
        "a costume for halloween",
        "a priceless memory for my sister",
        "",
        None,
    ],
)
def test_other_queries_route_vector(query, sample_catalog):
    decision = QueryClassifier().classify(query, sample_catalog)

    assert decision.strategy == RetrievalStrategy.VECTOR
    assert not QueryClassifier().is_simple_query(query, sample_catalog)


def test_catalog_categories_count_as_vocabulary(two_item_catalog):
    classifier = QueryClassifier()

    assert classifier.classify("gaming", two_item_catalog).matched == "gaming"
    assert classifier.classify("gaming").strategy == RetrievalStrategy.VECTOR


def test_vocabulary_is_configurable():
    classifier = QueryClassifier(RouterConfig(category_vocabulary=("vinyle",)))

    assert classifier.is_simple_query("un vinyle de jazz")
    assert not classifier.is_simple_query("un livre de jazz")


# ========== Routing ==========


@pytest.fixture
def router(retriever, ml_config):
    router = RetrievalRouter(retriever=retriever, config=ml_config)
    yield router
    router.close()


@pytest.fixture
def lexical_only_router(ml_config):
    router = RetrievalRouter(config=ml_config)
    yield router
    router.close()


@pytest.fixture
def mock_retriever(sample_catalog):
    retriever = MagicMock(spec=VectorRetriever)
    retriever.filter_semantic.return_value = [sample_catalog[6]]
    return retriever


def test_lexical_query_never_touches_retriever(mock_retriever, ml_config, sample_catalog):
    router = RetrievalRouter(retriever=mock_retriever, config=ml_config)

    response = router.search("moins de 20", sample_catalog)

    assert ids(response.items) == [2, 8]
    assert response.strategy == RetrievalStrategy.LEXICAL
    assert response.stage == FilterStage.PRICE
    mock_retriever.filter_semantic.assert_not_called()


def test_semantic_query_uses_retriever(mock_retriever, ml_config, sample_catalog):
    router = RetrievalRouter(retriever=mock_retriever, config=ml_config)

    response = router.search("quelque chose pour écouter de la musique", sample_catalog)

    assert ids(response.items) == [7]
    assert response.strategy == RetrievalStrategy.VECTOR
    assert response.stage is None
    mock_retriever.filter_semantic.assert_called_once()


def test_forced_strategies(mock_retriever, ml_config, sample_catalog):
    router = RetrievalRouter(retriever=mock_retriever, config=ml_config)

    assert ids(router.retrieve("moins de 20", sample_catalog, RetrievalStrategy.VECTOR)) == [7]
    assert ids(router.retrieve("nintendo", sample_catalog, RetrievalStrategy.LEXICAL)) == [4]


def test_disabled_semantic_path_routes_lexical(lexical_only_router, sample_catalog):
    response = lexical_only_router.search(
        "nintendo", sample_catalog, RetrievalStrategy.VECTOR
    )

    assert not lexical_only_router.semantic_enabled
    assert response.strategy == RetrievalStrategy.LEXICAL
    assert response.decision.reason == "semantic retrieval disabled"
    assert ids(response.items) == [4]


def test_unexpected_error_returns_first_fifteen(ml_config, large_catalog):
    retriever = MagicMock(spec=VectorRetriever)
    retriever.filter_semantic.side_effect = RuntimeError("boom")
    router = RetrievalRouter(retriever=retriever, config=ml_config)

    response = router.search("une idée cadeau", large_catalog)

    assert response.fallback
    assert response.stage == FilterStage.FALLBACK
    assert response.items == large_catalog[:15]
    assert response.to_dict()["fallback"] is True


def test_router_never_raises_on_bad_input(lexical_only_router):
    assert lexical_only_router.retrieve("moins de 20", None) == []
    assert lexical_only_router.retrieve(None, []) == []


def test_response_to_dict(router, sample_catalog):
    data = router.search("moins de 20", sample_catalog).to_dict()

    assert data["item_ids"] == [2, 8]
    assert data["strategy"] == "lexical"
    assert data["stage"] == "price"
    assert data["decision"]["reason"] == "price"
    assert data["elapsed_ms"] >= 0


def test_similarity_score_and_keywords(router, lexical_only_router, sample_catalog):
    switch = sample_catalog[3]

    assert router.similarity_score("nintendo switch consoles", switch) > 0.9
    assert lexical_only_router.similarity_score("nintendo switch", switch) == 2.0
    assert router.extract_keywords("Je veux une console") == ["console"]


# ========== Async ==========


def test_retrieve_async(router, sample_catalog):
    results = asyncio.run(router.retrieve_async("moins de 20", sample_catalog))

    assert ids(results) == [2, 8]


def test_async_timeout_answers_with_lexical_chain(ml_config, sample_catalog):
    def slow_search(query, items):
        time.sleep(0.5)
        return items[:1]

    retriever = MagicMock(spec=VectorRetriever)
    retriever.filter_semantic.side_effect = slow_search
    router = RetrievalRouter(retriever=retriever, config=ml_config)

    try:
        response = asyncio.run(
            router.search_async("nintendo", sample_catalog, RetrievalStrategy.VECTOR, timeout=0.05)
        )
    finally:
        router.close()

    assert response.fallback
    assert response.strategy == RetrievalStrategy.LEXICAL
    assert ids(response.items) == [4]


def test_concurrent_async_calls(router, sample_catalog):
    async def run_all():
        queries = ["moins de 20", "nintendo", "des consoles", "casque audio"]
        return await asyncio.gather(*(router.retrieve_async(q, sample_catalog) for q in queries))

    results = asyncio.run(run_all())

    assert ids(results[0]) == [2, 8]
    assert ids(results[2]) == [3, 4]
    assert all(results)


# ========== Wiring ==========


def test_build_router_without_semantic(test_settings):
    router = build_retrieval_router(test_settings, MLConfig())

    assert not router.semantic_enabled


def test_build_router_with_semantic(monkeypatch, test_settings, memory_store):
    monkeypatch.setattr(search_service, "QdrantVectorStore", lambda **kwargs: memory_store)
    settings = test_settings.model_copy(update={"enable_semantic_retrieval": True})

    router = build_retrieval_router(settings, MLConfig())

    assert router.semantic_enabled
    assert router.retriever.store is memory_store
    assert router.retriever.embedder.base_url == settings.ollama_url


def test_build_router_degrades_when_wiring_fails(monkeypatch, test_settings):
    def broken_store(**kwargs):
        raise ValueError("bad url")

    monkeypatch.setattr(search_service, "QdrantVectorStore", broken_store)
    settings = test_settings.model_copy(update={"enable_semantic_retrieval": True})

    assert not build_retrieval_router(settings, MLConfig()).semantic_enabled


def test_global_router_is_shared(monkeypatch):
    monkeypatch.setenv("ENABLE_SEMANTIC_RETRIEVAL", "false")
    reset_retrieval_router()
    try:
        assert get_retrieval_router() is get_retrieval_router()
    finally:
        reset_retrieval_router()
