"""
Tests for keyword extraction.
"""

import pytest

from catalog_rag.ml.keywords import KeywordExtractor, extract_keywords


def test_extract_lowercases_and_drops_stop_words():
    """Stop-words and short tokens are removed."""
    keywords = extract_keywords("Je cherche un LIVRE pour apprendre le Python")

    assert keywords == ["livre", "apprendre", "python"]


def test_extract_splits_on_punctuation_and_newlines():
    keywords = extract_keywords("console,manette;casque?souris!clavier:écran.\nsac\r\ntapis")

    assert keywords == [
        "console", "manette", "casque", "souris", "clavier", "écran", "sac", "tapis"
    ]


def test_extract_deduplicates_in_first_seen_order():
    assert extract_keywords("switch console switch Console") == ["switch", "console"]


def test_extract_drops_tokens_of_two_characters():
    assert extract_keywords("pc tv ps5 jeu") == ["ps5", "jeu"]


@pytest.mark.parametrize("text", [None, "", "   ", "le la de", "?!,"])
def test_extract_empty_inputs(text):
    """Missing or meaningless text yields no keywords, never an error."""
    assert extract_keywords(text) == []


@pytest.mark.parametrize(
    "text",
    [
        "Je veux une console pas chère pour jouer",
        "Recommend me a good book about Python, please!",
        "casque casque audio, audio sans fil",
        "",
    ],
)
def test_extract_is_idempotent(text):
    """Extracting from extracted keywords gives the same keywords."""
    keywords = extract_keywords(text)

    assert extract_keywords(" ".join(keywords)) == keywords


def test_custom_stop_words_and_min_length():
    extractor = KeywordExtractor(stop_words={"Console"}, min_token_length=2)

    assert extractor.extract("console pc portable") == ["pc", "portable"]


def test_tokenize_keeps_short_tokens():
    assert KeywordExtractor().tokenize("Le PC, la TV") == ["le", "pc", "la", "tv"]
