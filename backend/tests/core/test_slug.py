"""Slug Helpers: generation, validation, uniqueness and keyword extraction."""

from hive.core.slug import (
    MAX_SLUG_LENGTH, extract_keywords, generate_slug, generate_unique_slug, is_valid_slug,
)


def test_generate_slug_lowercases_and_hyphenates():
    assert generate_slug("  Market Research Team! ") == "market-research-team"
    assert generate_slug("a__b  c--d") == "a-b-c-d"


def test_generate_slug_truncates():
    assert len(generate_slug("x" * 300)) == MAX_SLUG_LENGTH


def test_is_valid_slug():
    assert is_valid_slug("research-team-2")
    assert not is_valid_slug("-leading")
    assert not is_valid_slug("double--dash")
    assert not is_valid_slug("Upper")
    assert not is_valid_slug("")


def test_unique_slug_appends_counter():
    assert generate_unique_slug("Research", []) == "research"
    assert generate_unique_slug("Research", {"research"}) == "research-1"
    assert generate_unique_slug("Research", {"research", "research-1"}) == "research-2"


def test_extract_keywords_skips_stop_words_and_short_words():
    text = "The swarm plans the launch; the swarm reviews launch risks. Go!"
    assert extract_keywords(text, 2) == ["swarm", "launch"]
