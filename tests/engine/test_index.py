"""Content index and keyword extraction tests."""

from __future__ import annotations

from interlinks.engine.index import build_content_index, build_entry
from interlinks.engine.text import extract_keywords, strip_html
from interlinks.engine.types import PAGE

from .conftest import make_record


def test_search_phrases_follow_source_order(engine_config):
    record = make_record(
        "Cache  Eviction Policies",
        "<p>Eviction tuning matters. Eviction tuning saves memory.</p>",
        keywords=["LRU Caches", "cache eviction policies"],
        tags=["Performance", "ops"],
        categories=["Backend Systems"],
    )

    entry = build_entry(record, engine_config)

    assert entry.search_phrases[:4] == ("cache eviction policies", "lru caches", "performance", "backend systems")
    assert "ops" not in entry.search_phrases
    assert "eviction tuning" in entry.search_phrases
    assert len(entry.search_phrases) == len(set(entry.search_phrases))
    assert entry.taxonomy == ("performance", "ops", "backend systems")


def test_entry_fields_are_derived_from_record(engine_config):
    record = make_record("Pricing", "<p>Plans <script>var x = 1;</script>and   prices.</p>", kind=PAGE, view_count=7)

    entry = build_entry(record, engine_config)

    assert entry.url == "/pricing"
    assert entry.type == PAGE
    assert entry.text == "Plans and prices."
    assert entry.word_count == 3
    assert entry.view_count == 7
    assert entry.keywords == ()


def test_index_deduplicates_and_keeps_order(engine_config):
    first = make_record("Alpha Topic", "<p>a</p>")
    second = make_record("Beta Topic", "<p>b</p>")

    index = build_content_index([first, second, first], engine_config)

    assert [entry.id for entry in index] == ["alpha-topic", "beta-topic"]
    assert len(index) == 2
    assert "beta-topic" in index
    assert index.get("missing") is None
    assert index.urls == frozenset({"/blog/alpha-topic", "/blog/beta-topic"})


def test_keywords_need_repetition_for_single_words():
    text = "Replication lag hurts. Replication lag grows under load. Sharding appears once."

    keywords = extract_keywords(text)

    assert keywords[0] == "replication"
    assert "replication lag" in keywords
    assert "sharding" not in keywords
    assert "under" not in keywords


def test_strip_html_tolerates_empty_and_broken_markup():
    assert strip_html("") == ""
    assert strip_html("<p>Open <b>bold") == "Open bold"
