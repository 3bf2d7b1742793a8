"""Candidate discovery tests."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from interlinks.engine.exclusions import ExclusionSet
from interlinks.engine.index import build_content_index
from interlinks.engine.scanner import scan_content_for_links
from interlinks.engine.scoring import calculate_relevance, relevance_signals
from interlinks.engine.types import ContentRecord

from .conftest import NOW, filler, make_record

EVICTION_SENTENCE = "Eviction policies decide which cache entries leave memory when space runs out."


def caching_pair() -> tuple[ContentRecord, ContentRecord]:
    """The "Intro to Caching" / "Cache Eviction Policies" pair, each over 300 words."""

    source = make_record(
        "Intro to Caching",
        (
            "<p>Caching keeps hot data close to the code that needs it. "
            f"{filler(290)} Once the cache fills up, cache eviction policies decide what gets dropped.</p>"
        ),
        tags=["caching", "performance"],
    )
    target = make_record(
        "Cache Eviction Policies",
        f"<p>{filler(1500, EVICTION_SENTENCE)}</p>",
        tags=["caching", "eviction"],
        age_days=5,
    )
    return source, target


def rule(rule_type: str, *, phrase: str = "", source_id: str = "", target_id: str = "") -> SimpleNamespace:
    return SimpleNamespace(rule_type=rule_type, phrase=phrase, source_id=source_id, target_id=target_id)


def test_caching_scenario_produces_single_candidate(engine_config):
    source, target = caching_pair()
    index = build_content_index([source, target], engine_config)

    candidates = scan_content_for_links(source, index, None, engine_config, now=NOW)

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.target_id == target.id
    assert candidate.anchor_text == "cache eviction policies"
    assert candidate.relevance >= engine_config.min_relevance
    assert candidate.already_linked is False


def test_caching_scenario_clears_threshold_without_popularity(engine_config):
    source, target = caching_pair()
    index = build_content_index([source, target], engine_config)
    source_entry, target_entry = index.get(source.id), index.get(target.id)

    signals = relevance_signals(source_entry, target_entry, engine_config, now=NOW)

    assert target_entry.word_count >= 1500
    assert source_entry.word_count >= 300
    assert signals["popularity"] == 0.0
    assert signals["taxonomy_overlap"] == pytest.approx(1 / 3)
    assert (signals["published"], signals["recency"], signals["quality"]) == (1.0, 1.0, 1.0)
    assert calculate_relevance(source_entry, target_entry, engine_config, now=NOW) >= 35


def test_scan_never_links_to_itself(engine_config):
    source, _ = caching_pair()
    index = build_content_index([source], engine_config)

    assert scan_content_for_links(source, index, None, engine_config, now=NOW) == []


def test_low_relevance_targets_are_dropped(engine_config):
    source, _ = caching_pair()
    weak = make_record(
        "Cache Eviction Policies",
        "<p>Unrelated gardening notes about tomato seedlings.</p>",
        id="weak-target",
        age_days=800,
    )
    index = build_content_index([source, weak], engine_config)

    assert scan_content_for_links(source, index, None, engine_config, now=NOW) == []

    engine_config.raw["min_relevance"] = 5
    relaxed = scan_content_for_links(source, index, None, engine_config, now=NOW)
    assert [candidate.target_id for candidate in relaxed] == ["weak-target"]
    assert all(candidate.relevance >= 5 for candidate in relaxed)


def test_short_sources_produce_nothing(engine_config):
    _, target = caching_pair()
    source = make_record("Tiny Note", "<p>See cache eviction policies.</p>")
    index = build_content_index([source, target], engine_config)

    assert scan_content_for_links(source, index, None, engine_config, now=NOW) == []


def test_unpublished_targets_are_skipped(engine_config):
    source, target = caching_pair()
    draft = make_record(target.title, target.body, tags=target.tags, status="DRAFT")
    index = build_content_index([source, draft], engine_config)

    assert scan_content_for_links(source, index, None, engine_config, now=NOW) == []


def test_exclusions_apply_before_scoring(engine_config):
    source, target = caching_pair()
    index = build_content_index([source, target], engine_config)

    for rules, rejected in (
        ([rule("SOURCE", source_id=source.id)], []),
        ([rule("TARGET", target_id=target.id)], []),
        ([rule("PAIR", source_id=source.id, target_id=target.id)], []),
        ([], [(source.id, target.id)]),
    ):
        exclusions = ExclusionSet.from_rules(rules, rejected)
        assert scan_content_for_links(source, index, exclusions, engine_config, now=NOW) == []


def test_phrase_exclusion_falls_back_to_other_phrases(engine_config):
    source, target = caching_pair()
    index = build_content_index([source, target], engine_config)
    exclusions = ExclusionSet.from_rules([rule("PHRASE", phrase="Cache  Eviction Policies")])

    candidates = scan_content_for_links(source, index, exclusions, engine_config, now=NOW)

    assert len(candidates) == 1
    assert candidates[0].anchor_text.lower() != "cache eviction policies"


def test_existing_link_marks_candidate_as_already_linked(engine_config):
    source, target = caching_pair()
    linked = make_record(
        source.title,
        source.body + '<p>Background: <a href="/blog/cache-eviction-policies/">our eviction guide</a>.</p>',
        tags=source.tags,
    )
    index = build_content_index([linked, target], engine_config)

    candidates = scan_content_for_links(linked, index, None, engine_config, now=NOW)

    assert [candidate.already_linked for candidate in candidates] == [True]


def test_candidates_are_ranked_by_relevance(engine_config):
    source = make_record(
        "Intro to Caching",
        f"<p>{filler(60)} Compare cache eviction policies with distributed invalidation.</p>",
        tags=["caching"],
    )
    strong = make_record(
        "Cache Eviction Policies",
        f"<p>{filler(900, EVICTION_SENTENCE)}</p>",
        tags=["caching"],
        view_count=5000,
    )
    weaker = make_record(
        "Distributed Invalidation",
        f"<p>{filler(350, EVICTION_SENTENCE)}</p>",
        tags=["caching"],
        view_count=50,
        age_days=120,
    )
    engine_config.raw["min_relevance"] = 1
    index = build_content_index([source, weaker, strong], engine_config)

    candidates = scan_content_for_links(source, index, None, engine_config, now=NOW)

    assert [candidate.target_id for candidate in candidates] == [strong.id, weaker.id]
    assert candidates[0].relevance > candidates[1].relevance
