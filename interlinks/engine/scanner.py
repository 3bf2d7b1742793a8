"""Candidate discovery for a single source item."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from .config import EngineConfig, load_config
from .exclusions import ExclusionSet
from .index import ContentIndex, build_entry
from .matcher import find_phrase_occurrences, is_matchable_phrase, is_phrase_already_linked
from .scoring import calculate_relevance
from .text import count_words, strip_html
from .types import PUBLISHED, ContentRecord, LinkCandidate


def scan_content_for_links(
    source: ContentRecord,
    index: ContentIndex,
    exclusions: ExclusionSet | None = None,
    config: EngineConfig | None = None,
    *,
    now: Optional[datetime] = None,
) -> List[LinkCandidate]:
    """Return ranked link candidates found in the source body.

    Targets are visited in index order and each contributes at most one
    candidate: the first of its search phrases that occurs in the source
    text. Relevance does not depend on the phrase, so a target scoring under
    the threshold is dropped as a whole.
    """

    engine_config = config or load_config(None)
    rules = exclusions or ExclusionSet.empty()
    if rules.excludes_source(source.id):
        return []

    plain_text = strip_html(source.body or "")
    if count_words(plain_text) < int(engine_config.get("min_content_words", 50)):
        return []

    reference = now or datetime.now(timezone.utc)
    source_entry = build_entry(source, engine_config)
    threshold = engine_config.min_relevance
    candidates: List[LinkCandidate] = []
    matched_targets: set[str] = set()

    for target in index:
        if target.id == source.id or target.id in matched_targets:
            continue
        if target.status != PUBLISHED:
            continue
        if rules.excludes_target(source.id, target.id):
            continue

        relevance: Optional[int] = None
        for phrase in target.search_phrases:
            if rules.excludes_phrase(phrase) or not is_matchable_phrase(phrase, engine_config):
                continue
            occurrences = find_phrase_occurrences(plain_text, phrase, engine_config)
            if not occurrences:
                continue

            if relevance is None:
                relevance = calculate_relevance(source_entry, target, engine_config, now=reference)
            if relevance < threshold:
                break

            first = occurrences[0]
            candidates.append(
                LinkCandidate(
                    source_id=source.id,
                    source_type=source.kind,
                    target_id=target.id,
                    target_type=target.type,
                    anchor_text=plain_text[first.offset:first.offset + first.length],
                    match_offset=first.offset,
                    relevance=relevance,
                    already_linked=is_phrase_already_linked(source.body, phrase, target.url, target.id),
                )
            )
            matched_targets.add(target.id)
            break

    candidates.sort(key=lambda candidate: candidate.relevance, reverse=True)
    limit = engine_config.max_auto_links * int(engine_config.get("candidate_headroom", 2))
    return candidates[:limit]
