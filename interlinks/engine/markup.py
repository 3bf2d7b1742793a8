"""Segmenting body markup and injecting anchors into eligible text.

Markup that is written back goes through ``html.parser`` so fragments are not
wrapped in ``<html>``/``<body>`` and untouched markup survives a round trip.
When nothing is inserted the caller gets the original string back unchanged.
"""

from __future__ import annotations

from typing import Iterator, List, Sequence, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.builder import ParserRejectedMarkup
from bs4.element import PreformattedString

from .config import EngineConfig, load_config
from .index import ContentIndex
from .matcher import TRACKING_ATTR, phrase_pattern
from .text import normalize_phrase
from .types import LinkCandidate

MARKER_ATTR = "data-interlink"


def parse_fragment(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def iter_text_segments(
    root: Tag,
    skip_tags: frozenset[str],
) -> Iterator[Tuple[NavigableString, bool]]:
    """Yield text segments in document order with their "skipped" flag.

    A segment is skipped when any enclosing element is a skip tag. Comments,
    CDATA and doctypes are not text and are never yielded.
    """

    pending: List[Tuple[object, bool]] = [(child, False) for child in reversed(list(root.children))]
    while pending:
        node, skipped = pending.pop()
        if isinstance(node, Tag):
            inside = skipped or (node.name or "").lower() in skip_tags
            pending.extend((child, inside) for child in reversed(list(node.children)))
        elif isinstance(node, NavigableString) and not isinstance(node, PreformattedString):
            yield node, skipped


def _wrap_match(soup: BeautifulSoup, node: NavigableString, start: int, end: int, attrs: dict) -> None:
    original = str(node)

    after = original[end:]
    if after:
        node.insert_after(after)

    anchor = soup.new_tag("a", attrs=attrs)
    anchor.string = original[start:end]
    node.insert_after(anchor)

    before = original[:start]
    if before:
        node.replace_with(before)
    else:
        node.extract()


def inject_links(
    html: str,
    candidates: Sequence[LinkCandidate],
    index: ContentIndex,
    config: EngineConfig | None = None,
    *,
    marker: str = "auto",
    enforce_threshold: bool = True,
) -> Tuple[str, List[LinkCandidate]]:
    """Wrap candidate anchor texts in links and return ``(html, inserted)``.

    Candidates already linked, or under the relevance threshold when
    ``enforce_threshold`` is set, are ignored. Within one pass no anchor
    text and no target is used twice, and each candidate is linked at its
    first eligible occurrence only. Anchors already carrying ``marker`` count
    towards ``max_auto_links``, so repeated passes never exceed the cap.
    """

    if not html or not candidates:
        return html, []

    engine_config = config or load_config(None)
    threshold = engine_config.min_relevance
    min_length = int(engine_config.get("min_anchor_length", 4))
    skip_tags = engine_config.skip_tags

    eligible = [
        candidate
        for candidate in candidates
        if not candidate.already_linked and (not enforce_threshold or candidate.relevance >= threshold)
    ]
    if not eligible:
        return html, []
    eligible.sort(key=lambda candidate: candidate.relevance, reverse=True)

    try:
        soup = parse_fragment(html)
    except ParserRejectedMarkup:
        return html, []

    # The cap covers the whole item, so anchors from earlier passes use it up.
    budget = engine_config.max_auto_links - len(soup.find_all("a", attrs={MARKER_ATTR: marker}))
    if budget <= 0:
        return html, []

    used_phrases: set[str] = set()
    used_targets: set[str] = set()
    inserted: List[LinkCandidate] = []

    for candidate in eligible:
        if len(inserted) >= budget:
            break
        key = normalize_phrase(candidate.anchor_text)
        if len(key) < min_length or key in used_phrases or candidate.target_id in used_targets:
            continue
        target = index.get(candidate.target_id)
        if target is None:
            continue

        pattern = phrase_pattern(key)
        for node, skipped in iter_text_segments(soup, skip_tags):
            if skipped:
                continue
            match = pattern.search(str(node))
            if not match:
                continue
            _wrap_match(
                soup,
                node,
                match.start(),
                match.end(),
                {
                    "href": target.url,
                    "title": target.title,
                    MARKER_ATTR: marker,
                    TRACKING_ATTR: target.id,
                },
            )
            used_phrases.add(key)
            used_targets.add(candidate.target_id)
            inserted.append(candidate)
            break

    if not inserted:
        return html, []
    return str(soup), inserted
