"""Content catalogue built fresh for every top-level engine operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

from .config import EngineConfig, load_config
from .text import count_words, extract_keywords, normalize_phrase, strip_html
from .types import ContentIndexEntry, ContentRecord


@dataclass(frozen=True)
class ContentIndex:
    """Ordered, immutable collection of index entries."""

    entries: Tuple[ContentIndexEntry, ...] = ()
    _by_id: Dict[str, ContentIndexEntry] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._by_id.update((entry.id, entry) for entry in self.entries)

    def __iter__(self) -> Iterator[ContentIndexEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, content_id: object) -> bool:
        return content_id in self._by_id

    def get(self, content_id: str) -> Optional[ContentIndexEntry]:
        return self._by_id.get(content_id)

    @property
    def urls(self) -> FrozenSet[str]:
        return frozenset(entry.url for entry in self.entries)


def _search_phrases(record: ContentRecord, body_keywords: Sequence[str], min_length: int) -> Tuple[str, ...]:
    sources: Iterable[str] = (
        record.title,
        *record.keywords,
        *record.tags,
        *record.categories,
        *body_keywords,
    )
    seen: Dict[str, None] = {}
    for phrase in sources:
        if not phrase:
            continue
        normalized = normalize_phrase(str(phrase))
        if len(normalized) >= min_length:
            seen.setdefault(normalized, None)
    return tuple(seen)


def build_entry(record: ContentRecord, config: EngineConfig | None = None) -> ContentIndexEntry:
    """Derive the index entry for a single content record."""

    engine_config = config or load_config(None)
    text = strip_html(record.body or "")
    body_keywords = extract_keywords(text, int(engine_config.get("max_body_keywords", 15)))

    keywords: Dict[str, None] = {}
    for keyword in (*record.keywords, *body_keywords):
        normalized = normalize_phrase(str(keyword))
        if normalized:
            keywords.setdefault(normalized, None)

    taxonomy: Dict[str, None] = {}
    for term in (*record.tags, *record.categories):
        normalized = normalize_phrase(str(term))
        if normalized:
            taxonomy.setdefault(normalized, None)

    return ContentIndexEntry(
        id=record.id,
        type=record.kind,
        title=record.title or "",
        slug=record.slug,
        url=record.url,
        status=record.status,
        view_count=int(record.view_count or 0),
        word_count=count_words(text),
        published_at=record.published_at,
        updated_at=record.updated_at,
        text=text[: int(engine_config.get("plain_text_limit", 20000))],
        keywords=tuple(keywords),
        taxonomy=tuple(taxonomy),
        search_phrases=_search_phrases(record, body_keywords, int(engine_config.get("min_anchor_length", 4))),
    )


def build_content_index(records: Iterable[ContentRecord], config: EngineConfig | None = None) -> ContentIndex:
    """Build the catalogue of linkable content, preserving record order."""

    engine_config = config or load_config(None)
    entries: List[ContentIndexEntry] = []
    seen: set[str] = set()
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        entries.append(build_entry(record, engine_config))
    return ContentIndex(tuple(entries))
