"""Typed data structures used by the interlinking engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

ARTICLE = "ARTICLE"
PAGE = "PAGE"
PUBLISHED = "PUBLISHED"

ARTICLE_URL_PREFIX = "/blog/"
PAGE_URL_PREFIX = "/"


def content_url(kind: str, slug: str) -> str:
    """Return the canonical path of a content item."""

    prefix = ARTICLE_URL_PREFIX if kind == ARTICLE else PAGE_URL_PREFIX
    return f"{prefix}{slug}"


@dataclass(frozen=True)
class ContentRecord:
    """A content item as the engine sees it, whatever its kind.

    Pages carry no tags, categories or keywords; the repository fills those
    with empty tuples so the engine never branches on the kind.
    """

    id: str
    kind: str
    title: str
    slug: str
    status: str
    body: str = ""
    tags: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    view_count: int = 0
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def url(self) -> str:
        return content_url(self.kind, self.slug)

    @property
    def is_published(self) -> bool:
        return self.status == PUBLISHED


@dataclass(frozen=True)
class ContentIndexEntry:
    """Derived, read-only view of a content item used for matching and scoring."""

    id: str
    type: str
    title: str
    slug: str
    url: str
    status: str
    view_count: int
    word_count: int
    published_at: Optional[datetime]
    updated_at: Optional[datetime]
    text: str
    keywords: Tuple[str, ...]
    taxonomy: Tuple[str, ...]
    search_phrases: Tuple[str, ...]


@dataclass(frozen=True)
class LinkCandidate:
    """A proposed internal link found while scanning one source item."""

    source_id: str
    source_type: str
    target_id: str
    target_type: str
    anchor_text: str
    match_offset: int
    relevance: int
    already_linked: bool


@dataclass(frozen=True)
class PhraseOccurrence:
    offset: int
    length: int


@dataclass(frozen=True)
class BrokenLink:
    href: str
    anchor_text: str
