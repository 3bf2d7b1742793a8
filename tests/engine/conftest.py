"""Shared fixtures for the pure engine tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable

import pytest

from interlinks.engine.config import load_config
from interlinks.engine.types import ARTICLE, PUBLISHED, ContentRecord

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

FILLER = (
    "Teams that ship reliable software spend time on careful design, honest measurement "
    "and small steady improvements to every layer of their stack."
)


@pytest.fixture()
def engine_config():
    """Provide a mutable copy of the default engine configuration."""

    return load_config(None)


def filler(words: int, sentence: str = FILLER) -> str:
    """Return at least ``words`` words of neutral prose."""

    chunk = sentence.split()
    repeats = -(-words // len(chunk))
    return " ".join(chunk * repeats)


def make_record(
    title: str,
    body: str,
    *,
    id: str | None = None,
    kind: str = ARTICLE,
    slug: str | None = None,
    status: str = PUBLISHED,
    tags: Iterable[str] = (),
    categories: Iterable[str] = (),
    keywords: Iterable[str] = (),
    view_count: int = 0,
    age_days: int | None = 5,
) -> ContentRecord:
    slug = slug or "-".join(title.lower().split())
    published_at = NOW - timedelta(days=age_days) if age_days is not None else None
    return ContentRecord(
        id=id or slug,
        kind=kind,
        title=title,
        slug=slug,
        status=status,
        body=body,
        tags=tuple(tags),
        categories=tuple(categories),
        keywords=tuple(keywords),
        view_count=view_count,
        published_at=published_at,
        updated_at=published_at,
    )
