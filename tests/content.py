"""Helpers creating CMS rows for the database-backed tests."""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable

from django.utils import timezone
from django.utils.text import slugify

from cms.models import Article, Category, ContentStatus, Page, Tag

FILLER = (
    "Teams that ship reliable software spend time on careful design, honest measurement "
    "and small steady improvements to every layer of their stack."
)
EVICTION_SENTENCE = "Eviction policies decide which cache entries leave memory when space runs out."


def filler(words: int, sentence: str = FILLER) -> str:
    chunk = sentence.split()
    repeats = -(-words // len(chunk))
    return " ".join(chunk * repeats)


INTRO_BODY = (
    "<p>Caching keeps hot data close to the code that needs it. "
    f"{filler(290)} Once the cache fills up, cache eviction policies decide what gets dropped.</p>"
)
EVICTION_BODY = f"<p>{filler(1500, EVICTION_SENTENCE)}</p>"
INTRO_TAGS = ('caching', 'performance')
EVICTION_TAGS = ('caching', 'eviction')


def _content_fields(title, body, slug, status, view_count, age_days):
    return {
        'title': title,
        'slug': slug or slugify(title),
        'body': body,
        'status': status,
        'view_count': view_count,
        'published_at': timezone.now() - timedelta(days=age_days) if age_days is not None else None,
    }


def make_article(
    title: str,
    body: str,
    *,
    slug: str | None = None,
    status: str = ContentStatus.PUBLISHED,
    tags: Iterable[str] = (),
    categories: Iterable[str] = (),
    keywords: Iterable[str] = (),
    view_count: int = 0,
    age_days: int | None = 5,
) -> Article:
    article = Article.objects.create(
        seo_keywords=list(keywords),
        **_content_fields(title, body, slug, status, view_count, age_days),
    )
    for name in tags:
        article.tags.add(Tag.objects.get_or_create(name=name)[0])
    for name in categories:
        article.categories.add(Category.objects.get_or_create(name=name)[0])
    return article


def make_page(
    title: str,
    body: str,
    *,
    slug: str | None = None,
    status: str = ContentStatus.PUBLISHED,
    view_count: int = 0,
    age_days: int | None = 5,
) -> Page:
    return Page.objects.create(**_content_fields(title, body, slug, status, view_count, age_days))


def caching_articles() -> tuple[Article, Article]:
    """The "Intro to Caching" source and its "Cache Eviction Policies" target."""

    source = make_article('Intro to Caching', INTRO_BODY, tags=INTRO_TAGS)
    target = make_article('Cache Eviction Policies', EVICTION_BODY, tags=EVICTION_TAGS)
    return source, target


def touch(instance, *, days_ago: int) -> None:
    """Backdate ``updated_at`` without going through ``save()``."""

    type(instance).objects.filter(pk=instance.pk).update(updated_at=timezone.now() - timedelta(days=days_ago))
