"""Content tables for the two kinds of linkable content.

Articles and pages are owned by the surrounding CMS; the interlinking engine
only reads them and rewrites their ``body`` markup. Primary keys are UUIDs so
an id identifies a content item regardless of its kind.
"""

from __future__ import annotations

import uuid

from django.db import models


class ContentKind(models.TextChoices):
    ARTICLE = 'ARTICLE', 'Article'
    PAGE = 'PAGE', 'Page'


class ContentStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    PUBLISHED = 'PUBLISHED', 'Published'
    ARCHIVED = 'ARCHIVED', 'Archived'


class Tag(models.Model):
    name = models.CharField(max_length=100, unique=True)

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return self.name


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)

    class Meta:
        verbose_name_plural = 'categories'

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return self.name


class ContentBase(models.Model):
    """Fields shared by articles and pages."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=300)
    slug = models.SlugField(max_length=255, unique=True)
    body = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=ContentStatus.choices, default=ContentStatus.DRAFT)
    view_count = models.PositiveIntegerField(default=0)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    kind: str = ''

    class Meta:
        abstract = True
        ordering = ['-updated_at']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return self.title


class Article(ContentBase):
    """A blog article, served at ``/blog/<slug>``."""

    seo_keywords = models.JSONField(default=list, blank=True)
    tags = models.ManyToManyField(Tag, blank=True, related_name='articles')
    categories = models.ManyToManyField(Category, blank=True, related_name='articles')

    kind = ContentKind.ARTICLE


class Page(ContentBase):
    """A static page, served at ``/<slug>``."""

    kind = ContentKind.PAGE
