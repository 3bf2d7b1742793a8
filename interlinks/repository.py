"""Persistence collaborators used by the interlinking services.

``ContentRepository`` turns CMS rows into engine ``ContentRecord`` values and
writes rewritten markup back. ``LinkStore`` owns ``InternalLink`` and
``ExclusionRule`` rows, including the idempotent upsert keyed by
(source, target, anchor text).
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from django.core.exceptions import ValidationError
from django.db.models import Count, QuerySet
from django.utils import timezone

from cms.models import Article, ContentKind, ContentStatus, Page

from .engine.exclusions import ExclusionSet
from .engine.types import ContentRecord
from .models import (
    LIVE_STATUSES,
    TERMINAL_STATUSES,
    ExclusionRule,
    InternalLink,
    LinkStatus,
)

CONTENT_MODELS = {
    ContentKind.ARTICLE: Article,
    ContentKind.PAGE: Page,
}

# Higher rank wins when an existing record is upserted again.
_STATUS_RANK = {
    LinkStatus.SUGGESTED: 0,
    LinkStatus.APPROVED: 1,
    LinkStatus.ACTIVE: 2,
}


class ContentRepository:
    """Reads and updates article and page rows on behalf of the engine."""

    def _model(self, kind: str):
        try:
            return CONTENT_MODELS[kind]
        except KeyError:
            raise ValueError(f"Unknown content kind: {kind!r}") from None

    def _queryset(self, kind: str) -> QuerySet:
        model = self._model(kind)
        queryset = model.objects.all()
        if model is Article:
            queryset = queryset.prefetch_related('tags', 'categories')
        return queryset

    def _to_record(self, instance) -> ContentRecord:
        if isinstance(instance, Article):
            tags = tuple(tag.name for tag in instance.tags.all())
            categories = tuple(category.name for category in instance.categories.all())
            keywords = tuple(str(keyword) for keyword in (instance.seo_keywords or []) if keyword)
        else:
            tags = categories = keywords = ()
        return ContentRecord(
            id=str(instance.pk),
            kind=instance.kind,
            title=instance.title,
            slug=instance.slug,
            status=instance.status,
            body=instance.body or '',
            tags=tags,
            categories=categories,
            keywords=keywords,
            view_count=instance.view_count,
            published_at=instance.published_at,
            updated_at=instance.updated_at,
        )

    def find(self, content_id: str, kind: str) -> Optional[ContentRecord]:
        queryset = self._queryset(kind)
        try:
            instance = queryset.filter(pk=content_id).first()
        except (ValidationError, ValueError):
            return None
        return self._to_record(instance) if instance is not None else None

    def list_published(self, kind: str, limit: Optional[int] = None) -> List[ContentRecord]:
        """Published items of one kind, most recently updated first."""

        queryset = self._queryset(kind).filter(status=ContentStatus.PUBLISHED).order_by('-updated_at', 'pk')
        if limit is not None:
            queryset = queryset[: max(limit, 0)]
        return [self._to_record(instance) for instance in queryset]

    def list_all_published(self) -> List[ContentRecord]:
        return self.list_published(ContentKind.ARTICLE) + self.list_published(ContentKind.PAGE)

    def count_published(self, kind: str) -> int:
        return self._model(kind).objects.filter(status=ContentStatus.PUBLISHED).count()

    def find_referencing(self, url: str) -> List[ContentRecord]:
        """Items of any status whose body mentions ``url``.

        The containment test is textual, so callers re-check hrefs in the
        parsed markup before rewriting anything.
        """

        if not url:
            return []
        records: List[ContentRecord] = []
        for kind in CONTENT_MODELS:
            records.extend(self._to_record(item) for item in self._queryset(kind).filter(body__contains=url))
        return records

    def update_body(self, content_id: str, kind: str, body: str) -> bool:
        # queryset.update skips save() so no lifecycle signal fires for engine writes.
        return self._model(kind).objects.filter(pk=content_id).update(body=body) > 0


class LinkStore:
    """Storage for link records and exclusion rules."""

    def upsert(
        self,
        *,
        source_id: str,
        source_type: str,
        target_id: str,
        target_type: str,
        anchor_text: str,
        target_url: str,
        relevance_score: int,
        status: str,
        origin: str,
    ) -> Tuple[InternalLink, bool]:
        """Create or refresh the record for (source, target, anchor text).

        Terminal records are returned untouched. A live record only moves up
        the SUGGESTED < APPROVED < ACTIVE ladder, and a BROKEN record is
        revived because its target has been found again.
        """

        link, created = InternalLink.objects.get_or_create(
            source_id=source_id,
            target_id=target_id,
            anchor_text=anchor_text,
            defaults={
                'source_type': source_type,
                'target_type': target_type,
                'target_url': target_url,
                'relevance_score': max(0, min(100, int(relevance_score))),
                'status': status,
                'origin': origin,
            },
        )
        if created or link.is_terminal:
            return link, created

        changed = []
        if link.status == LinkStatus.BROKEN or _STATUS_RANK.get(status, -1) > _STATUS_RANK.get(link.status, -1):
            link.status = status
            link.origin = origin
            changed += ['status', 'origin']
        if link.target_url != target_url:
            link.target_url = target_url
            changed.append('target_url')
        score = max(0, min(100, int(relevance_score)))
        if score > link.relevance_score:
            link.relevance_score = score
            changed.append('relevance_score')
        if changed:
            link.save(update_fields=changed + ['updated_at'])
        return link, False

    def get(self, link_id) -> Optional[InternalLink]:
        try:
            return InternalLink.objects.filter(pk=link_id).first()
        except (ValidationError, ValueError):
            return None

    def filter(self, **filters) -> QuerySet:
        """Link records matching the given field filters; ``None`` values are ignored."""

        allowed = {'source_id', 'source_type', 'target_id', 'target_type', 'status', 'origin', 'anchor_text'}
        unknown = set(filters) - allowed
        if unknown:
            raise ValueError(f"Unsupported link filters: {', '.join(sorted(unknown))}")
        return InternalLink.objects.filter(**{key: value for key, value in filters.items() if value is not None})

    def load_exclusions(self) -> ExclusionSet:
        terminal_pairs = InternalLink.objects.filter(status__in=TERMINAL_STATUSES).values_list('source_id', 'target_id')
        return ExclusionSet.from_rules(ExclusionRule.objects.all(), terminal_pairs)

    def mark_broken(self, target_id: str) -> int:
        return InternalLink.objects.filter(target_id=target_id, status__in=LIVE_STATUSES).update(
            status=LinkStatus.BROKEN,
            updated_at=timezone.now(),
        )

    def mark_broken_urls(self, source_id: str, target_urls: Iterable[str]) -> int:
        """Flag live records of one source whose anchors were just stripped as dead."""

        urls = [url for url in target_urls if url]
        if not urls:
            return 0
        return InternalLink.objects.filter(
            source_id=source_id,
            target_url__in=urls,
            status__in=LIVE_STATUSES,
        ).update(status=LinkStatus.BROKEN, updated_at=timezone.now())

    def delete_from_source(self, source_id: str, *, keep_terminal: bool = False) -> int:
        queryset = InternalLink.objects.filter(source_id=source_id)
        if keep_terminal:
            queryset = queryset.exclude(status__in=TERMINAL_STATUSES)
        deleted, _ = queryset.delete()
        return deleted

    def discard_suggestions(self, source_id: str) -> int:
        deleted, _ = InternalLink.objects.filter(source_id=source_id, status=LinkStatus.SUGGESTED).delete()
        return deleted

    def retarget(self, target_id: str, target_url: str) -> int:
        return (
            InternalLink.objects.filter(target_id=target_id)
            .exclude(target_url=target_url)
            .update(target_url=target_url, updated_at=timezone.now())
        )

    def active_links(self) -> QuerySet:
        return InternalLink.objects.filter(status=LinkStatus.ACTIVE)

    def broken_links(self) -> QuerySet:
        return InternalLink.objects.filter(status=LinkStatus.BROKEN)

    def outbound_counts(self, ids: Iterable[str]) -> Dict[str, int]:
        rows = self.active_links().filter(source_id__in=list(ids)).order_by().values('source_id').annotate(total=Count('id'))
        return {row['source_id']: row['total'] for row in rows}

    def inbound_counts(self, ids: Iterable[str]) -> Dict[str, int]:
        rows = self.active_links().filter(target_id__in=list(ids)).order_by().values('target_id').annotate(total=Count('id'))
        return {row['target_id']: row['total'] for row in rows}

    def status_counts(self) -> Dict[str, int]:
        rows = InternalLink.objects.order_by().values('status').annotate(total=Count('id'))
        counts = {status: 0 for status in LinkStatus.values}
        counts.update({row['status']: row['total'] for row in rows})
        return counts

    def origin_counts(self) -> Dict[str, int]:
        rows = InternalLink.objects.order_by().values('origin').annotate(total=Count('id'))
        return {row['origin']: row['total'] for row in rows}

    # Exclusion rules

    def remove_exclusion(self, rule_id) -> bool:
        try:
            deleted, _ = ExclusionRule.objects.filter(pk=rule_id).delete()
        except (ValidationError, ValueError):
            return False
        return deleted > 0

    def list_exclusions(self) -> QuerySet:
        return ExclusionRule.objects.all()

    def exclusion_count(self) -> int:
        return ExclusionRule.objects.count()
