"""Keeps link records and markup consistent as content changes.

The CMS calls these hooks (directly or through the model signals in
``interlinks.signals``) after an article or page is created, edited,
renamed, unpublished or deleted. Every hook is safe to run twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from django.db import transaction

from .engine.broken import remove_broken_links_from_html, rewrite_urls_in_html
from .engine.config import EngineConfig
from .engine.exclusions import ExclusionSet
from .engine.index import ContentIndex, build_content_index
from .engine.scanner import scan_content_for_links
from .engine.types import ContentRecord, content_url
from .models import LinkOrigin, LinkStatus
from .repository import CONTENT_MODELS, ContentRepository, LinkStore

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ContentChanges:
    """What changed in a content item since its previous save."""

    old_slug: Optional[str] = None
    new_slug: Optional[str] = None
    body_changed: bool = False
    status_changed: bool = False

    @property
    def slug_changed(self) -> bool:
        return bool(self.old_slug and self.new_slug and self.old_slug != self.new_slug)


@dataclass
class LifecycleResult:
    suggested: int = 0
    rewritten: int = 0
    broken: int = 0
    stripped: int = 0
    deleted: int = 0

    def merge(self, other: "LifecycleResult") -> "LifecycleResult":
        self.suggested += other.suggested
        self.rewritten += other.rewritten
        self.broken += other.broken
        self.stripped += other.stripped
        self.deleted += other.deleted
        return self


class LifecycleCoordinator:
    def __init__(self, repository: ContentRepository, store: LinkStore, config: EngineConfig) -> None:
        self.repository = repository
        self.store = store
        self.config = config

    def on_created(self, content_id: str, kind: str) -> LifecycleResult:
        """Suggest outbound links for a new item and inbound links pointing at it."""

        record = self.repository.find(content_id, kind)
        if record is None or not record.is_published:
            return LifecycleResult()

        exclusions = self.store.load_exclusions()
        if exclusions.excludes_source(record.id):
            logger.debug("Skipping discovery for excluded source %s", record.id)
            return LifecycleResult()

        with transaction.atomic():
            result = self._discover(record, exclusions, inbound=True)
        logger.info("Created %s %s: %d suggestions", kind, content_id, result.suggested)
        return result

    def on_updated(self, content_id: str, kind: str, changes: ContentChanges) -> LifecycleResult:
        record = self.repository.find(content_id, kind)
        if record is None:
            return LifecycleResult()

        result = LifecycleResult()
        with transaction.atomic():
            if changes.slug_changed:
                result.merge(self._propagate_rename(record, content_url(kind, changes.old_slug)))

            if changes.body_changed or changes.status_changed:
                if not record.is_published:
                    result.merge(self._detach(record.id, record.url, keep_terminal=True))
                else:
                    exclusions = self.store.load_exclusions()
                    self.store.discard_suggestions(record.id)
                    if not exclusions.excludes_source(record.id):
                        result.merge(self._discover(record, exclusions, inbound=True))

        logger.info(
            "Updated %s %s: %d rewritten, %d suggestions, %d broken",
            kind,
            content_id,
            result.rewritten,
            result.suggested,
            result.broken,
        )
        return result

    def on_deleted(self, content_id: str, kind: str, slug: str) -> LifecycleResult:
        """Break records pointing at a deleted item and strip its anchors everywhere."""

        with transaction.atomic():
            result = self._detach(str(content_id), content_url(kind, slug), keep_terminal=False)
        logger.info("Deleted %s %s: %d broken, %d anchors stripped", kind, content_id, result.broken, result.stripped)
        return result

    def on_unpublished(self, content_id: str, kind: str, slug: Optional[str] = None) -> LifecycleResult:
        """Like deletion, but rejections and removals survive a later republish."""

        if slug is None:
            record = self.repository.find(content_id, kind)
            slug = record.slug if record is not None else None

        with transaction.atomic():
            url = content_url(kind, slug) if slug else None
            result = self._detach(str(content_id), url, keep_terminal=True)
        logger.info("Unpublished %s %s: %d broken, %d anchors stripped", kind, content_id, result.broken, result.stripped)
        return result

    def _discover(self, record: ContentRecord, exclusions: ExclusionSet, *, inbound: bool) -> LifecycleResult:
        index = build_content_index(self.repository.list_all_published(), self.config)
        result = LifecycleResult(suggested=self._suggest(record, index, exclusions))
        if inbound:
            target_index = build_content_index([record], self.config)
            for source in self._inbound_window():
                if source.id == record.id:
                    continue
                result.suggested += self._suggest(source, target_index, exclusions)
        return result

    def _inbound_window(self) -> List[ContentRecord]:
        size = int(self.config.get("inbound_window", 50))
        recent: List[ContentRecord] = []
        for kind in CONTENT_MODELS:
            recent.extend(self.repository.list_published(kind, size))
        recent.sort(key=lambda item: item.updated_at or _EPOCH, reverse=True)
        return recent[:size]

    def _suggest(self, source: ContentRecord, index: ContentIndex, exclusions: ExclusionSet) -> int:
        created_total = 0
        for candidate in scan_content_for_links(source, index, exclusions, self.config):
            if candidate.already_linked:
                continue
            target = index.get(candidate.target_id)
            _, created = self.store.upsert(
                source_id=candidate.source_id,
                source_type=candidate.source_type,
                target_id=candidate.target_id,
                target_type=candidate.target_type,
                anchor_text=candidate.anchor_text,
                target_url=target.url,
                relevance_score=candidate.relevance,
                status=LinkStatus.SUGGESTED,
                origin=LinkOrigin.AUTO,
            )
            created_total += int(created)
        return created_total

    def _propagate_rename(self, record: ContentRecord, old_url: str) -> LifecycleResult:
        result = LifecycleResult()
        for referrer in self.repository.find_referencing(old_url):
            html, rewritten = rewrite_urls_in_html(referrer.body, old_url, record.url)
            if rewritten:
                self.repository.update_body(referrer.id, referrer.kind, html)
                result.rewritten += rewritten
        self.store.retarget(record.id, record.url)
        return result

    def _detach(self, content_id: str, url: Optional[str], *, keep_terminal: bool) -> LifecycleResult:
        result = LifecycleResult(broken=self.store.mark_broken(content_id))
        if url:
            for referrer in self.repository.find_referencing(url):
                if referrer.id == content_id:
                    continue
                html, removed = remove_broken_links_from_html(referrer.body, [url])
                if removed:
                    self.repository.update_body(referrer.id, referrer.kind, html)
                    result.stripped += removed
        result.deleted = self.store.delete_from_source(content_id, keep_terminal=keep_terminal)
        return result
