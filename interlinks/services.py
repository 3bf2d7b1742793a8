"""Service layer for discovering, injecting and managing internal links.

``InterlinkService`` is the single entry point the CMS, the lifecycle
signals and the ``interlink_cron`` command use. It wires the pure engine in
``interlinks.engine`` to the content tables and the link store, so each
operation below is easy to unit test with real database rows.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import InterfaceError, OperationalError, transaction

from cms.models import ContentKind

from .engine.broken import detect_broken_links, extract_links, is_internal_href, remove_broken_links_from_html
from .engine.config import EngineConfig, load_config
from .engine.exclusions import ExclusionSet
from .engine.index import ContentIndex, build_content_index, build_entry
from .engine.markup import inject_links
from .engine.matcher import is_phrase_already_linked, normalize_href
from .engine.scanner import scan_content_for_links
from .engine.scoring import calculate_relevance
from .engine.types import BrokenLink, ContentRecord, LinkCandidate
from .exceptions import InvalidTransition
from .forms import ExclusionRuleForm, ManualLinkForm
from .lifecycle import ContentChanges, LifecycleCoordinator, LifecycleResult
from .models import ExclusionRule, InternalLink, LinkOrigin, LinkStatus
from .reports import InterlinkReport, build_report
from .repository import ContentRepository, LinkStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    """Read-only view of a single item's linking state."""

    source_id: str
    source_type: str
    existing_links: int = 0
    new_candidates: List[LinkCandidate] = field(default_factory=list)
    broken_links: List[BrokenLink] = field(default_factory=list)


@dataclass(frozen=True)
class AutoLinkResult:
    inserted: int = 0
    broken_fixed: int = 0


@dataclass
class BatchResult:
    scanned: int = 0
    total_inserted: int = 0
    total_broken: int = 0
    details: List[Dict[str, Any]] = field(default_factory=list)


def get_engine_config() -> EngineConfig:
    """Engine defaults merged with the YAML file named by ``INTERLINKS_CONFIG``."""

    return load_config(getattr(settings, 'INTERLINKS_CONFIG', None))


def split_limit(limit: int, article_count: int, page_count: int) -> Tuple[int, int]:
    """Share ``limit`` between articles and pages in proportion to their counts."""

    total = article_count + page_count
    if limit <= 0 or total == 0:
        return 0, 0
    articles = min(article_count, math.ceil(limit * article_count / total))
    pages = min(page_count, limit - articles)
    articles = min(article_count, limit - pages)
    return articles, pages


class InterlinkService:
    def __init__(
        self,
        repository: Optional[ContentRepository] = None,
        store: Optional[LinkStore] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.repository = repository or ContentRepository()
        self.store = store or LinkStore()
        self.config = config or get_engine_config()
        self.lifecycle = LifecycleCoordinator(self.repository, self.store, self.config)

    def build_index(self) -> ContentIndex:
        return build_content_index(self.repository.list_all_published(), self.config)

    # Scanning and injection

    def scan(self, content_id: str, kind: str) -> ScanResult:
        """Report existing internal links, new candidates and broken links for one item."""

        record = self.repository.find(content_id, kind)
        if record is None:
            return ScanResult(source_id=str(content_id), source_type=kind)

        index = self.build_index()
        candidates = scan_content_for_links(record, index, self.store.load_exclusions(), self.config)
        existing = sum(1 for href, _ in extract_links(record.body) if is_internal_href(href, self.config))
        return ScanResult(
            source_id=record.id,
            source_type=record.kind,
            existing_links=existing,
            new_candidates=[candidate for candidate in candidates if not candidate.already_linked],
            broken_links=detect_broken_links(record.body, index, self.config),
        )

    def auto_link(self, content_id: str, kind: str) -> AutoLinkResult:
        """Inject links into one item, strip its dead internal links and save it."""

        record = self.repository.find(content_id, kind)
        if record is None:
            return AutoLinkResult()
        return self._auto_link_record(record, self.build_index(), self.store.load_exclusions(), LinkOrigin.AUTO)

    def auto_link_all(self, limit: Optional[int] = None) -> BatchResult:
        """Run ``auto_link`` over the most recently updated published items.

        One item failing is logged and recorded in its detail entry; the batch
        carries on. Losing the database connection aborts the whole run.
        """

        if limit is None:
            limit = getattr(settings, 'INTERLINKS_CRON_LIMIT', 50)

        index = self.build_index()
        exclusions = self.store.load_exclusions()
        article_limit, page_limit = split_limit(
            limit,
            self.repository.count_published(ContentKind.ARTICLE),
            self.repository.count_published(ContentKind.PAGE),
        )
        records = self.repository.list_published(ContentKind.ARTICLE, article_limit) + self.repository.list_published(
            ContentKind.PAGE, page_limit
        )

        result = BatchResult()
        for record in records:
            detail: Dict[str, Any] = {'id': record.id, 'type': record.kind, 'inserted': 0, 'broken': 0, 'error': None}
            try:
                outcome = self._auto_link_record(record, index, exclusions, LinkOrigin.CRON)
            except (OperationalError, InterfaceError):
                raise
            except Exception as exc:
                logger.exception("Auto-linking failed for %s %s", record.kind, record.id)
                detail['error'] = str(exc) or exc.__class__.__name__
            else:
                detail['inserted'] = outcome.inserted
                detail['broken'] = outcome.broken_fixed
                result.total_inserted += outcome.inserted
                result.total_broken += outcome.broken_fixed
            result.scanned += 1
            result.details.append(detail)

        logger.info(
            "Auto-link batch: %d scanned, %d inserted, %d broken fixed, %d failed",
            result.scanned,
            result.total_inserted,
            result.total_broken,
            sum(1 for detail in result.details if detail['error']),
        )
        return result

    def _auto_link_record(
        self,
        record: ContentRecord,
        index: ContentIndex,
        exclusions: ExclusionSet,
        origin: str,
    ) -> AutoLinkResult:
        if exclusions.excludes_source(record.id) or not record.body:
            return AutoLinkResult()

        now = datetime.now(timezone.utc)
        with transaction.atomic():
            candidates = scan_content_for_links(record, index, exclusions, self.config, now=now)
            html, inserted = inject_links(record.body, candidates, index, self.config)

            broken = detect_broken_links(html, index, self.config)
            broken_urls = [link.href for link in broken]
            html, fixed = remove_broken_links_from_html(html, broken_urls)

            if html != record.body:
                self.repository.update_body(record.id, record.kind, html)

            for candidate in inserted:
                self.store.upsert(
                    source_id=candidate.source_id,
                    source_type=candidate.source_type,
                    target_id=candidate.target_id,
                    target_type=candidate.target_type,
                    anchor_text=candidate.anchor_text,
                    target_url=index.get(candidate.target_id).url,
                    relevance_score=candidate.relevance,
                    status=LinkStatus.ACTIVE,
                    origin=origin,
                )
            if fixed:
                self.store.mark_broken_urls(record.id, {normalize_href(url) for url in broken_urls})

        if inserted or fixed:
            logger.debug("Auto-linked %s %s: %d inserted, %d broken fixed", record.kind, record.id, len(inserted), fixed)
        return AutoLinkResult(inserted=len(inserted), broken_fixed=fixed)

    # Manual overrides

    def create_manual_link(
        self,
        source_id: str,
        source_type: str,
        target_id: str,
        target_type: str,
        anchor_text: str,
    ) -> Optional[InternalLink]:
        """Record an editor's link as APPROVED; ``None`` when either end is missing.

        Raises ``ValidationError`` carrying the form errors for bad input.
        """

        form = ManualLinkForm(
            {
                'source_id': source_id,
                'source_type': source_type,
                'target_id': target_id,
                'target_type': target_type,
                'anchor_text': anchor_text,
            }
        )
        if not form.is_valid():
            raise ValidationError(form.errors)

        data = form.cleaned_data
        source = self.repository.find(data['source_id'], data['source_type'])
        target = self.repository.find(data['target_id'], data['target_type'])
        if source is None or target is None:
            return None

        relevance = calculate_relevance(build_entry(source, self.config), build_entry(target, self.config), self.config)
        link, _ = self.store.upsert(
            source_id=source.id,
            source_type=source.kind,
            target_id=target.id,
            target_type=target.kind,
            anchor_text=data['anchor_text'],
            target_url=target.url,
            relevance_score=relevance,
            status=LinkStatus.APPROVED,
            origin=LinkOrigin.MANUAL,
        )
        return link

    def apply_manual_link(self, link_id) -> Optional[InternalLink]:
        """Write a suggested or approved link into the source markup.

        The relevance threshold does not apply. The record becomes ACTIVE when
        the anchor is inserted or the target is already linked; otherwise it
        is returned unchanged.
        """

        link = self.store.get(link_id)
        if link is None:
            return None
        if link.status == LinkStatus.ACTIVE:
            return link
        if link.status not in (LinkStatus.SUGGESTED, LinkStatus.APPROVED):
            raise InvalidTransition(link.status, LinkStatus.ACTIVE)

        source = self.repository.find(link.source_id, link.source_type)
        target = self.repository.find(link.target_id, link.target_type)
        if source is None or target is None or not target.is_published:
            return None

        with transaction.atomic():
            if is_phrase_already_linked(source.body, '', target.url, target.id):
                link.transition_to(LinkStatus.ACTIVE)
                return link

            candidate = LinkCandidate(
                source_id=source.id,
                source_type=source.kind,
                target_id=target.id,
                target_type=target.kind,
                anchor_text=link.anchor_text,
                match_offset=-1,
                relevance=link.relevance_score,
                already_linked=False,
            )
            index = build_content_index([target], self.config)
            html, inserted = inject_links(
                source.body,
                [candidate],
                index,
                self.config,
                marker='manual',
                enforce_threshold=False,
            )
            if not inserted:
                logger.info("Anchor text %r not found in %s %s", link.anchor_text, source.kind, source.id)
                return link

            self.repository.update_body(source.id, source.kind, html)
            link.transition_to(LinkStatus.ACTIVE)
        return link

    def approve_link(self, link_id) -> Optional[InternalLink]:
        link = self.store.get(link_id)
        if link is None:
            return None
        link.transition_to(LinkStatus.APPROVED)
        return link

    def reject_link(self, link_id) -> Optional[InternalLink]:
        """Reject a link for good; an injected anchor is taken out of the markup."""

        return self._retire(link_id, LinkStatus.REJECTED)

    def remove_link(self, link_id) -> Optional[InternalLink]:
        return self._retire(link_id, LinkStatus.REMOVED)

    def _retire(self, link_id, status: str) -> Optional[InternalLink]:
        link = self.store.get(link_id)
        if link is None:
            return None
        was_active = link.status == LinkStatus.ACTIVE
        with transaction.atomic():
            link.transition_to(status)
            if was_active:
                source = self.repository.find(link.source_id, link.source_type)
                if source is not None:
                    html, removed = remove_broken_links_from_html(source.body, [link.target_url])
                    if removed:
                        self.repository.update_body(source.id, source.kind, html)
        return link

    def list_links(self, **filters) -> List[InternalLink]:
        return list(self.store.filter(**filters))

    def add_exclusion(
        self,
        rule_type: str,
        *,
        phrase: str = '',
        source_id: str = '',
        target_id: str = '',
        reason: str = '',
    ) -> ExclusionRule:
        form = ExclusionRuleForm(
            {
                'rule_type': rule_type,
                'phrase': phrase,
                'source_id': source_id,
                'target_id': target_id,
                'reason': reason,
            }
        )
        if not form.is_valid():
            raise ValidationError(form.errors)
        rule = form.save()
        logger.info("Added %s exclusion rule %s", rule.rule_type, rule.pk)
        return rule

    def remove_exclusion(self, rule_id) -> bool:
        return self.store.remove_exclusion(rule_id)

    def list_exclusions(self) -> List[ExclusionRule]:
        return list(self.store.list_exclusions())

    # Reporting

    def generate_report(self) -> InterlinkReport:
        return build_report(self.repository, self.store)

    # Lifecycle hooks

    def on_content_created(self, content_id: str, kind: str) -> LifecycleResult:
        return self.lifecycle.on_created(str(content_id), kind)

    def on_content_updated(self, content_id: str, kind: str, changes: ContentChanges) -> LifecycleResult:
        return self.lifecycle.on_updated(str(content_id), kind, changes)

    def on_content_deleted(self, content_id: str, kind: str, slug: str) -> LifecycleResult:
        return self.lifecycle.on_deleted(str(content_id), kind, slug)

    def on_content_unpublished(self, content_id: str, kind: str, slug: Optional[str] = None) -> LifecycleResult:
        return self.lifecycle.on_unpublished(str(content_id), kind, slug)
