"""Corpus-wide interlinking health report built from persisted link records."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Tuple

from .repository import ContentRepository, LinkStore

DISTRIBUTION_BUCKETS: Tuple[Tuple[str, int, int | None], ...] = (
    ('0 links', 0, 0),
    ('1-2 links', 1, 2),
    ('3-5 links', 3, 5),
    ('6-10 links', 6, 10),
    ('10+ links', 11, None),
)


@dataclass(frozen=True)
class ContentLinkSummary:
    id: str
    title: str
    type: str
    inbound_links: int
    outbound_links: int


@dataclass(frozen=True)
class BrokenLinkSummary:
    link_id: int
    source_id: str
    source_type: str
    target_id: str
    target_url: str
    anchor_text: str


@dataclass(frozen=True)
class InterlinkReport:
    total_content: int
    total_links: int
    avg_links_per_content: float
    orphan_content: List[ContentLinkSummary] = field(default_factory=list)
    hub_content: List[ContentLinkSummary] = field(default_factory=list)
    link_distribution: List[Tuple[str, int]] = field(default_factory=list)
    broken_links: List[BrokenLinkSummary] = field(default_factory=list)
    status_counts: Dict[str, int] = field(default_factory=dict)
    origin_counts: Dict[str, int] = field(default_factory=dict)
    exclusion_count: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def bucket_for(count: int) -> str:
    for label, low, high in DISTRIBUTION_BUCKETS:
        if count >= low and (high is None or count <= high):
            return label
    return DISTRIBUTION_BUCKETS[-1][0]


def build_report(repository: ContentRepository, store: LinkStore, *, hub_limit: int = 10) -> InterlinkReport:
    """Aggregate ACTIVE link records over every published item.

    Orphans are published items nothing links to. Hubs rank items by inbound
    plus outbound links, keeping publication order among ties.
    """

    records = repository.list_all_published()
    ids = [record.id for record in records]
    outbound = store.outbound_counts(ids)
    inbound = store.inbound_counts(ids)

    summaries = [
        ContentLinkSummary(
            id=record.id,
            title=record.title,
            type=record.kind,
            inbound_links=inbound.get(record.id, 0),
            outbound_links=outbound.get(record.id, 0),
        )
        for record in records
    ]

    total_links = sum(summary.outbound_links for summary in summaries)
    distribution = {label: 0 for label, _, _ in DISTRIBUTION_BUCKETS}
    for summary in summaries:
        distribution[bucket_for(summary.outbound_links)] += 1

    hubs = sorted(summaries, key=lambda summary: summary.inbound_links + summary.outbound_links, reverse=True)

    broken = [
        BrokenLinkSummary(
            link_id=link.pk,
            source_id=link.source_id,
            source_type=link.source_type,
            target_id=link.target_id,
            target_url=link.target_url,
            anchor_text=link.anchor_text,
        )
        for link in store.broken_links()
    ]

    return InterlinkReport(
        total_content=len(summaries),
        total_links=total_links,
        avg_links_per_content=round(total_links / len(summaries), 1) if summaries else 0.0,
        orphan_content=[summary for summary in summaries if summary.inbound_links == 0],
        hub_content=hubs[:hub_limit],
        link_distribution=list(distribution.items()),
        broken_links=broken,
        status_counts=store.status_counts(),
        origin_counts=store.origin_counts(),
        exclusion_count=store.exclusion_count(),
    )
