"""Database models for the interlinks app.

The app persists one ``InternalLink`` per (source, target, anchor text)
triple, carrying the link through its review and injection lifecycle, and
the ``ExclusionRule`` rows editors use to suppress auto-discovery.
"""

from __future__ import annotations

from django.db import models

from cms.models import ContentKind

from .exceptions import InvalidTransition


class LinkStatus(models.TextChoices):
    ACTIVE = 'ACTIVE', 'Active'
    SUGGESTED = 'SUGGESTED', 'Suggested'
    APPROVED = 'APPROVED', 'Approved'
    REJECTED = 'REJECTED', 'Rejected'
    BROKEN = 'BROKEN', 'Broken'
    REMOVED = 'REMOVED', 'Removed'


class LinkOrigin(models.TextChoices):
    AUTO = 'AUTO', 'Automatic'
    MANUAL = 'MANUAL', 'Manual'
    CRON = 'CRON', 'Scheduled'


class ExclusionType(models.TextChoices):
    PHRASE = 'PHRASE', 'Phrase'
    TARGET = 'TARGET', 'Target'
    SOURCE = 'SOURCE', 'Source'
    PAIR = 'PAIR', 'Source/target pair'


TERMINAL_STATUSES = frozenset({LinkStatus.REJECTED, LinkStatus.REMOVED})
LIVE_STATUSES = frozenset({LinkStatus.SUGGESTED, LinkStatus.APPROVED, LinkStatus.ACTIVE})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    LinkStatus.SUGGESTED: frozenset(
        {LinkStatus.APPROVED, LinkStatus.ACTIVE, LinkStatus.BROKEN, LinkStatus.REJECTED, LinkStatus.REMOVED}
    ),
    LinkStatus.APPROVED: frozenset({LinkStatus.ACTIVE, LinkStatus.BROKEN, LinkStatus.REJECTED, LinkStatus.REMOVED}),
    LinkStatus.ACTIVE: frozenset({LinkStatus.BROKEN, LinkStatus.REJECTED, LinkStatus.REMOVED}),
    LinkStatus.BROKEN: frozenset({LinkStatus.SUGGESTED, LinkStatus.REJECTED}),
    LinkStatus.REJECTED: frozenset(),
    LinkStatus.REMOVED: frozenset(),
}


class InternalLink(models.Model):
    """A discovered, approved or injected internal link between two content items."""

    source_id = models.CharField(max_length=64, db_index=True)
    source_type = models.CharField(max_length=16, choices=ContentKind.choices)
    target_id = models.CharField(max_length=64, db_index=True)
    target_type = models.CharField(max_length=16, choices=ContentKind.choices)
    anchor_text = models.CharField(max_length=300)
    target_url = models.CharField(max_length=500)
    relevance_score = models.PositiveSmallIntegerField(default=0)
    status = models.CharField(max_length=16, choices=LinkStatus.choices, default=LinkStatus.SUGGESTED, db_index=True)
    origin = models.CharField(max_length=16, choices=LinkOrigin.choices, default=LinkOrigin.AUTO)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('source_id', 'target_id', 'anchor_text')
        ordering = ['-updated_at', '-id']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return f"{self.source_id} → {self.target_url} ({self.anchor_text}, {self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition(self, status: str) -> bool:
        return status in ALLOWED_TRANSITIONS.get(self.status, frozenset())

    def transition_to(self, status: str) -> None:
        """Move to ``status`` and save, refusing moves the lifecycle forbids."""

        if status == self.status:
            return
        if not self.can_transition(status):
            raise InvalidTransition(self.status, status)
        self.status = status
        self.save(update_fields=['status', 'updated_at'])


class ExclusionRule(models.Model):
    """Suppresses auto-discovery for a phrase, a source, a target or a pair."""

    rule_type = models.CharField(max_length=16, choices=ExclusionType.choices)
    phrase = models.CharField(max_length=300, blank=True)
    source_id = models.CharField(max_length=64, blank=True)
    target_id = models.CharField(max_length=64, blank=True)
    reason = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        subject = self.phrase or ' → '.join(part for part in (self.source_id, self.target_id) if part)
        return f"{self.rule_type}: {subject}"
