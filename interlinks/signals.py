"""Model signal receivers that run the lifecycle hooks for articles and pages.

Hooks run after the surrounding transaction commits so they see the saved
row, and a failing hook is logged instead of breaking the CMS save.
Receivers are no-ops while ``INTERLINKS_LIFECYCLE_SIGNALS`` is false.
"""

from __future__ import annotations

import logging
from functools import partial

from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_save

from cms.models import Article, Page

from .lifecycle import ContentChanges

logger = logging.getLogger(__name__)

CONTENT_SENDERS = (Article, Page)


def _enabled() -> bool:
    return bool(getattr(settings, 'INTERLINKS_LIFECYCLE_SIGNALS', True))


def _run_hook(name: str, *args) -> None:
    from .services import InterlinkService

    try:
        getattr(InterlinkService(), name)(*args)
    except Exception:
        logger.exception("Interlink hook %s failed for %s", name, args[:2])


def _remember_previous(sender, instance, **kwargs) -> None:
    if not _enabled() or instance._state.adding:
        return
    previous = sender.objects.filter(pk=instance.pk).values('slug', 'status', 'body').first()
    instance._interlink_previous = previous


def _content_saved(sender, instance, created, raw=False, **kwargs) -> None:
    if raw or not _enabled():
        return

    content_id = str(instance.pk)
    if created:
        transaction.on_commit(partial(_run_hook, 'on_content_created', content_id, sender.kind))
        return

    previous = getattr(instance, '_interlink_previous', None)
    instance._interlink_previous = None
    if previous is None:
        # Saved with an explicit pk that was not in the table yet.
        transaction.on_commit(partial(_run_hook, 'on_content_created', content_id, sender.kind))
        return

    changes = ContentChanges(
        old_slug=previous['slug'],
        new_slug=instance.slug,
        body_changed=previous['body'] != instance.body,
        status_changed=previous['status'] != instance.status,
    )
    if not (changes.slug_changed or changes.body_changed or changes.status_changed):
        return

    transaction.on_commit(partial(_run_hook, 'on_content_updated', content_id, sender.kind, changes))


def _content_deleted(sender, instance, **kwargs) -> None:
    if not _enabled():
        return
    transaction.on_commit(partial(_run_hook, 'on_content_deleted', str(instance.pk), sender.kind, instance.slug))


for _sender in CONTENT_SENDERS:
    pre_save.connect(_remember_previous, sender=_sender, dispatch_uid=f'interlinks_pre_save_{_sender.__name__}')
    post_save.connect(_content_saved, sender=_sender, dispatch_uid=f'interlinks_post_save_{_sender.__name__}')
    post_delete.connect(_content_deleted, sender=_sender, dispatch_uid=f'interlinks_post_delete_{_sender.__name__}')
