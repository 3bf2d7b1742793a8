"""Scheduled auto-linking run: ``manage.py interlink_cron [--limit N] [--report]``."""

from __future__ import annotations

import json

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from interlinks.services import InterlinkService


class Command(BaseCommand):
    help = 'Auto-link the most recently updated published articles and pages.'

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            '--limit',
            type=int,
            default=None,
            help='Maximum number of items to process (default: INTERLINKS_CRON_LIMIT).',
        )
        parser.add_argument(
            '--report',
            action='store_true',
            help='Print the interlinking health report as JSON after the run.',
        )

    def handle(self, *args, **options) -> None:
        limit = options['limit']
        if limit is None:
            limit = settings.INTERLINKS_CRON_LIMIT
        if limit < 0:
            raise CommandError('--limit must be zero or a positive number.')

        service = InterlinkService()
        result = service.auto_link_all(limit)

        failed = [detail for detail in result.details if detail['error']]
        self.stdout.write(
            f'Scanned {result.scanned} item(s): {result.total_inserted} link(s) inserted, '
            f'{result.total_broken} broken link(s) fixed.'
        )
        for detail in failed:
            self.stderr.write(f"{detail['type']} {detail['id']} failed: {detail['error']}")

        if options['report']:
            report = service.generate_report()
            self.stdout.write(json.dumps(report.as_dict(), indent=2, default=str))

        if failed:
            self.stdout.write(self.style.WARNING(f'{len(failed)} item(s) failed.'))
        else:
            self.stdout.write(self.style.SUCCESS('Done.'))
