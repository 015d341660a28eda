"""
Management command to reveal gifts whose reveal date has passed.

Revealed gifts become shared expenses split by the couple's financial model.
Meant to run every few minutes from cron; overlapping runs are skipped.

Usage:
    python manage.py reveal_due_gifts
    python manage.py reveal_due_gifts --dry-run
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.expenses.models import Expense
from apps.couples.services import job_lock, sweep_gift_reveals


class Command(BaseCommand):
    help = 'Reveal gifts whose reveal date has passed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the gifts that would be revealed without changing them',
        )

    def handle(self, *args, **options):
        now = timezone.now()

        if options['dry_run']:
            due = Expense.objects.pending_gift_reveals(now).select_related('user', 'gift_for')
            count = due.count()
            if count == 0:
                self.stdout.write(self.style.SUCCESS('No gifts are due for reveal.'))
                return

            self.stdout.write(f'\nFound {count} gift(s) due for reveal:\n')
            for gift in due.order_by('reveal_date'):
                recipient = gift.gift_for.email if gift.gift_for else '-'
                self.stdout.write(
                    f'  - {gift.description} | {gift.amount} {gift.currency} | '
                    f'From: {gift.user.email} | For: {recipient} | Due: {gift.reveal_date}'
                )
            self.stdout.write(self.style.WARNING('\n--dry-run mode: No changes made.'))
            return

        with job_lock('reveal_due_gifts', timeout=settings.COUPLE_GIFT_SWEEP_LOCK_SECONDS) as acquired:
            if not acquired:
                self.stdout.write(self.style.WARNING('Another gift reveal run is in progress, skipping.'))
                return
            summary = sweep_gift_reveals(now=now)

        self.stdout.write(
            f'Processed {summary.processed} gift(s): {summary.succeeded} revealed, {summary.errors} failed'
        )
        if summary.alert:
            raise CommandError(
                f'Gift reveal error rate {summary.error_rate:.0%} above threshold'
            )
        self.stdout.write(self.style.SUCCESS('Gift reveal run complete.'))
