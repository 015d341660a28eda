"""
Management command to recompute the premium tier of every couple account.

Partners' subscriptions expire on their own, so the couple tier is refreshed
nightly. A single account can be refreshed with --account.

Usage:
    python manage.py refresh_couple_premium
    python manage.py refresh_couple_premium --account <uuid>
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.couples.services import (
    CouplesServiceError,
    job_lock,
    refresh_all_premium_tiers,
    refresh_couple_premium,
)


class Command(BaseCommand):
    help = 'Recompute couple premium tiers from the partners\' subscriptions'

    def add_arguments(self, parser):
        parser.add_argument(
            '--account',
            help='Refresh only this couple account',
        )

    def handle(self, *args, **options):
        account_id = options.get('account')

        if account_id:
            try:
                couple_settings = refresh_couple_premium(account_id=account_id)
            except CouplesServiceError as e:
                raise CommandError(str(e))
            self.stdout.write(
                self.style.SUCCESS(f'Account {account_id} is now on tier {couple_settings.premium_tier}.')
            )
            return

        with job_lock('refresh_couple_premium', timeout=settings.COUPLE_PREMIUM_REFRESH_LOCK_SECONDS) as acquired:
            if not acquired:
                self.stdout.write(self.style.WARNING('Another premium refresh is in progress, skipping.'))
                return
            summary = refresh_all_premium_tiers()

        self.stdout.write(
            f'Processed {summary.processed} account(s): {summary.succeeded} refreshed, {summary.errors} failed'
        )
        if summary.alert:
            raise CommandError(
                f'Premium refresh error rate {summary.error_rate:.0%} above threshold'
            )
        self.stdout.write(self.style.SUCCESS('Premium refresh complete.'))
