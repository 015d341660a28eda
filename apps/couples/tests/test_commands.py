"""
Tests for the scheduled management commands.
"""

import pytest
from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from apps.couples.models import PremiumTier
from apps.couples.services.jobs import LOCK_KEY_PREFIX
from apps.expenses.models import CoupleExpenseType, Expense


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def due_gift(gift):
    Expense.objects.filter(id=gift.id).update(reveal_date=timezone.now() - timedelta(minutes=1))
    return gift


def run(command, *args):
    out = StringIO()
    call_command(command, *args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestRevealDueGifts:

    def test_reveals_due_gifts(self, due_gift):
        output = run('reveal_due_gifts')

        due_gift.refresh_from_db()
        assert due_gift.is_revealed is True
        assert due_gift.expense_type == CoupleExpenseType.SHARED
        assert 'Processed 1 gift(s): 1 revealed, 0 failed' in output
        assert 'complete' in output

    def test_dry_run_changes_nothing(self, due_gift):
        output = run('reveal_due_gifts', '--dry-run')

        due_gift.refresh_from_db()
        assert due_gift.is_revealed is False
        assert 'Found 1 gift(s) due for reveal' in output
        assert 'Concert tickets' in output

    def test_dry_run_with_deleted_recipient(self, due_gift):
        Expense.objects.filter(id=due_gift.id).update(gift_for=None)

        output = run('reveal_due_gifts', '--dry-run')

        assert 'For: - |' in output

    def test_dry_run_without_due_gifts(self, gift):
        output = run('reveal_due_gifts', '--dry-run')

        assert 'No gifts are due for reveal.' in output

    def test_skips_when_lock_is_held(self, due_gift):
        cache.add(f'{LOCK_KEY_PREFIX}reveal_due_gifts', 'other-run', 60)

        output = run('reveal_due_gifts')

        due_gift.refresh_from_db()
        assert due_gift.is_revealed is False
        assert 'in progress' in output

    def test_lock_is_released_after_run(self, due_gift):
        run('reveal_due_gifts')

        assert cache.get(f'{LOCK_KEY_PREFIX}reveal_due_gifts') is None

    def test_high_error_rate_fails_the_command(self, due_gift):
        with patch('apps.couples.services.gifts._reveal', side_effect=RuntimeError('boom')):
            with pytest.raises(CommandError):
                run('reveal_due_gifts')


@pytest.mark.django_db
class TestRefreshCouplePremium:

    def test_refreshes_all_accounts(self, couple_account, couple_settings, partner_one, partner_two):
        for partner in (partner_one, partner_two):
            partner.is_premium = True
            partner.save()

        output = run('refresh_couple_premium')

        couple_settings.refresh_from_db()
        assert couple_settings.premium_tier == PremiumTier.BOTH_PREMIUM
        assert 'Processed 1 account(s): 1 refreshed, 0 failed' in output

    def test_single_account(self, couple_account, couple_settings, partner_one):
        partner_one.is_premium = True
        partner_one.save()

        output = run('refresh_couple_premium', '--account', str(couple_account.id))

        assert f'Account {couple_account.id} is now on tier one_premium.' in output

    def test_single_account_error(self, solo_couple_account):
        with pytest.raises(CommandError):
            run('refresh_couple_premium', '--account', str(solo_couple_account.id))

    def test_failing_accounts_raise_alert(self, solo_couple_account):
        with pytest.raises(CommandError):
            run('refresh_couple_premium')

    def test_skips_when_lock_is_held(self, couple_account, couple_settings, partner_one):
        partner_one.is_premium = True
        partner_one.save()
        cache.add(f'{LOCK_KEY_PREFIX}refresh_couple_premium', 'other-run', 60)

        output = run('refresh_couple_premium')

        couple_settings.refresh_from_db()
        assert couple_settings.premium_tier == PremiumTier.BASIC
        assert 'in progress' in output
