import pytest
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from apps.accounts.models import Account
from apps.expenses.models import CoupleExpenseType, Expense
from apps.expenses.services import (
    count_hidden_gifts,
    couple_expenses_in_range,
    create_expense,
    expense_totals,
)


def add(account, user, amount, expense_type=CoupleExpenseType.SHARED, **kwargs):
    return create_expense(
        account=account,
        user=user,
        amount=Decimal(amount),
        description='Item',
        expense_type=expense_type,
        **kwargs
    )


def month_range():
    today = timezone.localdate()
    return today - timedelta(days=30), today


@pytest.mark.django_db
class TestCreateExpense:

    def test_defaults(self, account, payer):
        expense = add(account, payer, '12.50')

        assert expense.currency == 'EUR'
        assert expense.date == timezone.localdate()
        assert expense.is_shared_expense is True
        assert expense.has_split is False

    def test_personal_expense_is_not_shared(self, account, payer):
        expense = add(account, payer, '9.99', expense_type=CoupleExpenseType.PERSONAL)

        assert expense.is_shared_expense is False

    def test_touches_account_activity(self, account, payer):
        before = account.last_activity_at

        add(account, payer, '5.00')

        assert Account.objects.get(id=account.id).last_activity_at >= before


@pytest.mark.django_db
class TestExpenseTotals:

    def test_sums_per_payer_and_type(self, account, payer, partner):
        add(account, payer, '40.00')
        add(account, payer, '10.00')
        add(account, partner, '25.00')
        add(account, partner, '7.00', expense_type=CoupleExpenseType.PERSONAL)

        start, end = month_range()
        totals = expense_totals(account_id=account.id, start_date=start, end_date=end)

        assert totals.total_shared == Decimal('75.00')
        assert totals.shared_paid_by(payer.id) == Decimal('50.00')
        assert totals.shared_paid_by(partner.id) == Decimal('25.00')
        assert totals.personal_of(partner.id) == Decimal('7.00')
        assert totals.personal_of(payer.id) == Decimal('0.00')
        assert totals.expense_count == 4

    def test_range_is_inclusive(self, account, payer):
        start, end = month_range()
        add(account, payer, '1.00', date=start)
        add(account, payer, '2.00', date=end)
        add(account, payer, '4.00', date=start - timedelta(days=1))

        totals = expense_totals(account_id=account.id, start_date=start, end_date=end)

        assert totals.total_shared == Decimal('3.00')

    def test_deleted_expenses_are_ignored(self, account, payer):
        add(account, payer, '30.00').soft_delete()

        start, end = month_range()
        totals = expense_totals(account_id=account.id, start_date=start, end_date=end)

        assert totals.total_shared == Decimal('0.00')
        assert totals.expense_count == 0

    def test_unsettled_only(self, account, payer):
        add(account, payer, '30.00', is_settled=True, settled_at=timezone.now())
        add(account, payer, '20.00')

        start, end = month_range()
        totals = expense_totals(account_id=account.id, start_date=start, end_date=end, unsettled_only=True)

        assert totals.total_shared == Decimal('20.00')


@pytest.mark.django_db
class TestHiddenGifts:

    @pytest.fixture
    def hidden_gift(self, account, payer, partner):
        return add(
            account,
            payer,
            '60.00',
            expense_type=CoupleExpenseType.PERSONAL,
            is_gift=True,
            gift_for=partner,
            reveal_date=timezone.now() + timedelta(days=3),
        )

    def test_hidden_from_recipient_only(self, account, payer, partner, hidden_gift):
        start, end = month_range()

        for_partner = couple_expenses_in_range(
            account_id=account.id, start_date=start, end_date=end, viewer_id=partner.id
        )
        for_payer = couple_expenses_in_range(
            account_id=account.id, start_date=start, end_date=end, viewer_id=payer.id
        )

        assert hidden_gift not in for_partner
        assert hidden_gift in for_payer

    def test_count_hidden_gifts(self, account, payer, partner, hidden_gift):
        assert count_hidden_gifts(account_id=account.id, user_id=partner.id) == 1
        assert count_hidden_gifts(account_id=account.id, user_id=payer.id) == 0

        Expense.objects.filter(id=hidden_gift.id).update(is_revealed=True)

        assert count_hidden_gifts(account_id=account.id, user_id=partner.id) == 0

    def test_count_hidden_gifts_in_range(self, account, partner, hidden_gift):
        start, end = month_range()
        Expense.objects.filter(id=hidden_gift.id).update(date=start - timedelta(days=1))

        assert count_hidden_gifts(account_id=account.id, user_id=partner.id) == 1
        assert count_hidden_gifts(
            account_id=account.id, user_id=partner.id, start_date=start, end_date=end
        ) == 0

    def test_totals_without_unrevealed_gifts(self, account, payer, partner, hidden_gift):
        start, end = month_range()

        totals = expense_totals(
            account_id=account.id, start_date=start, end_date=end, exclude_unrevealed_gifts=True
        )

        assert totals.personal_of(payer.id) == Decimal('0.00')
        assert totals.expense_count == 0

    def test_pending_reveals(self, hidden_gift):
        now = timezone.now()

        assert not Expense.objects.pending_gift_reveals(now).exists()
        assert list(Expense.objects.pending_gift_reveals(now + timedelta(days=4))) == [hidden_gift]
