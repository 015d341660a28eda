"""
Expense Services Module
=======================

Expense creation and the aggregate queries the couple engine runs over an
account's expenses.

Totals are computed in the database with ``Sum`` per (payer, expense type)
so a month of expenses costs a single query.

Example:
    Totals for the current month of a couple account::

        from apps.expenses.services import expense_totals

        totals = expense_totals(
            account_id=account.id,
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
            viewer_id=request.user.id,
        )
        print(totals.total_shared, totals.shared_paid_by(request.user.id))
"""

from dataclasses import dataclass, field
from datetime import date as date_type
from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID

from django.db.models import Q, QuerySet, Sum
from django.utils import timezone

from apps.accounts.models import Account, User

from .models import CoupleExpenseType, Expense


ZERO = Decimal('0.00')


@dataclass
class ExpenseTotals:
    """Shared and personal sums for one account and date range."""

    total_shared: Decimal = ZERO
    shared_by_user: Dict[UUID, Decimal] = field(default_factory=dict)
    personal_by_user: Dict[UUID, Decimal] = field(default_factory=dict)
    expense_count: int = 0

    def shared_paid_by(self, user_id: UUID) -> Decimal:
        return self.shared_by_user.get(user_id, ZERO)

    def personal_of(self, user_id: UUID) -> Decimal:
        return self.personal_by_user.get(user_id, ZERO)


def create_expense(
    *,
    account: Account,
    user: User,
    amount: Decimal,
    description: str,
    expense_type: str = CoupleExpenseType.SHARED,
    date: Optional[date_type] = None,
    category: str = '',
    notes: str = '',
    **couple_fields
) -> Expense:
    """
    Create an expense paid by ``user``.

    Args:
        account: Account the expense belongs to
        user: Payer and creator
        amount: Positive amount in the account currency
        description: Free-text description
        expense_type: shared or personal
        date: Expense date (defaults to today)
        category: Optional category label
        notes: Optional notes
        **couple_fields: Extra couple fields (gift markers, split details)

    Returns:
        Created Expense instance
    """
    expense = Expense.objects.create(
        account=account,
        user=user,
        amount=amount,
        currency=account.currency,
        description=description,
        expense_type=expense_type,
        is_shared_expense=expense_type == CoupleExpenseType.SHARED,
        date=date or timezone.localdate(),
        category=category,
        notes=notes,
        **couple_fields
    )

    Account.objects.filter(id=account.id).update(last_activity_at=timezone.now())

    return expense


def couple_expenses_in_range(
    *,
    account_id: UUID,
    start_date: date_type,
    end_date: date_type,
    viewer_id: Optional[UUID] = None,
    exclude_unrevealed_gifts: bool = False
) -> QuerySet[Expense]:
    """
    Non-deleted expenses of the account dated within the range (inclusive).

    When ``viewer_id`` is given, gifts for the viewer that are not yet
    revealed are left out. ``exclude_unrevealed_gifts`` leaves out every
    unrevealed gift, whoever asks.
    """
    queryset = Expense.objects.active().filter(account_id=account_id).in_range(start_date, end_date)
    if exclude_unrevealed_gifts:
        queryset = queryset.exclude(unrevealed_gift_filter())
    elif viewer_id is not None:
        queryset = queryset.exclude(hidden_gift_filter(viewer_id))
    return queryset


def unrevealed_gift_filter() -> Q:
    return Q(is_gift=True, is_revealed=False)


def hidden_gift_filter(viewer_id: UUID) -> Q:
    """Gifts addressed to the viewer that the viewer must not see yet."""
    return unrevealed_gift_filter() & Q(gift_for_id=viewer_id)


def expense_totals(
    *,
    account_id: UUID,
    start_date: date_type,
    end_date: date_type,
    viewer_id: Optional[UUID] = None,
    exclude_unrevealed_gifts: bool = False,
    unsettled_only: bool = False
) -> ExpenseTotals:
    """
    Sum the account's expenses per payer and expense type.

    Args:
        account_id: Account to aggregate
        start_date: First day of the range (inclusive)
        end_date: Last day of the range (inclusive)
        viewer_id: Exclude gifts still concealed from this user
        exclude_unrevealed_gifts: Exclude every unrevealed gift
        unsettled_only: Only count expenses not yet settled

    Returns:
        ExpenseTotals with shared and personal sums keyed by user id
    """
    queryset = couple_expenses_in_range(
        account_id=account_id,
        start_date=start_date,
        end_date=end_date,
        viewer_id=viewer_id,
        exclude_unrevealed_gifts=exclude_unrevealed_gifts,
    )
    if unsettled_only:
        queryset = queryset.filter(is_settled=False)

    rows = (
        queryset
        .order_by()
        .values('user_id', 'expense_type')
        .annotate(total=Sum('amount'))
    )

    totals = ExpenseTotals()
    for row in rows:
        amount = row['total'] or ZERO
        if row['expense_type'] == CoupleExpenseType.SHARED:
            totals.total_shared += amount
            totals.shared_by_user[row['user_id']] = (
                totals.shared_by_user.get(row['user_id'], ZERO) + amount
            )
        else:
            totals.personal_by_user[row['user_id']] = (
                totals.personal_by_user.get(row['user_id'], ZERO) + amount
            )

    totals.expense_count = queryset.count()
    return totals


def count_hidden_gifts(
    *,
    account_id: UUID,
    user_id: UUID,
    start_date: Optional[date_type] = None,
    end_date: Optional[date_type] = None
) -> int:
    """
    Number of unrevealed, non-deleted gifts addressed to ``user_id``.

    With ``start_date`` and ``end_date`` only gifts dated within the range
    (inclusive) are counted.
    """
    queryset = Expense.objects.active().filter(
        hidden_gift_filter(user_id),
        account_id=account_id,
    )
    if start_date is not None and end_date is not None:
        queryset = queryset.in_range(start_date, end_date)
    return queryset.count()
