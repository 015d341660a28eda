"""
Couple statistics service.

Read side of the settlement engine: period statistics, the running balance
of unsettled shared expenses and the "settle up" operation.

Every query fails fast when the couple settings or the two partners cannot
be resolved; a zeroed result would look like a real balance of zero.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from apps.accounts.models import User
from apps.expenses.models import CoupleExpenseType, Expense
from apps.expenses.services import count_hidden_gifts, expense_totals

from .contributions import (
    ContributionTotals,
    EverythingCommon,
    Mixed,
    contribution_model_for,
    split_amount,
)
from .partners import (
    ensure_member,
    get_couple_account,
    get_settings_for_account,
    ordered_partner_ids,
    resolve_partners,
)
from .settlement import WhoOwes, calculate_settlement

logger = logging.getLogger(__name__)

BALANCE_WINDOW_DAYS = 30


@dataclass(frozen=True)
class CoupleStats:
    start_date: date
    end_date: date
    financial_model: str
    total_shared: Decimal
    total_self_personal: Decimal
    total_partner_personal: Decimal
    self_contribution_percentage: Decimal
    partner_contribution_percentage: Decimal
    self_total_contribution: Decimal
    partner_total_contribution: Decimal
    outstanding_balance: Decimal
    who_owes: str
    recommended_transfer: Optional[Decimal]
    hidden_gifts_count: Optional[int]


@dataclass(frozen=True)
class ContributionBalance:
    start_date: date
    end_date: date
    total_shared: Decimal
    self_paid: Decimal
    partner_paid: Decimal
    self_expected: Decimal
    partner_expected: Decimal
    current_balance: Decimal
    who_owes: str
    owing_user_id: Optional[UUID]
    recommended_transfer: Optional[Decimal]
    unsettled_count: int
    settled_count: int
    last_settled_at: Optional[datetime]


@dataclass(frozen=True)
class SettleResult:
    settled_count: int
    total_amount: Decimal
    settled_at: datetime


def get_couple_stats(
    *,
    account_id: UUID,
    user: User,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> CoupleStats:
    """
    Contribution statistics of a period, from the caller's side.

    Personal expenses count fully against their owner under the mixed
    model, and the everything-in-common model pools every expense. Gifts
    not yet revealed are left out for both partners; the caller only sees
    how many are waiting for them (None when gift mode is off).

    Args:
        account_id: Couple account ID
        user: Partner asking
        start_date: First day (defaults to the first day of this month)
        end_date: Last day (defaults to today)

    Raises:
        CoupleAccountNotFoundError: If account doesn't exist
        NotAccountMemberError: If user is not a partner
        CoupleSettingsNotFoundError: If the account has no settings
        PartnerCountError: If the account does not have exactly two partners
        ContributionSettingsMissingError: Proportional model without percentages
    """
    today = timezone.localdate()
    start_date = start_date or today.replace(day=1)
    end_date = end_date or today

    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    couple_settings = get_settings_for_account(account=account)
    partners = resolve_partners(account=account, user=user)
    model = contribution_model_for(couple_settings, partners.self_id)

    totals = expense_totals(
        account_id=account.id,
        start_date=start_date,
        end_date=end_date,
        exclude_unrevealed_gifts=True,
    )
    contribution_totals = ContributionTotals(
        total_shared=totals.total_shared,
        self_personal=totals.personal_of(partners.self_id),
        partner_personal=totals.personal_of(partners.partner_id),
    )
    expected = model.expected(contribution_totals, include_personal=True)

    self_paid = totals.shared_paid_by(partners.self_id)
    partner_paid = totals.shared_paid_by(partners.partner_id)
    if isinstance(model, (Mixed, EverythingCommon)):
        self_paid += contribution_totals.self_personal
        partner_paid += contribution_totals.partner_personal

    settlement = calculate_settlement(expected, self_paid, partner_paid, totals.total_shared)

    hidden_gifts_count = None
    if couple_settings.gift_mode_enabled:
        hidden_gifts_count = count_hidden_gifts(
            account_id=account.id,
            user_id=user.id,
            start_date=start_date,
            end_date=end_date,
        )

    return CoupleStats(
        start_date=start_date,
        end_date=end_date,
        financial_model=couple_settings.financial_model,
        total_shared=totals.total_shared,
        total_self_personal=contribution_totals.self_personal,
        total_partner_personal=contribution_totals.partner_personal,
        self_contribution_percentage=settlement.self_contribution_percentage,
        partner_contribution_percentage=settlement.partner_contribution_percentage,
        self_total_contribution=expected.self_expected,
        partner_total_contribution=expected.partner_expected,
        outstanding_balance=settlement.current_balance,
        who_owes=settlement.who_owes,
        recommended_transfer=settlement.recommended_transfer,
        hidden_gifts_count=hidden_gifts_count,
    )


def get_contribution_balance(
    *,
    account_id: UUID,
    user: User,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> ContributionBalance:
    """
    Balance of the unsettled shared expenses (last 30 days by default).

    Only the shared component is compared: personal expenses never create
    a debt between the partners.

    Raises:
        Same as ``get_couple_stats``
    """
    today = timezone.localdate()
    start_date = start_date or today - timedelta(days=BALANCE_WINDOW_DAYS)
    end_date = end_date or today

    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    couple_settings = get_settings_for_account(account=account)
    partners = resolve_partners(account=account, user=user)
    model = contribution_model_for(couple_settings, partners.self_id)

    totals = expense_totals(
        account_id=account.id,
        start_date=start_date,
        end_date=end_date,
        exclude_unrevealed_gifts=True,
        unsettled_only=True,
    )
    expected = model.expected(ContributionTotals(total_shared=totals.total_shared))
    self_paid = totals.shared_paid_by(partners.self_id)
    partner_paid = totals.shared_paid_by(partners.partner_id)
    settlement = calculate_settlement(expected, self_paid, partner_paid, totals.total_shared)

    owing_user_id = {
        WhoOwes.SELF: partners.self_id,
        WhoOwes.PARTNER: partners.partner_id,
    }.get(settlement.who_owes)

    settled = Expense.objects.active().filter(
        account=account,
        expense_type=CoupleExpenseType.SHARED,
        is_settled=True,
    )
    unsettled_count = Expense.objects.active().filter(
        account=account,
        expense_type=CoupleExpenseType.SHARED,
        is_settled=False,
    ).in_range(start_date, end_date).count()

    return ContributionBalance(
        start_date=start_date,
        end_date=end_date,
        total_shared=totals.total_shared,
        self_paid=self_paid,
        partner_paid=partner_paid,
        self_expected=expected.self_expected,
        partner_expected=expected.partner_expected,
        current_balance=settlement.current_balance,
        who_owes=settlement.who_owes,
        owing_user_id=owing_user_id,
        recommended_transfer=settlement.recommended_transfer,
        unsettled_count=unsettled_count,
        settled_count=settled.count(),
        last_settled_at=settled.aggregate(last=Max('settled_at'))['last'],
    )


@transaction.atomic
def settle_shared_expenses(
    *,
    account_id: UUID,
    user: User,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> SettleResult:
    """
    Mark the unsettled shared expenses of the range as settled.

    Expenses without split details get them computed from the financial
    model. The settings row is locked for the duration.

    Raises:
        Same as ``get_couple_stats``
    """
    today = timezone.localdate()
    start_date = start_date or today - timedelta(days=BALANCE_WINDOW_DAYS)
    end_date = end_date or today

    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    couple_settings = get_settings_for_account(account=account, for_update=True)
    resolve_partners(account=account, user=user)
    partner_ids = ordered_partner_ids(settings=couple_settings, account=account)

    expenses = (
        Expense.objects.active()
        .select_for_update()
        .filter(account=account, expense_type=CoupleExpenseType.SHARED, is_settled=False)
        .in_range(start_date, end_date)
    )

    now = timezone.now()
    settled_count = 0
    total_amount = Decimal('0.00')
    for expense in expenses:
        if not expense.has_split:
            expense.apply_split(split_amount(expense.amount, couple_settings, partner_ids))
        expense.is_settled = True
        expense.settled_at = now
        expense.settled_by = user
        expense.save()
        settled_count += 1
        total_amount += expense.amount

    logger.info(
        "Settled %d shared expense(s) totalling %s in account %s",
        settled_count, total_amount, account.id
    )
    return SettleResult(settled_count=settled_count, total_amount=total_amount, settled_at=now)
