"""
Couple settings management service.

Owns every mutation of CoupleSettings outside the premium refresh:
initialisation, updates with audit history and invitation acceptance.
Mutations lock the settings row with select_for_update so concurrent
updates of one account are serialized.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import Account, User
from apps.couples.models import CoupleSettings, CoupleSettingsChange, FinancialModel
from apps.expenses.models import CoupleExpenseType

from .contributions import HUNDRED, percentages_from_income
from .exceptions import (
    ContributionSettingsMissingError,
    CoupleSettingsExistError,
    CoupleSettingsNotFoundError,
    InvalidContributionSettingsError,
    InvalidSettingsError,
)
from .partners import (
    ensure_member,
    get_couple_account,
    get_settings_for_account,
    resolve_partner_ids,
)
from .premium import apply_premium_tier

logger = logging.getLogger(__name__)


# Settings whose changes are written to the audit history
AUDITED_FIELDS = [
    'financial_model',
    'default_expense_type',
    'allow_comments',
    'allow_reactions',
    'gift_mode_enabled',
]

NOTIFICATION_KEYS = [
    'expense_added',
    'comments_and_reactions',
    'gift_revealed',
    'reminders',
    'budget_alerts',
]


@dataclass(frozen=True)
class ContributionSettingsInput:
    """Contribution percentages (and optional incomes) for both partners."""

    partner1_user_id: UUID
    partner2_user_id: UUID
    partner1_contribution_percentage: Optional[Decimal] = None
    partner2_contribution_percentage: Optional[Decimal] = None
    partner1_monthly_income: Optional[Decimal] = None
    partner2_monthly_income: Optional[Decimal] = None
    auto_calculate_from_income: bool = False


@transaction.atomic
def initialize_couple_settings(*, account_id: UUID) -> CoupleSettings:
    """
    Create default settings for a newly provisioned couple account.

    Raises:
        CoupleAccountNotFoundError: If account doesn't exist
        CoupleSettingsExistError: If the account already has settings
    """
    account = get_couple_account(account_id=account_id, for_update=True)

    if CoupleSettings.objects.filter(account=account).exists():
        raise CoupleSettingsExistError(f"Couple settings for account {account_id} already exist")

    couple_settings = CoupleSettings.objects.create(account=account)
    logger.info("Couple settings initialised for account %s", account.id)
    return couple_settings


def get_couple_settings(*, account_id: UUID, user: User) -> CoupleSettings:
    """
    Raises:
        CoupleAccountNotFoundError: If account doesn't exist
        NotAccountMemberError: If user is not a member
        CoupleSettingsNotFoundError: If the account has no settings
    """
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    return get_settings_for_account(account=account)


@transaction.atomic
def update_couple_settings(
    *,
    account_id: UUID,
    user: User,
    financial_model: Optional[str] = None,
    default_expense_type: Optional[str] = None,
    contribution_settings: Optional[ContributionSettingsInput] = None,
    allow_comments: Optional[bool] = None,
    allow_reactions: Optional[bool] = None,
    show_contribution_stats: Optional[bool] = None,
    enable_cross_reminders: Optional[bool] = None,
    gift_mode_enabled: Optional[bool] = None,
    shared_goals_enabled: Optional[bool] = None,
    notifications: Optional[Dict[str, bool]] = None,
    reason: str = ''
) -> CoupleSettings:
    """
    Update couple settings (members only). Only provided fields change.

    Switching to (or staying on) the proportional income model requires
    contribution settings, from this call or already stored, whose
    percentages sum to 100 within COUPLE_PERCENTAGE_TOLERANCE.

    Changes of the financial model, default expense type, comments,
    reactions and gift mode are appended to the audit history. Provided
    contribution settings always add their own history entry.

    Args:
        account_id: Couple account ID
        user: Member performing the update
        financial_model: New FinancialModel value
        default_expense_type: New default for new expenses
        contribution_settings: Percentages/incomes for both partners
        allow_comments .. shared_goals_enabled: Feature toggles
        notifications: Partial notification preferences
        reason: Optional reason stored with the audit entries

    Returns:
        Updated CoupleSettings

    Raises:
        CoupleAccountNotFoundError: If account doesn't exist
        NotAccountMemberError: If user is not a member
        CoupleSettingsNotFoundError: If the account has no settings
        ContributionSettingsMissingError: Proportional model without percentages
        InvalidContributionSettingsError: Percentages don't sum to 100
        InvalidSettingsError: Malformed payload
    """
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    couple_settings = get_settings_for_account(account=account, for_update=True)

    changes = {
        'financial_model': financial_model,
        'default_expense_type': default_expense_type,
        'allow_comments': allow_comments,
        'allow_reactions': allow_reactions,
        'show_contribution_stats': show_contribution_stats,
        'enable_cross_reminders': enable_cross_reminders,
        'gift_mode_enabled': gift_mode_enabled,
        'shared_goals_enabled': shared_goals_enabled,
        'notifications': notifications,
    }

    _apply_changes(
        couple_settings,
        account=account,
        user=user,
        changes={key: value for key, value in changes.items() if value is not None},
        contribution_settings=contribution_settings,
        reason=reason,
    )
    return couple_settings


@transaction.atomic
def accept_couple_invitation(
    *,
    account_id: UUID,
    user: User,
    preferred_financial_model: Optional[str] = None,
    initial_contribution_settings: Optional[ContributionSettingsInput] = None
) -> CoupleSettings:
    """
    Record that a partner accepted the couple invitation.

    The first acceptance stores the acceptor. A later acceptance by the other
    partner marks both partners as accepted and recomputes the premium tier.
    Settings are created on the fly if the account has none yet. Optional
    initial preferences go through the same validation and audit as
    ``update_couple_settings``.

    Raises:
        CoupleAccountNotFoundError: If account doesn't exist
        NotAccountMemberError: If user is not a member
        PartnerCountError: If premium recompute finds other than two partners
    """
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)

    try:
        couple_settings = get_settings_for_account(account=account, for_update=True)
    except CoupleSettingsNotFoundError:
        CoupleSettings.objects.get_or_create(account=account)
        couple_settings = get_settings_for_account(account=account, for_update=True)
        logger.info("Couple settings created on invitation acceptance for account %s", account.id)

    second_acceptance = False
    now = timezone.now()

    if couple_settings.invitation_accepted_by_id is None:
        couple_settings.invitation_accepted_by = user
        couple_settings.invitation_accepted_at = now
    elif (
        couple_settings.invitation_accepted_by_id != user.id
        and not couple_settings.both_partners_accepted
    ):
        couple_settings.both_partners_accepted = True
        couple_settings.invitation_accepted_at = now
        second_acceptance = True

    changes = {}
    if preferred_financial_model is not None:
        changes['financial_model'] = preferred_financial_model

    _apply_changes(
        couple_settings,
        account=account,
        user=user,
        changes=changes,
        contribution_settings=initial_contribution_settings,
        reason='Invitation acceptance',
    )

    if second_acceptance:
        logger.info("Both partners accepted the invitation for account %s", account.id)
        apply_premium_tier(couple_settings, account)

    return couple_settings


def get_settings_history(*, account_id: UUID, user: User) -> List[CoupleSettingsChange]:
    """Audit history of the account's settings, oldest first."""
    couple_settings = get_couple_settings(account_id=account_id, user=user)
    return list(couple_settings.history.select_related('changed_by').order_by('changed_at'))


# ============================================================
# Helpers
# ============================================================

def _apply_changes(
    couple_settings: CoupleSettings,
    *,
    account: Account,
    user: User,
    changes: Dict[str, Any],
    contribution_settings: Optional[ContributionSettingsInput],
    reason: str
) -> None:
    """Validate, apply, audit and save. Caller holds the row lock."""
    _validate_choices(changes)

    resulting_model = changes.get('financial_model', couple_settings.financial_model)
    old_contribution = couple_settings.contribution_snapshot()

    if contribution_settings is not None:
        _set_contribution_settings(couple_settings, account, user, contribution_settings)

    if resulting_model == FinancialModel.PROPORTIONAL_INCOME:
        _ensure_percentages_sum(couple_settings)

    history = []
    for field_name, new_value in changes.items():
        old_value = getattr(couple_settings, field_name)
        if field_name == 'notifications':
            new_value = {**(old_value or {}), **new_value}
        if old_value == new_value:
            continue
        setattr(couple_settings, field_name, new_value)
        if field_name in AUDITED_FIELDS:
            history.append(_change(couple_settings, field_name, old_value, new_value, user, reason))

    if contribution_settings is not None:
        history.append(_change(
            couple_settings,
            'contribution_settings',
            old_contribution,
            couple_settings.contribution_snapshot(),
            user,
            reason,
        ))

    couple_settings.save()
    if history:
        CoupleSettingsChange.objects.bulk_create(history)
        logger.info(
            "Couple settings of account %s updated by %s: %s",
            account.id, user.id, ', '.join(entry.setting for entry in history)
        )


def _validate_choices(changes: Dict[str, Any]) -> None:
    model = changes.get('financial_model')
    if model is not None and model not in FinancialModel.values:
        raise InvalidSettingsError(f"Unknown financial model '{model}'")

    expense_type = changes.get('default_expense_type')
    if expense_type is not None and expense_type not in CoupleExpenseType.values:
        raise InvalidSettingsError(f"Unknown expense type '{expense_type}'")

    notifications = changes.get('notifications')
    if notifications is not None:
        unknown = set(notifications) - set(NOTIFICATION_KEYS)
        if unknown:
            raise InvalidSettingsError(f"Unknown notification preference(s): {', '.join(sorted(unknown))}")


def _set_contribution_settings(
    couple_settings: CoupleSettings,
    account: Account,
    user: User,
    data: ContributionSettingsInput
) -> None:
    partner_ids = set(resolve_partner_ids(account=account))
    if data.partner1_user_id == data.partner2_user_id or {data.partner1_user_id, data.partner2_user_id} != partner_ids:
        raise InvalidSettingsError("Contribution settings must name both partners of the account")

    partner1_percentage = data.partner1_contribution_percentage
    partner2_percentage = data.partner2_contribution_percentage

    if data.auto_calculate_from_income and data.partner1_monthly_income and data.partner2_monthly_income:
        partner1_percentage, partner2_percentage = percentages_from_income(
            data.partner1_monthly_income,
            data.partner2_monthly_income,
        )

    if partner1_percentage is None or partner2_percentage is None:
        raise InvalidSettingsError("Both contribution percentages are required")

    for percentage in (partner1_percentage, partner2_percentage):
        if percentage < 0 or percentage > HUNDRED:
            raise InvalidSettingsError("Contribution percentages must be between 0 and 100")

    couple_settings.partner1_user_id = data.partner1_user_id
    couple_settings.partner2_user_id = data.partner2_user_id
    couple_settings.partner1_contribution_percentage = Decimal(partner1_percentage)
    couple_settings.partner2_contribution_percentage = Decimal(partner2_percentage)
    couple_settings.partner1_monthly_income = data.partner1_monthly_income
    couple_settings.partner2_monthly_income = data.partner2_monthly_income
    couple_settings.auto_calculate_from_income = data.auto_calculate_from_income
    couple_settings.contribution_updated_at = timezone.now()
    couple_settings.contribution_updated_by = user


def _ensure_percentages_sum(couple_settings: CoupleSettings) -> None:
    if not couple_settings.has_contribution_settings:
        raise ContributionSettingsMissingError(
            "Contribution settings are required for the proportional income model"
        )

    total = (
        (couple_settings.partner1_contribution_percentage or 0)
        + (couple_settings.partner2_contribution_percentage or 0)
    )
    tolerance = Decimal(str(settings.COUPLE_PERCENTAGE_TOLERANCE))
    if abs(total - HUNDRED) > tolerance:
        raise InvalidContributionSettingsError(
            f"Contribution percentages must sum to 100, got {total}"
        )


def _change(couple_settings, setting, old_value, new_value, user, reason) -> CoupleSettingsChange:
    return CoupleSettingsChange(
        settings=couple_settings,
        setting=setting,
        old_value=_json_value(old_value),
        new_value=_json_value(new_value),
        changed_by=user,
        reason=reason,
    )


def _json_value(value):
    # Decimals and choice enums are stored as plain strings
    if isinstance(value, (Decimal, str)):
        return str(value)
    return value
