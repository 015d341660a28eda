"""
Gift lifecycle service.

A gift is a personal expense concealed from its recipient (the other
partner) until it is revealed, either manually by its creator or by the
scheduled sweep once the reveal date has passed.

States:
    created -> revealed (manually or automatically) -> [converted to shared]
    created -> deleted

The scheduled sweep always converts to a shared expense; a manual reveal
converts only when ``reveal_now`` is requested.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.expenses.models import CoupleExpenseType, Expense
from apps.expenses.services import create_expense

from .contributions import split_amount
from .exceptions import (
    GiftAlreadyRevealedError,
    GiftModeDisabledError,
    GiftNotFoundError,
    InvalidAmountError,
    InvalidGiftRecipientError,
    NotGiftCreatorError,
    RevealDateNotInFutureError,
)
from .jobs import SweepSummary
from .partners import (
    ensure_member,
    get_couple_account,
    get_settings_for_account,
    ordered_partner_ids,
    resolve_partners,
)

logger = logging.getLogger(__name__)


@dataclass
class ReceivedGifts:
    """Revealed gifts for the caller plus the number still hidden."""

    revealed: QuerySet
    hidden_count: int


def create_gift(
    *,
    account_id: UUID,
    user: User,
    gift_for_id: UUID,
    amount: Decimal,
    description: str,
    reveal_date: datetime,
    category: str = '',
    date: Optional[date_type] = None,
    reveal_message: str = ''
) -> Expense:
    """
    Create a concealed gift expense for the other partner.

    Args:
        account_id: Couple account the gift is recorded in
        user: Creator and payer
        gift_for_id: Recipient, must be the other partner
        amount: Positive amount
        description: Gift description (hidden from the recipient)
        reveal_date: Moment of the scheduled reveal, strictly in the future
        category: Optional category label
        date: Expense date (defaults to today)
        reveal_message: Message shown on reveal

    Returns:
        Created Expense with is_gift=True and expense_type=personal

    Raises:
        CoupleAccountNotFoundError: If account doesn't exist
        NotAccountMemberError: If user is not a partner
        GiftModeDisabledError: If gift mode is off for the account
        InvalidGiftRecipientError: If recipient is the creator or not the partner
        RevealDateNotInFutureError: If reveal_date is not in the future
        InvalidAmountError: If amount is not positive
    """
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    couple_settings = get_settings_for_account(account=account)

    if not couple_settings.gift_mode_enabled:
        raise GiftModeDisabledError("Gift mode is disabled for this account")

    partners = resolve_partners(account=account, user=user)
    if gift_for_id == user.id:
        raise InvalidGiftRecipientError("You cannot create a gift for yourself")
    if gift_for_id != partners.partner_id:
        raise InvalidGiftRecipientError("Gift recipient must be your partner in this account")

    _ensure_future(reveal_date)

    if amount is None or amount <= 0:
        raise InvalidAmountError("Amount must be greater than zero")

    gift = create_expense(
        account=account,
        user=user,
        amount=amount,
        description=description,
        expense_type=CoupleExpenseType.PERSONAL,
        date=date,
        category=category,
        is_gift=True,
        gift_for_id=gift_for_id,
        reveal_date=reveal_date,
        is_revealed=False,
        reveal_message=reveal_message,
    )

    logger.info("Gift %s created in account %s, reveal at %s", gift.id, account.id, reveal_date.isoformat())
    return gift


@transaction.atomic
def reveal_gift(
    *,
    gift_id: UUID,
    user: User,
    reveal_now: bool = False,
    message: str = ''
) -> Expense:
    """
    Reveal a gift before its scheduled date.

    Args:
        gift_id: Gift expense ID
        user: Must be the creator
        reveal_now: Also convert the gift into a shared expense and split it
        message: Optional reveal message (replaces the stored one)

    Raises:
        GiftNotFoundError: If gift doesn't exist or is deleted
        NotGiftCreatorError: If user is not the creator
        GiftAlreadyRevealedError: If gift was already revealed
        ContributionSettingsMissingError: Converting under the proportional
            model without percentages
    """
    gift = _get_gift(gift_id=gift_id, for_update=True)

    if gift.user_id != user.id:
        raise NotGiftCreatorError("Only the creator can reveal this gift")
    if gift.is_revealed:
        raise GiftAlreadyRevealedError("Gift has already been revealed")

    _reveal(gift, now=timezone.now(), convert_to_shared=reveal_now, message=message)

    logger.info("Gift %s revealed manually (converted=%s)", gift.id, reveal_now)
    return gift


def sweep_gift_reveals(*, now: Optional[datetime] = None) -> SweepSummary:
    """
    Reveal every gift whose reveal date has passed.

    Each gift is revealed in its own transaction and converted to a shared
    expense. A failing gift is logged and counted; the rest of the batch
    still runs. Gifts already revealed are never selected, so a second run
    leaves them untouched.

    Args:
        now: Reference time (defaults to the current time)

    Returns:
        SweepSummary with counts, failed IDs and the alert flag
    """
    now = now or timezone.now()
    summary = SweepSummary()

    due_ids = list(
        Expense.objects.pending_gift_reveals(now)
        .order_by('reveal_date')
        .values_list('id', flat=True)
    )

    for gift_id in due_ids:
        summary.processed += 1
        try:
            with transaction.atomic():
                gift = Expense.objects.select_for_update().get(id=gift_id)
                if gift.is_revealed or gift.is_deleted:
                    summary.succeeded += 1
                    continue
                _reveal(gift, now=now, convert_to_shared=True)
            summary.succeeded += 1
        except Exception:
            summary.record_failure(gift_id)
            logger.exception("Failed to auto-reveal gift %s", gift_id)

    return summary.finish("Gift reveal sweep", logger)


@transaction.atomic
def update_gift(
    *,
    gift_id: UUID,
    user: User,
    description: Optional[str] = None,
    amount: Optional[Decimal] = None,
    reveal_date: Optional[datetime] = None,
    reveal_message: Optional[str] = None,
    category: Optional[str] = None
) -> Expense:
    """
    Update an unrevealed gift. Only provided fields change.

    Raises:
        GiftNotFoundError: If gift doesn't exist or is deleted
        NotGiftCreatorError: If user is not the creator
        GiftAlreadyRevealedError: If gift was already revealed
        RevealDateNotInFutureError: If the new reveal date is not in the future
        InvalidAmountError: If the new amount is not positive
    """
    gift = _get_gift(gift_id=gift_id, for_update=True)
    _ensure_creator_and_hidden(gift, user, action='update')

    update_fields = []
    if reveal_date is not None:
        _ensure_future(reveal_date)
        gift.reveal_date = reveal_date
        update_fields.append('reveal_date')
    if amount is not None:
        if amount <= 0:
            raise InvalidAmountError("Amount must be greater than zero")
        gift.amount = amount
        update_fields.append('amount')
    if description is not None:
        gift.description = description
        update_fields.append('description')
    if reveal_message is not None:
        gift.reveal_message = reveal_message
        update_fields.append('reveal_message')
    if category is not None:
        gift.category = category
        update_fields.append('category')

    if update_fields:
        gift.save(update_fields=update_fields + ['updated_at'])

    return gift


@transaction.atomic
def delete_gift(*, gift_id: UUID, user: User) -> None:
    """
    Soft-delete an unrevealed gift.

    Raises:
        GiftNotFoundError: If gift doesn't exist or is deleted
        NotGiftCreatorError: If user is not the creator
        GiftAlreadyRevealedError: If gift was already revealed
    """
    gift = _get_gift(gift_id=gift_id, for_update=True)
    _ensure_creator_and_hidden(gift, user, action='delete')
    gift.soft_delete()
    logger.info("Gift %s deleted by its creator", gift.id)


def list_my_gifts(*, account_id: UUID, user: User) -> QuerySet[Expense]:
    """Gifts the caller created in the account, newest first."""
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    return (
        Expense.objects.active()
        .filter(account=account, is_gift=True, user=user)
        .select_related('gift_for')
        .order_by('-created_at')
    )


def list_received_gifts(*, account_id: UUID, user: User) -> ReceivedGifts:
    """
    Gifts addressed to the caller.

    Hidden gifts are only counted, never listed.
    """
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)

    received = Expense.objects.active().filter(account=account, is_gift=True, gift_for=user)
    return ReceivedGifts(
        revealed=received.filter(is_revealed=True).select_related('user').order_by('-revealed_at'),
        hidden_count=received.filter(is_revealed=False).count(),
    )


# ============================================================
# Helpers
# ============================================================

def _get_gift(*, gift_id: UUID, for_update: bool = False) -> Expense:
    queryset = Expense.objects.active().filter(is_gift=True)
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(id=gift_id)
    except (Expense.DoesNotExist, ValidationError):
        raise GiftNotFoundError(f"Gift with ID {gift_id} not found")


def _ensure_creator_and_hidden(gift: Expense, user: User, action: str) -> None:
    if gift.user_id != user.id:
        raise NotGiftCreatorError(f"Only the creator can {action} this gift")
    if gift.is_revealed:
        raise GiftAlreadyRevealedError(f"Cannot {action} a gift that has already been revealed")


def _ensure_future(reveal_date: datetime) -> None:
    if reveal_date <= timezone.now():
        raise RevealDateNotInFutureError("Reveal date must be in the future")


def _reveal(gift: Expense, now: datetime, convert_to_shared: bool, message: str = '') -> None:
    """Mark the gift revealed and optionally turn it into a split shared expense."""
    gift.is_revealed = True
    gift.revealed_at = now
    if message:
        gift.reveal_message = message

    if convert_to_shared:
        account = gift.account
        couple_settings = get_settings_for_account(account=account)
        partner_ids = ordered_partner_ids(settings=couple_settings, account=account)
        gift.apply_split(split_amount(gift.amount, couple_settings, partner_ids))
        gift.expense_type = CoupleExpenseType.SHARED
        gift.is_shared_expense = True

    gift.save()
