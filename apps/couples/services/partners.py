"""
Partner resolution service.

Loads couple accounts and their settings, checks membership and derives
the two-partner set every couple operation works on.
"""

from dataclasses import dataclass
from typing import Tuple
from uuid import UUID

from apps.accounts.models import Account, AccountType, User
from apps.accounts.services import AccountNotFoundError, get_account_by_id
from apps.couples.models import CoupleSettings

from .exceptions import (
    CoupleAccountNotFoundError,
    CoupleSettingsNotFoundError,
    NotAccountMemberError,
    PartnerCountError,
)


@dataclass(frozen=True)
class CouplePartners:
    """The caller and the other partner of a couple account."""

    self_id: UUID
    partner_id: UUID


def get_couple_account(*, account_id: UUID, for_update: bool = False) -> Account:
    """
    Get a non-deleted account of type COUPLE.

    Raises:
        CoupleAccountNotFoundError: If account doesn't exist or is not a couple account
    """
    try:
        account = get_account_by_id(account_id=account_id, for_update=for_update)
    except AccountNotFoundError as e:
        raise CoupleAccountNotFoundError(str(e))

    if account.type != AccountType.COUPLE:
        raise CoupleAccountNotFoundError(f"Account with ID {account_id} is not a couple account")

    return account


def ensure_member(*, account: Account, user: User) -> None:
    """
    Raises:
        NotAccountMemberError: If user is neither the owner nor an active member
    """
    if not account.has_member(user):
        raise NotAccountMemberError("You are not a member of this account")


def resolve_partner_ids(*, account: Account) -> Tuple[UUID, UUID]:
    """
    Owner first, then the single active member.

    Raises:
        PartnerCountError: If the account does not have exactly two partners
    """
    partner_ids = account.get_partner_ids()
    if len(partner_ids) != 2:
        raise PartnerCountError(
            f"Couple account {account.id} must have exactly 2 partners, found {len(partner_ids)}"
        )
    return partner_ids[0], partner_ids[1]


def resolve_partners(*, account: Account, user: User) -> CouplePartners:
    """
    Resolve the caller and the other partner.

    Raises:
        PartnerCountError: If the account does not have exactly two partners
        NotAccountMemberError: If user is not one of the two partners
    """
    first, second = resolve_partner_ids(account=account)
    if user.id == first:
        return CouplePartners(self_id=first, partner_id=second)
    if user.id == second:
        return CouplePartners(self_id=second, partner_id=first)
    raise NotAccountMemberError("You are not a partner in this account")


def get_settings_for_account(*, account: Account, for_update: bool = False) -> CoupleSettings:
    """
    Raises:
        CoupleSettingsNotFoundError: If the account has no couple settings yet
    """
    queryset = CoupleSettings.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(account=account)
    except CoupleSettings.DoesNotExist:
        raise CoupleSettingsNotFoundError(f"Couple settings for account {account.id} not found")


def ordered_partner_ids(*, settings: CoupleSettings, account: Account) -> Tuple[UUID, UUID]:
    """
    Partner order used for splits: contribution settings order when present,
    otherwise owner first.
    """
    if settings.has_contribution_settings and settings.partner2_user_id:
        return settings.partner1_user_id, settings.partner2_user_id
    return resolve_partner_ids(account=account)
