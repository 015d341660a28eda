"""
Account management service.

Account lookup and membership used by the couple services.
"""

from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction, IntegrityError
from django.db.models import Q, QuerySet

from apps.accounts.models import Account, AccountMember, AccountRole, AccountStatus, User

from .exceptions import AccountNotFoundError, AlreadyMemberError, UserNotFoundError


def create_account(
    *,
    name: str,
    account_type: str,
    owner: User,
    currency: str = 'USD',
    description: str = ''
) -> Account:
    """
    Create a new account owned by ``owner``.

    Args:
        name: Account name
        account_type: One of AccountType values
        owner: User who owns the account
        currency: ISO currency code
        description: Optional description

    Returns:
        Created Account instance
    """
    return Account.objects.create(
        name=name,
        type=account_type,
        owner=owner,
        currency=currency,
        description=description,
    )


@transaction.atomic
def add_member(
    *,
    account_id: UUID,
    user: User,
    role: str = AccountRole.MEMBER
) -> AccountMember:
    """
    Add a user to an account, reactivating a former membership if present.

    Raises:
        AccountNotFoundError: If account doesn't exist
        AlreadyMemberError: If user is the owner or an active member
    """
    account = get_account_by_id(account_id=account_id, for_update=True)

    if account.owner_id == user.id:
        raise AlreadyMemberError("Owner is already part of the account")

    membership = AccountMember.objects.filter(account=account, user=user).first()
    if membership:
        if membership.is_active:
            raise AlreadyMemberError(f"User is already a member of {account.name}")
        membership.is_active = True
        membership.role = role
        membership.save(update_fields=['is_active', 'role'])
        return membership

    try:
        return AccountMember.objects.create(account=account, user=user, role=role)
    except IntegrityError:
        raise AlreadyMemberError(f"User is already a member of {account.name}")


def get_account_by_id(*, account_id: UUID, for_update: bool = False) -> Account:
    """
    Retrieve a non-deleted account by ID.

    Raises:
        AccountNotFoundError: If account doesn't exist or is soft-deleted
    """
    queryset = Account.objects.filter(is_deleted=False)
    if for_update:
        queryset = queryset.select_for_update()

    try:
        return queryset.select_related('owner').get(id=account_id)
    except (Account.DoesNotExist, ValidationError):
        raise AccountNotFoundError(f"Account with ID {account_id} not found")


def get_user_accounts(
    *,
    user: User,
    account_type: Optional[str] = None
) -> QuerySet[Account]:
    """Active accounts the user owns or belongs to, most recently active first."""
    queryset = Account.objects.filter(
        Q(owner=user) | Q(members__user=user, members__is_active=True),
        is_deleted=False,
        status=AccountStatus.ACTIVE,
    )
    if account_type:
        queryset = queryset.filter(type=account_type)
    return queryset.distinct().order_by('-last_activity_at')


def get_user_by_id(*, user_id: UUID) -> User:
    """
    Raises:
        UserNotFoundError: If user does not exist
    """
    try:
        return User.objects.get(id=user_id)
    except (User.DoesNotExist, ValidationError):
        raise UserNotFoundError(f"User with ID {user_id} not found")
