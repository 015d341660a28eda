"""Services for accounts business logic."""

from .exceptions import (
    AccountsServiceError,
    AccountNotFoundError,
    UserNotFoundError,
    AlreadyMemberError,
)
from .account_management import (
    create_account,
    add_member,
    get_account_by_id,
    get_user_accounts,
    get_user_by_id,
)

__all__ = [
    # Exceptions
    'AccountsServiceError',
    'AccountNotFoundError',
    'UserNotFoundError',
    'AlreadyMemberError',
    # Services
    'create_account',
    'add_member',
    'get_account_by_id',
    'get_user_accounts',
    'get_user_by_id',
]
