"""Domain-specific exceptions for accounts services."""


class AccountsServiceError(Exception):
    """Base exception for accounts services."""
    pass


class AccountNotFoundError(AccountsServiceError):
    """Raised when an account does not exist or is soft-deleted."""
    pass


class UserNotFoundError(AccountsServiceError):
    """Raised when user does not exist."""
    pass


class AlreadyMemberError(AccountsServiceError):
    """Raised when a user is already an active member of the account."""
    pass
