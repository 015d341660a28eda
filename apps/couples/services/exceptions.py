"""
Domain-specific exceptions for couples services.

Every concrete error belongs to exactly one category (not found, forbidden,
invalid state, validation failure). Views catch ``CouplesServiceError`` and
map the category to an HTTP status.
"""


class CouplesServiceError(Exception):
    """Base exception for all couples service errors."""
    code = 'couples_error'


# Categories

class NotFoundError(CouplesServiceError):
    """Referenced account, settings, expense or user does not exist."""
    code = 'not_found'


class ForbiddenError(CouplesServiceError):
    """Caller may not perform the operation."""
    code = 'forbidden'


class InvalidStateError(CouplesServiceError):
    """Operation conflicts with the current state of the data."""
    code = 'invalid_state'


class ValidationFailure(CouplesServiceError):
    """Malformed input."""
    code = 'validation_failure'


# Not found

class CoupleAccountNotFoundError(NotFoundError):
    """Raised when an account does not exist, is deleted or is not a couple account."""
    code = 'account_not_found'


class CoupleSettingsNotFoundError(NotFoundError):
    code = 'settings_not_found'


class ExpenseNotFoundError(NotFoundError):
    code = 'expense_not_found'


class GiftNotFoundError(NotFoundError):
    code = 'gift_not_found'


class PartnerNotFoundError(NotFoundError):
    """Raised when a partner's user record cannot be resolved."""
    code = 'partner_not_found'


# Forbidden

class NotAccountMemberError(ForbiddenError):
    """Raised when the caller is not the owner or an active member."""
    code = 'not_account_member'


class NotGiftCreatorError(ForbiddenError):
    """Raised when someone other than the creator manages a gift."""
    code = 'not_gift_creator'


class GiftModeDisabledError(ForbiddenError):
    code = 'gift_mode_disabled'


class CommentsDisabledError(ForbiddenError):
    code = 'comments_disabled'


class ReactionsDisabledError(ForbiddenError):
    code = 'reactions_disabled'


class CommentLimitReachedError(ForbiddenError):
    """Raised when the per-expense comment cap of the basic tier is reached."""
    code = 'comment_limit_reached'


# Invalid state

class PartnerCountError(InvalidStateError):
    """Raised when a couple account does not have exactly two partners."""
    code = 'partner_count'


class ContributionSettingsMissingError(InvalidStateError):
    """Raised when proportional splitting is needed but no percentages exist."""
    code = 'contribution_settings_missing'


class InvalidContributionSettingsError(InvalidStateError):
    """Raised when contribution percentages do not sum to 100."""
    code = 'invalid_contribution_settings'


class CoupleSettingsExistError(InvalidStateError):
    code = 'settings_exist'


class GiftAlreadyRevealedError(InvalidStateError):
    code = 'gift_already_revealed'


class RevealDateNotInFutureError(InvalidStateError):
    code = 'reveal_date_not_in_future'


# Validation failure

class InvalidGiftRecipientError(ValidationFailure):
    """Raised when the gift recipient is the creator or not the other partner."""
    code = 'invalid_gift_recipient'


class InvalidCommentError(ValidationFailure):
    code = 'invalid_comment'


class InvalidReactionError(ValidationFailure):
    code = 'invalid_reaction'


class UnknownFeatureError(ValidationFailure):
    code = 'unknown_feature'


class InvalidSettingsError(ValidationFailure):
    """Raised when a settings payload is malformed (unknown partner, bad percentage)."""
    code = 'invalid_settings'


class NotCoupleExpenseError(ValidationFailure):
    """Raised when a couple-only operation targets an expense of another account type."""
    code = 'not_couple_expense'


class InvalidAmountError(ValidationFailure):
    code = 'invalid_amount'
