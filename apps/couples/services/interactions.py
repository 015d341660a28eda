"""
Comments and reactions on couple expenses.
"""

import logging
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction

from apps.accounts.models import AccountType, User
from apps.expenses.models import Expense, ExpenseComment, ExpenseReaction, ReactionType

from .exceptions import (
    CommentLimitReachedError,
    CommentsDisabledError,
    ExpenseNotFoundError,
    InvalidCommentError,
    InvalidReactionError,
    NotCoupleExpenseError,
    ReactionsDisabledError,
)
from .partners import ensure_member, get_settings_for_account

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


def _get_couple_expense(*, expense_id: UUID, user: User, for_update: bool = False) -> Expense:
    queryset = Expense.objects.active().select_related('account')
    if for_update:
        queryset = queryset.select_for_update()
    try:
        expense = queryset.get(id=expense_id)
    except (Expense.DoesNotExist, ValidationError):
        raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")

    if expense.account.type != AccountType.COUPLE:
        raise NotCoupleExpenseError("Comments and reactions are only available on couple expenses")

    ensure_member(account=expense.account, user=user)

    # Hidden gifts do not exist for their recipient
    if expense.is_gift and not expense.is_revealed and expense.gift_for_id == user.id:
        raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")

    return expense


@transaction.atomic
def add_expense_comment(*, expense_id: UUID, user: User, text: str) -> ExpenseComment:
    """
    Append a comment to a couple expense.

    Args:
        expense_id: Expense ID
        user: Partner commenting
        text: Comment text, trimmed, 1-1000 characters

    Returns:
        Created ExpenseComment

    Raises:
        ExpenseNotFoundError: If expense doesn't exist
        NotCoupleExpenseError: If expense is not in a couple account
        NotAccountMemberError: If user is not a member
        CommentsDisabledError: If comments are disabled
        InvalidCommentError: If text is empty or too long
        CommentLimitReachedError: If the basic per-expense cap is reached
    """
    expense = _get_couple_expense(expense_id=expense_id, user=user, for_update=True)
    couple_settings = get_settings_for_account(account=expense.account)

    if not couple_settings.allow_comments:
        raise CommentsDisabledError("Comments are disabled for this account")

    text = (text or '').strip()
    if not text:
        raise InvalidCommentError("Comment text cannot be empty")
    if len(text) > MAX_COMMENT_LENGTH:
        raise InvalidCommentError(f"Comment text cannot exceed {MAX_COMMENT_LENGTH} characters")

    if not couple_settings.has_unlimited_comments:
        limit = settings.COUPLE_BASIC_COMMENTS_PER_EXPENSE
        if expense.comments.count() >= limit:
            raise CommentLimitReachedError(
                f"Limited to {limit} comments per expense, upgrade to premium for unlimited comments"
            )

    comment = ExpenseComment.objects.create(expense=expense, user=user, text=text)
    logger.debug("Comment %s added to expense %s", comment.id, expense.id)
    return comment


@transaction.atomic
def add_expense_reaction(*, expense_id: UUID, user: User, reaction_type: str) -> ExpenseReaction:
    """
    React to a couple expense, replacing the user's earlier reaction.

    Raises:
        ExpenseNotFoundError: If expense doesn't exist
        NotCoupleExpenseError: If expense is not in a couple account
        NotAccountMemberError: If user is not a member
        ReactionsDisabledError: If reactions are disabled
        InvalidReactionError: If reaction_type is not a known type
    """
    if reaction_type not in ReactionType.values:
        raise InvalidReactionError(
            f"Invalid reaction type '{reaction_type}', expected one of: {', '.join(ReactionType.values)}"
        )

    expense = _get_couple_expense(expense_id=expense_id, user=user, for_update=True)
    couple_settings = get_settings_for_account(account=expense.account)

    if not couple_settings.allow_reactions:
        raise ReactionsDisabledError("Reactions are disabled for this account")

    ExpenseReaction.objects.filter(expense=expense, user=user).delete()
    return ExpenseReaction.objects.create(expense=expense, user=user, type=reaction_type)
