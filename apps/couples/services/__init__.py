"""
Couples app services layer.

Services contain the settlement engine and orchestrate operations across
accounts, expenses and couple settings. State-changing operations run in
transactions and lock the affected rows.
"""

from .exceptions import (
    CouplesServiceError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ValidationFailure,
    CoupleAccountNotFoundError,
    CoupleSettingsNotFoundError,
    ExpenseNotFoundError,
    GiftNotFoundError,
    PartnerNotFoundError,
    NotAccountMemberError,
    NotGiftCreatorError,
    GiftModeDisabledError,
    CommentsDisabledError,
    ReactionsDisabledError,
    CommentLimitReachedError,
    PartnerCountError,
    ContributionSettingsMissingError,
    InvalidContributionSettingsError,
    CoupleSettingsExistError,
    GiftAlreadyRevealedError,
    RevealDateNotInFutureError,
    InvalidGiftRecipientError,
    InvalidCommentError,
    InvalidReactionError,
    UnknownFeatureError,
    InvalidSettingsError,
    NotCoupleExpenseError,
    InvalidAmountError,
)

from .contributions import (
    ContributionTotals,
    ExpectedContributions,
    ExpenseSplit,
    FiftyFifty,
    ProportionalIncome,
    EverythingCommon,
    Mixed,
    contribution_model_for,
    calculate_expected,
    split_amount,
    split_equally,
    percentages_from_income,
)

from .settlement import (
    Settlement,
    WhoOwes,
    calculate_settlement,
)

from .gifts import (
    ReceivedGifts,
    create_gift,
    reveal_gift,
    sweep_gift_reveals,
    update_gift,
    delete_gift,
    list_my_gifts,
    list_received_gifts,
)

from .premium import (
    FEATURE_NAMES,
    PREMIUM_FEATURES,
    FeatureUsageResult,
    resolve_tier,
    features_for_tier,
    required_tier,
    refresh_couple_premium,
    refresh_all_premium_tiers,
    get_subscription_status,
    get_feature_status,
    get_all_feature_status,
    track_feature_usage,
)

from .settings_management import (
    ContributionSettingsInput,
    initialize_couple_settings,
    get_couple_settings,
    update_couple_settings,
    accept_couple_invitation,
    get_settings_history,
)

from .context_parser import (
    CONTEXT_KEYWORDS,
    ParsedContext,
    parse_context,
    parse_expense_context,
    batch_parse_expense_contexts,
    suggest_context,
)

from .stats import (
    CoupleStats,
    ContributionBalance,
    SettleResult,
    get_couple_stats,
    get_contribution_balance,
    settle_shared_expenses,
)

from .interactions import (
    add_expense_comment,
    add_expense_reaction,
)

from .jobs import (
    SweepSummary,
    job_lock,
)


__all__ = [
    # Exceptions
    'CouplesServiceError',
    'NotFoundError',
    'ForbiddenError',
    'InvalidStateError',
    'ValidationFailure',
    'CoupleAccountNotFoundError',
    'CoupleSettingsNotFoundError',
    'ExpenseNotFoundError',
    'GiftNotFoundError',
    'PartnerNotFoundError',
    'NotAccountMemberError',
    'NotGiftCreatorError',
    'GiftModeDisabledError',
    'CommentsDisabledError',
    'ReactionsDisabledError',
    'CommentLimitReachedError',
    'PartnerCountError',
    'ContributionSettingsMissingError',
    'InvalidContributionSettingsError',
    'CoupleSettingsExistError',
    'GiftAlreadyRevealedError',
    'RevealDateNotInFutureError',
    'InvalidGiftRecipientError',
    'InvalidCommentError',
    'InvalidReactionError',
    'UnknownFeatureError',
    'InvalidSettingsError',
    'NotCoupleExpenseError',
    'InvalidAmountError',
    # Contributions
    'ContributionTotals',
    'ExpectedContributions',
    'ExpenseSplit',
    'FiftyFifty',
    'ProportionalIncome',
    'EverythingCommon',
    'Mixed',
    'contribution_model_for',
    'calculate_expected',
    'split_amount',
    'split_equally',
    'percentages_from_income',
    # Settlement
    'Settlement',
    'WhoOwes',
    'calculate_settlement',
    # Gifts
    'ReceivedGifts',
    'create_gift',
    'reveal_gift',
    'sweep_gift_reveals',
    'update_gift',
    'delete_gift',
    'list_my_gifts',
    'list_received_gifts',
    # Premium
    'FEATURE_NAMES',
    'PREMIUM_FEATURES',
    'FeatureUsageResult',
    'resolve_tier',
    'features_for_tier',
    'required_tier',
    'refresh_couple_premium',
    'refresh_all_premium_tiers',
    'get_subscription_status',
    'get_feature_status',
    'get_all_feature_status',
    'track_feature_usage',
    # Settings
    'ContributionSettingsInput',
    'initialize_couple_settings',
    'get_couple_settings',
    'update_couple_settings',
    'accept_couple_invitation',
    'get_settings_history',
    # Context
    'CONTEXT_KEYWORDS',
    'ParsedContext',
    'parse_context',
    'parse_expense_context',
    'batch_parse_expense_contexts',
    'suggest_context',
    # Stats
    'CoupleStats',
    'ContributionBalance',
    'SettleResult',
    'get_couple_stats',
    'get_contribution_balance',
    'settle_shared_expenses',
    # Interactions
    'add_expense_comment',
    'add_expense_reaction',
    # Jobs
    'SweepSummary',
    'job_lock',
]
