"""
Premium feature resolver.

The couple's tier is derived from both partners' subscriptions:

    neither premium -> basic
    one premium     -> one_premium
    both premium    -> both_premium

Each tier maps to a fixed bundle of seven features. The tier and flags are
persisted on CoupleSettings by ``refresh_couple_premium`` (nightly for all
couples, and right after the second partner accepts the invitation).
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import Account, AccountStatus, AccountType, User
from apps.couples.models import CoupleSettings, FeatureUsage, PremiumTier

from .exceptions import PartnerNotFoundError, UnknownFeatureError
from .jobs import SweepSummary
from .partners import (
    ensure_member,
    get_couple_account,
    get_settings_for_account,
    resolve_partner_ids,
)

logger = logging.getLogger(__name__)


TIER_ORDER = [PremiumTier.BASIC, PremiumTier.ONE_PREMIUM, PremiumTier.BOTH_PREMIUM]

FEATURE_NAMES = [
    'shared_goals',
    'detailed_comparisons',
    'joint_evolution_panel',
    'downloadable_reports',
    'advanced_analytics',
    'unlimited_comments',
    'custom_categories',
]

PREMIUM_FEATURES: Dict[str, Dict[str, bool]] = {
    PremiumTier.BASIC: {name: False for name in FEATURE_NAMES},
    PremiumTier.ONE_PREMIUM: {
        'shared_goals': False,
        'detailed_comparisons': False,
        'joint_evolution_panel': False,
        'downloadable_reports': False,
        'advanced_analytics': False,
        'unlimited_comments': True,
        'custom_categories': True,
    },
    PremiumTier.BOTH_PREMIUM: {name: True for name in FEATURE_NAMES},
}

FEATURE_DESCRIPTIONS = {
    'shared_goals': 'Create and track financial goals together as a couple',
    'detailed_comparisons': 'Advanced spending comparisons and analytics between partners',
    'joint_evolution_panel': 'Joint financial evolution dashboard with trends and insights',
    'downloadable_reports': 'Download detailed financial reports and statements',
    'advanced_analytics': 'AI-powered insights and behavioral analytics',
    'unlimited_comments': 'Unlimited comments on shared expenses',
    'custom_categories': 'Create custom expense categories tailored to your needs',
}

FEATURE_LIMITATIONS = {
    'shared_goals': ['Limited to 3 shared goals', 'Basic goal tracking only'],
    'detailed_comparisons': ['Basic comparison views only', 'Limited historical data'],
    'joint_evolution_panel': ['Basic dashboard view', 'No advanced charts'],
    'downloadable_reports': ['No report downloads', 'View-only access'],
    'advanced_analytics': ['Basic analytics only', 'No AI insights'],
    'unlimited_comments': ['Limited to 10 comments per expense', 'Basic emoji reactions only'],
    'custom_categories': ['Standard categories only', 'Cannot create custom categories'],
}

UPGRADE_RECOMMENDATIONS = {
    PremiumTier.BASIC: {
        'benefit': 'Upgrade to Premium for advanced couple features',
        'features': ['Unlimited comments and reactions', 'Custom expense categories', 'Enhanced analytics'],
    },
    PremiumTier.ONE_PREMIUM: {
        'benefit': 'Get both partners Premium for full couple experience',
        'features': [
            'Shared financial goals',
            'Detailed comparative analytics',
            'Joint evolution dashboard',
            'Downloadable reports',
            'AI-powered insights',
        ],
    },
}


@dataclass(frozen=True)
class FeatureUsageResult:
    allowed: bool
    remaining: Optional[int] = None
    limit: Optional[int] = None
    message: str = ''


def resolve_tier(partner1_premium: bool, partner2_premium: bool) -> str:
    if partner1_premium and partner2_premium:
        return PremiumTier.BOTH_PREMIUM
    if partner1_premium or partner2_premium:
        return PremiumTier.ONE_PREMIUM
    return PremiumTier.BASIC


def features_for_tier(tier: str) -> Dict[str, bool]:
    return dict(PREMIUM_FEATURES[tier])


def required_tier(feature: str) -> str:
    """
    Lowest tier at which the feature is enabled.

    Raises:
        UnknownFeatureError: If the feature name is not known
    """
    _ensure_known_feature(feature)
    for tier in TIER_ORDER:
        if PREMIUM_FEATURES[tier][feature]:
            return tier
    return PremiumTier.BOTH_PREMIUM


def feature_field(feature: str) -> str:
    """Name of the CoupleSettings flag holding the feature."""
    return f'has_{feature}'


def apply_premium_tier(couple_settings: CoupleSettings, account: Account) -> CoupleSettings:
    """
    Recompute and save tier and feature flags on already-loaded settings.

    The caller is expected to hold the row lock.

    Raises:
        PartnerCountError: If the account does not have exactly two partners
        PartnerNotFoundError: If a partner's user record is missing
    """
    partner_ids = resolve_partner_ids(account=account)
    users = {user.id: user for user in User.objects.filter(id__in=partner_ids)}
    missing = [str(user_id) for user_id in partner_ids if user_id not in users]
    if missing:
        raise PartnerNotFoundError(f"Partner user(s) not found: {', '.join(missing)}")

    partner1, partner2 = (users[user_id] for user_id in partner_ids)
    tier = resolve_tier(partner1.has_active_premium, partner2.has_active_premium)

    previous_tier = couple_settings.premium_tier
    couple_settings.premium_tier = tier
    for feature, enabled in PREMIUM_FEATURES[tier].items():
        setattr(couple_settings, feature_field(feature), enabled)
    couple_settings.premium_updated_at = timezone.now()
    couple_settings.save(
        update_fields=['premium_tier', 'premium_updated_at', 'updated_at']
        + [feature_field(feature) for feature in FEATURE_NAMES]
    )

    if previous_tier != tier:
        logger.info("Account %s premium tier changed %s -> %s", account.id, previous_tier, tier)
    return couple_settings


@transaction.atomic
def refresh_couple_premium(*, account_id: UUID) -> CoupleSettings:
    """
    Re-derive and persist the premium tier of one couple account.

    Raises:
        CoupleAccountNotFoundError: If account doesn't exist
        CoupleSettingsNotFoundError: If the account has no settings
        PartnerCountError: If the account does not have exactly two partners
    """
    account = get_couple_account(account_id=account_id)
    couple_settings = get_settings_for_account(account=account, for_update=True)
    return apply_premium_tier(couple_settings, account)


def refresh_all_premium_tiers() -> SweepSummary:
    """
    Nightly batch: refresh every active couple account.

    A failing account is logged and counted; the batch continues.
    """
    summary = SweepSummary()
    account_ids = list(
        Account.objects.filter(
            type=AccountType.COUPLE,
            status=AccountStatus.ACTIVE,
            is_deleted=False,
        ).values_list('id', flat=True)
    )

    logger.info("Refreshing premium tiers for %d couple account(s)", len(account_ids))

    for account_id in account_ids:
        summary.processed += 1
        try:
            refresh_couple_premium(account_id=account_id)
            summary.succeeded += 1
        except Exception:
            summary.record_failure(account_id)
            logger.exception("Failed to refresh premium features for account %s", account_id)

    return summary.finish("Premium tier refresh", logger)


def get_subscription_status(*, account_id: UUID, user: User) -> dict:
    """
    Subscription state of both partners and the resulting tier.

    Returns:
        dict with partner1/partner2 details, tier, features and an upgrade
        recommendation (None once both partners are premium)
    """
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    partner_ids = resolve_partner_ids(account=account)
    users = {u.id: u for u in User.objects.filter(id__in=partner_ids)}

    partners = []
    for user_id in partner_ids:
        partner = users.get(user_id)
        if partner is None:
            raise PartnerNotFoundError(f"Partner user {user_id} not found")
        partners.append(partner)

    tier = resolve_tier(partners[0].has_active_premium, partners[1].has_active_premium)

    return {
        'partner1': _partner_subscription(partners[0]),
        'partner2': _partner_subscription(partners[1]),
        'tier': tier,
        'features': features_for_tier(tier),
        'upgrade_recommendation': upgrade_recommendation(tier),
    }


def upgrade_recommendation(tier: str) -> Optional[dict]:
    recommendation = UPGRADE_RECOMMENDATIONS.get(tier)
    if recommendation is None:
        return None
    return {
        'benefit': recommendation['benefit'],
        'cost': Decimal(str(settings.COUPLE_UPGRADE_PRICE)),
        'features': list(recommendation['features']),
    }


def get_feature_status(*, account_id: UUID, user: User, feature: str) -> dict:
    """
    Availability of one feature for the couple.

    Limitations are listed only while the feature is disabled.

    Raises:
        UnknownFeatureError: If the feature name is not known
    """
    _ensure_known_feature(feature)
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    couple_settings = get_settings_for_account(account=account)
    return _feature_status(couple_settings, feature)


def get_all_feature_status(*, account_id: UUID, user: User) -> List[dict]:
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    couple_settings = get_settings_for_account(account=account)
    return [_feature_status(couple_settings, feature) for feature in FEATURE_NAMES]


@transaction.atomic
def track_feature_usage(*, account_id: UUID, user: User, feature: str) -> FeatureUsageResult:
    """
    Record one use of a premium feature.

    Disabled features are refused. Tiers with a configured monthly cap in
    COUPLE_USAGE_LIMITS count usage per calendar month and refuse once the
    cap is reached; uncapped features are always allowed.

    Raises:
        UnknownFeatureError: If the feature name is not known
    """
    _ensure_known_feature(feature)
    account = get_couple_account(account_id=account_id)
    ensure_member(account=account, user=user)
    couple_settings = get_settings_for_account(account=account)

    if not getattr(couple_settings, feature_field(feature)):
        return FeatureUsageResult(
            allowed=False,
            remaining=0,
            message=f"{feature} requires premium subscription ({required_tier(feature)})",
        )

    limit = settings.COUPLE_USAGE_LIMITS.get(couple_settings.premium_tier, {}).get(feature)
    if limit is None:
        return FeatureUsageResult(allowed=True)

    period = timezone.localdate().replace(day=1)
    usage, _ = FeatureUsage.objects.select_for_update().get_or_create(
        account=account,
        feature=feature,
        period=period,
    )

    if usage.count >= limit:
        return FeatureUsageResult(
            allowed=False,
            remaining=0,
            limit=limit,
            message=f"Monthly limit of {limit} reached for {feature}",
        )

    usage.count += 1
    usage.save(update_fields=['count', 'updated_at'])

    return FeatureUsageResult(allowed=True, remaining=limit - usage.count, limit=limit)


# ============================================================
# Helpers
# ============================================================

def _ensure_known_feature(feature: str) -> None:
    if feature not in FEATURE_NAMES:
        raise UnknownFeatureError(f"Unknown premium feature '{feature}'")


def _feature_status(couple_settings: CoupleSettings, feature: str) -> dict:
    enabled = bool(getattr(couple_settings, feature_field(feature)))
    return {
        'feature': feature,
        'enabled': enabled,
        'required_tier': required_tier(feature),
        'current_tier': couple_settings.premium_tier,
        'description': FEATURE_DESCRIPTIONS[feature],
        'limitations': None if enabled else list(FEATURE_LIMITATIONS[feature]),
    }


def _partner_subscription(partner: User) -> dict:
    return {
        'user_id': partner.id,
        'name': partner.get_display_name(),
        'is_premium': partner.has_active_premium,
        'subscription_type': partner.subscription_type or None,
        'premium_expires_at': partner.premium_expires_at,
    }
