from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from decimal import Decimal
import uuid

from apps.expenses.models import CoupleExpenseType


class FinancialModel(models.TextChoices):
    FIFTY_FIFTY = 'fifty_fifty', '50/50 Automatic'
    PROPORTIONAL_INCOME = 'proportional_income', 'Proportional to Income'
    EVERYTHING_COMMON = 'everything_common', 'Everything in Common'
    MIXED = 'mixed', 'Mixed Model'


class PremiumTier(models.TextChoices):
    BASIC = 'basic', 'Basic'
    ONE_PREMIUM = 'one_premium', 'One Partner Premium'
    BOTH_PREMIUM = 'both_premium', 'Both Partners Premium'


def default_notifications():
    return {
        'expense_added': True,
        'comments_and_reactions': True,
        'gift_revealed': True,
        'reminders': True,
        'budget_alerts': True,
    }


PERCENTAGE_VALIDATORS = [MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]


class CoupleSettings(models.Model):
    """
    Configuration of a couple account.

    Contribution settings are stored flat and are considered present when
    ``partner1_user`` is set. Premium fields are written only by the premium
    services; users never set them directly.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    account = models.OneToOneField(
        'accounts.Account',
        on_delete=models.CASCADE,
        related_name='couple_settings'
    )

    financial_model = models.CharField(
        max_length=30,
        choices=FinancialModel.choices,
        default=FinancialModel.FIFTY_FIFTY
    )
    default_expense_type = models.CharField(
        max_length=20,
        choices=CoupleExpenseType.choices,
        default=CoupleExpenseType.SHARED
    )

    # Contribution settings
    partner1_user = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    partner2_user = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    partner1_contribution_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True,
        validators=PERCENTAGE_VALIDATORS
    )
    partner2_contribution_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True,
        validators=PERCENTAGE_VALIDATORS
    )
    partner1_monthly_income = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    partner2_monthly_income = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    auto_calculate_from_income = models.BooleanField(default=False)
    contribution_updated_at = models.DateTimeField(null=True, blank=True)
    contribution_updated_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    # Premium (derived from both partners' subscriptions)
    premium_tier = models.CharField(
        max_length=20,
        choices=PremiumTier.choices,
        default=PremiumTier.BASIC
    )
    has_shared_goals = models.BooleanField(default=False)
    has_detailed_comparisons = models.BooleanField(default=False)
    has_joint_evolution_panel = models.BooleanField(default=False)
    has_downloadable_reports = models.BooleanField(default=False)
    has_advanced_analytics = models.BooleanField(default=False)
    has_unlimited_comments = models.BooleanField(default=False)
    has_custom_categories = models.BooleanField(default=False)
    premium_updated_at = models.DateTimeField(null=True, blank=True)

    # Invitation
    invitation_accepted_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    invitation_accepted_at = models.DateTimeField(null=True, blank=True)
    both_partners_accepted = models.BooleanField(default=False)

    # Toggles
    allow_comments = models.BooleanField(default=True)
    allow_reactions = models.BooleanField(default=True)
    show_contribution_stats = models.BooleanField(default=True)
    enable_cross_reminders = models.BooleanField(default=True)
    gift_mode_enabled = models.BooleanField(default=True)
    shared_goals_enabled = models.BooleanField(default=True)
    notifications = models.JSONField(default=default_notifications, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'couple_settings'
        verbose_name_plural = 'couple settings'
        indexes = [
            models.Index(fields=['premium_tier'], name='couple_settings_tier_idx'),
        ]

    def __str__(self):
        return f"Couple settings for {self.account.name} ({self.financial_model})"

    @property
    def has_contribution_settings(self):
        return self.partner1_user_id is not None

    def percentage_for(self, user_id):
        """
        Contribution percentage of ``user_id``, or None when unknown.
        """
        if user_id == self.partner1_user_id:
            return self.partner1_contribution_percentage
        if user_id == self.partner2_user_id:
            return self.partner2_contribution_percentage
        return None

    def contribution_snapshot(self):
        """Plain dict of the contribution settings, for audit entries."""
        if not self.has_contribution_settings:
            return None
        return {
            'partner1_user_id': str(self.partner1_user_id),
            'partner2_user_id': str(self.partner2_user_id) if self.partner2_user_id else None,
            'partner1_contribution_percentage': _money_str(self.partner1_contribution_percentage),
            'partner2_contribution_percentage': _money_str(self.partner2_contribution_percentage),
            'partner1_monthly_income': _money_str(self.partner1_monthly_income),
            'partner2_monthly_income': _money_str(self.partner2_monthly_income),
            'auto_calculate_from_income': self.auto_calculate_from_income,
        }


def _money_str(value):
    return None if value is None else str(value)


class CoupleSettingsChange(models.Model):
    """
    Append-only audit entry for a couple settings change.

    Values are stored as JSON so any setting type fits.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    settings = models.ForeignKey(
        CoupleSettings,
        on_delete=models.CASCADE,
        related_name='history'
    )
    setting = models.CharField(max_length=100)
    old_value = models.JSONField(null=True, blank=True)
    new_value = models.JSONField(null=True, blank=True)
    changed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='+'
    )
    changed_at = models.DateTimeField(auto_now_add=True)
    reason = models.CharField(max_length=255, blank=True)

    class Meta:
        db_table = 'couple_settings_changes'
        ordering = ['changed_at']
        indexes = [
            models.Index(fields=['settings', 'changed_at'], name='couple_changes_settings_idx'),
        ]

    def __str__(self):
        return f"{self.setting}: {self.old_value} -> {self.new_value}"


class FeatureUsage(models.Model):
    """Monthly usage counter of a capped premium feature per account."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    account = models.ForeignKey(
        'accounts.Account',
        on_delete=models.CASCADE,
        related_name='feature_usage'
    )
    feature = models.CharField(max_length=50)
    # First day of the counted month
    period = models.DateField()
    count = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'couple_feature_usage'
        unique_together = [['account', 'feature', 'period']]

    def __str__(self):
        return f"{self.feature} {self.period:%Y-%m}: {self.count}"
