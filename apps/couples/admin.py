# ==========================================
# apps/couples/admin.py
# ==========================================

from django.contrib import admin, messages
from django.utils.html import format_html
from .models import CoupleSettings, CoupleSettingsChange, FeatureUsage, PremiumTier
from .services import CouplesServiceError, refresh_couple_premium


class CoupleSettingsChangeInline(admin.TabularInline):
    """Read-only audit trail within the couple settings."""
    model = CoupleSettingsChange
    extra = 0
    fields = ['setting', 'old_value', 'new_value', 'changed_by', 'changed_at', 'reason']
    readonly_fields = fields
    ordering = ['-changed_at']

    def has_add_permission(self, request, obj=None):
        """History entries are written by the settings service only."""
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CoupleSettings)
class CoupleSettingsAdmin(admin.ModelAdmin):
    """
    Admin interface for couple settings.

    Provides:
    - Financial model and premium tier overview
    - Settings change history inline
    - Action to recompute the premium tier
    """

    list_display = [
        'account',
        'financial_model',
        'premium_tier_badge',
        'both_partners_accepted',
        'gift_mode_enabled',
        'updated_at',
    ]

    list_filter = [
        'financial_model',
        'premium_tier',
        'both_partners_accepted',
        'gift_mode_enabled',
    ]

    search_fields = [
        'account__name',
        'partner1_user__email',
        'partner2_user__email',
    ]

    readonly_fields = [
        'id',
        'premium_tier',
        'has_shared_goals',
        'has_detailed_comparisons',
        'has_joint_evolution_panel',
        'has_downloadable_reports',
        'has_advanced_analytics',
        'has_unlimited_comments',
        'has_custom_categories',
        'premium_updated_at',
        'invitation_accepted_by',
        'invitation_accepted_at',
        'both_partners_accepted',
        'contribution_updated_at',
        'contribution_updated_by',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('Account', {
            'fields': ('id', 'account', 'financial_model', 'default_expense_type')
        }),
        ('Contribution', {
            'fields': (
                ('partner1_user', 'partner2_user'),
                ('partner1_contribution_percentage', 'partner2_contribution_percentage'),
                ('partner1_monthly_income', 'partner2_monthly_income'),
                'auto_calculate_from_income',
                ('contribution_updated_at', 'contribution_updated_by'),
            )
        }),
        ('Premium', {
            'fields': (
                'premium_tier',
                'has_shared_goals',
                'has_detailed_comparisons',
                'has_joint_evolution_panel',
                'has_downloadable_reports',
                'has_advanced_analytics',
                'has_unlimited_comments',
                'has_custom_categories',
                'premium_updated_at',
            ),
            'classes': ('collapse',)
        }),
        ('Invitation', {
            'fields': ('invitation_accepted_by', 'invitation_accepted_at', 'both_partners_accepted')
        }),
        ('Preferences', {
            'fields': (
                'allow_comments',
                'allow_reactions',
                'show_contribution_stats',
                'enable_cross_reminders',
                'gift_mode_enabled',
                'shared_goals_enabled',
                'notifications',
            )
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    inlines = [CoupleSettingsChangeInline]
    actions = ['refresh_premium']

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('account', 'partner1_user', 'partner2_user')

    def premium_tier_badge(self, obj):
        colors = {
            PremiumTier.BASIC: '#999',
            PremiumTier.ONE_PREMIUM: '#A47449',
            PremiumTier.BOTH_PREMIUM: '#6B8E5E',
        }
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            colors.get(obj.premium_tier, '#ccc'), obj.get_premium_tier_display()
        )
    premium_tier_badge.short_description = 'Tier'

    def refresh_premium(self, request, queryset):
        """Recompute the premium tier of the selected couples."""
        refreshed = 0
        for couple_settings in queryset:
            try:
                refresh_couple_premium(account_id=couple_settings.account_id)
                refreshed += 1
            except CouplesServiceError as e:
                self.message_user(request, f'{couple_settings.account}: {e}', level=messages.ERROR)
        self.message_user(request, f'{refreshed} couple(s) refreshed.')
    refresh_premium.short_description = 'Refresh premium tier'


@admin.register(FeatureUsage)
class FeatureUsageAdmin(admin.ModelAdmin):
    list_display = ['account', 'feature', 'period', 'count', 'updated_at']
    list_filter = ['feature', 'period']
    search_fields = ['account__name']
    readonly_fields = ['account', 'feature', 'period', 'count', 'updated_at']
