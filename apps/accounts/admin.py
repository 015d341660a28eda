# ==========================================
# apps/accounts/admin.py
# ==========================================

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from .models import User, Account, AccountMember, AccountStatus


def _badge(label, background, color='white'):
    return format_html(
        '<span style="background: {}; color: {}; padding: 3px 8px; '
        'border-radius: 10px; font-size: 11px;">{}</span>',
        background, color, label
    )


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin interface for User model.

    Provides user management including:
    - User listing with subscription state
    - Filtering by status and premium flag
    - Bulk activation actions
    """

    list_display = [
        'email',
        'get_display_name',
        'is_active_badge',
        'premium_badge',
        'premium_expires_at',
        'created_at',
        'last_login',
    ]

    list_filter = [
        'is_active',
        'is_staff',
        'is_premium',
        'created_at',
    ]

    search_fields = [
        'email',
        'first_name',
        'last_name',
    ]

    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    # Remove username field references from BaseUserAdmin
    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'first_name', 'last_name', 'password')
        }),
        ('Subscription', {
            'fields': ('is_premium', 'subscription_type', 'premium_expires_at'),
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        ('Create User', {
            'classes': ('wide',),
            'fields': ('email', 'first_name', 'last_name', 'password1', 'password2'),
        }),
    )

    readonly_fields = [
        'created_at',
        'last_login',
    ]

    filter_horizontal = ['groups', 'user_permissions']

    @admin.display(description='Name')
    def get_display_name(self, obj):
        return obj.get_display_name()

    @admin.display(description='Status', ordering='is_active')
    def is_active_badge(self, obj):
        """Display active status as colored badge."""
        if obj.is_active:
            return _badge('Active', '#6B8E5E')
        return _badge('Inactive', '#B85C5C')

    @admin.display(description='Premium', ordering='is_premium')
    def premium_badge(self, obj):
        """Display premium state, honouring the expiry date."""
        if obj.has_active_premium:
            return _badge(obj.subscription_type or 'Premium', '#A47449')
        if obj.is_premium:
            return _badge('Expired', '#E5C49A', '#2C1810')
        return _badge('Free', '#ccc', '#666')

    actions = [
        'activate_users',
        'deactivate_users',
    ]

    @admin.action(description='Activate selected users')
    def activate_users(self, request, queryset):
        count = queryset.update(is_active=True)
        self.message_user(request, f'Activated {count} user(s).')

    @admin.action(description='Deactivate selected users')
    def deactivate_users(self, request, queryset):
        """Deactivate selected users (superusers are skipped)."""
        safe_queryset = queryset.filter(is_superuser=False)
        count = safe_queryset.update(is_active=False)
        skipped = queryset.count() - count
        msg = f'Deactivated {count} user(s).'
        if skipped:
            msg += f' Skipped {skipped} superuser(s).'
        self.message_user(request, msg)


class AccountMemberInline(admin.TabularInline):
    model = AccountMember
    extra = 0
    fields = ['user', 'role', 'is_active', 'joined_at']
    raw_id_fields = ['user']


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    """Admin interface for accounts and their members."""

    list_display = [
        'name',
        'type',
        'owner',
        'status_badge',
        'currency',
        'last_activity_at',
        'created_at',
    ]

    list_filter = [
        'type',
        'status',
        'is_deleted',
    ]

    search_fields = [
        'name',
        'owner__email',
    ]

    readonly_fields = ['created_at', 'updated_at', 'deleted_at']
    raw_id_fields = ['owner']
    inlines = [AccountMemberInline]
    ordering = ['-last_activity_at']

    @admin.display(description='Status', ordering='status')
    def status_badge(self, obj):
        if obj.is_deleted:
            return _badge('Deleted', '#B85C5C')
        if obj.status == AccountStatus.ACTIVE:
            return _badge('Active', '#6B8E5E')
        return _badge(obj.get_status_display(), '#E5C49A', '#2C1810')

    def get_queryset(self, request):
        """Optimize query with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('owner')
