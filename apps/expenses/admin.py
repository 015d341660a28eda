# ==========================================
# apps/expenses/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import Expense, ExpenseComment, ExpenseReaction


class ExpenseCommentInline(admin.TabularInline):
    """Inline admin for comments on an expense."""
    model = ExpenseComment
    extra = 0
    fields = ['user', 'text', 'is_edited', 'created_at']
    readonly_fields = ['user', 'text', 'is_edited', 'created_at']

    def has_add_permission(self, request, obj=None):
        """Comments are created through the couple services."""
        return False


class ExpenseReactionInline(admin.TabularInline):
    model = ExpenseReaction
    extra = 0
    fields = ['user', 'type', 'created_at']
    readonly_fields = ['user', 'type', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    """
    Admin interface for expenses.

    Shows the couple split, gift and settlement state of each expense
    for operator inspection.
    """

    list_display = [
        'description',
        'account',
        'user',
        'amount',
        'expense_type',
        'gift_badge',
        'is_settled',
        'date',
    ]

    list_filter = [
        'expense_type',
        'is_gift',
        'is_revealed',
        'is_settled',
        'is_deleted',
        'date',
    ]

    search_fields = [
        'description',
        'account__name',
        'user__email',
    ]

    readonly_fields = [
        'revealed_at',
        'settled_at',
        'deleted_at',
        'created_at',
        'updated_at',
    ]

    raw_id_fields = [
        'account',
        'user',
        'gift_for',
        'split_partner1_user',
        'split_partner2_user',
        'settled_by',
    ]

    inlines = [ExpenseCommentInline, ExpenseReactionInline]
    date_hierarchy = 'date'
    ordering = ['-date', '-created_at']

    fieldsets = (
        ('Expense', {
            'fields': (
                'account',
                'user',
                'description',
                'amount',
                'currency',
                'category',
                'date',
                'notes',
            )
        }),
        ('Couple', {
            'fields': (
                'expense_type',
                'is_shared_expense',
                'split_method',
                ('split_partner1_user', 'split_partner1_amount', 'split_partner1_percentage'),
                ('split_partner2_user', 'split_partner2_amount', 'split_partner2_percentage'),
            )
        }),
        ('Gift', {
            'fields': ('is_gift', 'gift_for', 'reveal_date', 'is_revealed', 'revealed_at', 'reveal_message'),
            'classes': ('collapse',),
        }),
        ('Settlement', {
            'fields': ('is_settled', 'settled_at', 'settled_by'),
            'classes': ('collapse',),
        }),
        ('Metadata', {
            'fields': ('is_deleted', 'deleted_at', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(description='Gift', ordering='is_gift')
    def gift_badge(self, obj):
        """Display gift state as colored badge."""
        if not obj.is_gift:
            return '-'
        if obj.is_revealed:
            label, bg, fg = 'Revealed', '#6B8E5E', 'white'
        else:
            label, bg, fg = 'Hidden', '#E5C49A', '#2C1810'
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, label
        )

    def get_queryset(self, request):
        """Optimize query with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('account', 'user', 'gift_for')
