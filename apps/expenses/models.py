from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone
from decimal import Decimal
import uuid


class CoupleExpenseType(models.TextChoices):
    SHARED = 'shared', 'Shared'
    PERSONAL = 'personal', 'Personal'


class SplitMethod(models.TextChoices):
    EQUAL = 'equal', 'Equal'
    PERCENTAGE = 'percentage', 'Percentage'
    AMOUNT = 'amount', 'Amount'


class ReactionType(models.TextChoices):
    LIKE = 'like', 'Like'
    LOVE = 'love', 'Love'
    CONCERN = 'concern', 'Concern'
    QUESTION = 'question', 'Question'
    SURPRISE = 'surprise', 'Surprise'


class ExpenseQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_deleted=False)

    def in_range(self, start_date, end_date):
        return self.filter(date__gte=start_date, date__lte=end_date)

    def pending_gift_reveals(self, now):
        """Concealed gifts whose reveal date has passed."""
        return self.active().filter(
            is_gift=True,
            is_revealed=False,
            reveal_date__lte=now,
        )


class Expense(models.Model):
    """
    Expense posted to an account.

    Couple accounts use the couple fields (expense type, split, gift,
    settlement markers); other account types leave them at their defaults.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    account = models.ForeignKey(
        'accounts.Account',
        on_delete=models.CASCADE,
        related_name='expenses'
    )
    # Creator and payer
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='expenses'
    )

    description = models.CharField(max_length=500)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    currency = models.CharField(max_length=3, default='USD')
    category = models.CharField(max_length=100, blank=True)
    date = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True)

    # Couple classification
    expense_type = models.CharField(
        max_length=20,
        choices=CoupleExpenseType.choices,
        default=CoupleExpenseType.SHARED
    )
    is_shared_expense = models.BooleanField(default=False)

    # Split details (filled once the split is computed)
    split_partner1_user = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    split_partner2_user = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    split_partner1_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    split_partner2_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    split_method = models.CharField(max_length=20, choices=SplitMethod.choices, blank=True)
    split_partner1_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    split_partner2_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)

    # Gift mode
    is_gift = models.BooleanField(default=False)
    gift_for = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='received_gifts'
    )
    reveal_date = models.DateTimeField(null=True, blank=True)
    is_revealed = models.BooleanField(default=False)
    revealed_at = models.DateTimeField(null=True, blank=True)
    reveal_message = models.CharField(max_length=500, blank=True)

    # Settlement markers
    is_settled = models.BooleanField(default=False)
    settled_at = models.DateTimeField(null=True, blank=True)
    settled_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    # Soft delete
    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ExpenseQuerySet.as_manager()

    class Meta:
        db_table = 'expenses'
        indexes = [
            models.Index(fields=['account', 'date'], name='expenses_account_date_idx'),
            models.Index(fields=['account', 'expense_type', 'date'], name='expenses_type_date_idx'),
            models.Index(fields=['is_gift', 'is_revealed', 'reveal_date'], name='expenses_gift_reveal_idx'),
            models.Index(fields=['account', 'is_settled'], name='expenses_settled_idx'),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.description} - {self.amount} {self.currency}"

    @property
    def has_split(self):
        return self.split_partner1_amount is not None

    def apply_split(self, split):
        """Copy a computed ``ExpenseSplit`` onto the couple split fields."""
        self.split_partner1_user_id = split.partner1_user_id
        self.split_partner2_user_id = split.partner2_user_id
        self.split_partner1_amount = split.partner1_amount
        self.split_partner2_amount = split.partner2_amount
        self.split_method = split.split_method
        self.split_partner1_percentage = split.partner1_percentage
        self.split_partner2_percentage = split.partner2_percentage

    def soft_delete(self):
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save(update_fields=['is_deleted', 'deleted_at', 'updated_at'])


class ExpenseComment(models.Model):
    """Comment left by a partner on a couple expense."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    expense = models.ForeignKey(Expense, on_delete=models.CASCADE, related_name='comments')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='expense_comments')
    text = models.TextField()
    is_edited = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'expense_comments'
        indexes = [
            models.Index(fields=['expense', 'created_at'], name='exp_comments_expense_idx'),
            models.Index(fields=['user', 'created_at'], name='exp_comments_user_idx'),
        ]
        ordering = ['created_at']

    def __str__(self):
        return f"{self.user.get_display_name()}: {self.text[:40]}"


class ExpenseReaction(models.Model):
    """Reaction on a couple expense, at most one per user."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    expense = models.ForeignKey(Expense, on_delete=models.CASCADE, related_name='reactions')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='expense_reactions')
    type = models.CharField(max_length=20, choices=ReactionType.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'expense_reactions'
        unique_together = [['expense', 'user']]
        ordering = ['created_at']

    def __str__(self):
        return f"{self.user.get_display_name()} {self.type}"
