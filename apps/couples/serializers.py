from decimal import Decimal

from rest_framework import serializers

from apps.accounts.models import User
from apps.expenses.models import CoupleExpenseType, Expense, ExpenseComment, ExpenseReaction, ReactionType
from .models import CoupleSettings, CoupleSettingsChange, FinancialModel
from .services import ContributionSettingsInput, FEATURE_NAMES
from .services.interactions import MAX_COMMENT_LENGTH
from .services.settings_management import NOTIFICATION_KEYS


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


# ============================================================
# Input serializers
# ============================================================

class ContributionSettingsInputSerializer(serializers.Serializer):
    """
    Validate contribution settings of both partners.

    Percentages are required unless they are derived from income.
    """

    partner1_user_id = serializers.UUIDField()
    partner2_user_id = serializers.UUIDField()
    partner1_contribution_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False, allow_null=True
    )
    partner2_contribution_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False, allow_null=True
    )
    partner1_monthly_income = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    partner2_monthly_income = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    auto_calculate_from_income = serializers.BooleanField(default=False)

    def validate(self, attrs):
        if attrs['partner1_user_id'] == attrs['partner2_user_id']:
            raise serializers.ValidationError({
                'partner2_user_id': 'Partners must be two different users'
            })

        if attrs.get('auto_calculate_from_income'):
            for field in ['partner1_monthly_income', 'partner2_monthly_income']:
                if attrs.get(field) is None:
                    raise serializers.ValidationError({
                        field: 'Income is required when calculating from income'
                    })
        else:
            for field in ['partner1_contribution_percentage', 'partner2_contribution_percentage']:
                if attrs.get(field) is None:
                    raise serializers.ValidationError({field: 'This field is required.'})

        return attrs


class CoupleSettingsUpdateSerializer(serializers.Serializer):
    """Partial update of couple settings. Omitted fields are left unchanged."""

    financial_model = serializers.ChoiceField(choices=FinancialModel.choices, required=False)
    default_expense_type = serializers.ChoiceField(choices=CoupleExpenseType.choices, required=False)
    contribution_settings = ContributionSettingsInputSerializer(required=False)
    allow_comments = serializers.BooleanField(required=False)
    allow_reactions = serializers.BooleanField(required=False)
    show_contribution_stats = serializers.BooleanField(required=False)
    enable_cross_reminders = serializers.BooleanField(required=False)
    gift_mode_enabled = serializers.BooleanField(required=False)
    shared_goals_enabled = serializers.BooleanField(required=False)
    notifications = serializers.DictField(child=serializers.BooleanField(), required=False)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_notifications(self, value):
        unknown = set(value) - set(NOTIFICATION_KEYS)
        if unknown:
            raise serializers.ValidationError(
                f"Unknown notification keys: {', '.join(sorted(unknown))}"
            )
        return value

    def to_kwargs(self) -> dict:
        data = dict(self.validated_data)
        contribution = data.pop('contribution_settings', None)
        if contribution is not None:
            data['contribution_settings'] = ContributionSettingsInput(**contribution)
        return data


class AcceptInvitationSerializer(serializers.Serializer):
    preferred_financial_model = serializers.ChoiceField(
        choices=FinancialModel.choices, required=False
    )
    initial_contribution_settings = ContributionSettingsInputSerializer(required=False)


class DateRangeSerializer(serializers.Serializer):
    """
    Validate query parameters for a date range.

    Query Parameters:
        start_date (date): First day of the range
        end_date (date): Last day of the range
    """

    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start_date = attrs.get('start_date')
        end_date = attrs.get('end_date')

        if start_date and end_date and start_date > end_date:
            raise serializers.ValidationError({
                'end_date': 'End date must be after start date'
            })

        return attrs


class FeatureQuerySerializer(serializers.Serializer):
    feature = serializers.ChoiceField(choices=FEATURE_NAMES, required=False)


class GiftCreateSerializer(serializers.Serializer):
    """Validate input for creating a gift expense."""

    gift_for = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    description = serializers.CharField(max_length=255)
    reveal_date = serializers.DateTimeField()
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    date = serializers.DateField(required=False)
    reveal_message = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class GiftUpdateSerializer(serializers.Serializer):
    """Partial update of a hidden gift."""

    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'), required=False)
    description = serializers.CharField(max_length=255, required=False)
    reveal_date = serializers.DateTimeField(required=False)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    reveal_message = serializers.CharField(max_length=500, required=False, allow_blank=True)


class GiftRevealSerializer(serializers.Serializer):
    reveal_now = serializers.BooleanField(default=False)
    message = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class CommentCreateSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=MAX_COMMENT_LENGTH, trim_whitespace=True)


class ReactionCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=ReactionType.choices)


class ParseContextSerializer(serializers.Serializer):
    """
    Validate input for context parsing.

    Either a single ``description`` or a batch of ``items`` is accepted.
    """

    description = serializers.CharField(max_length=500, required=False)
    items = serializers.ListField(
        child=serializers.DictField(), required=False, max_length=100
    )

    def validate_items(self, value):
        for item in value:
            if not isinstance(item.get('description'), str):
                raise serializers.ValidationError('Every item needs a description')
        return value

    def validate(self, attrs):
        if 'description' not in attrs and 'items' not in attrs:
            raise serializers.ValidationError('Provide a description or a list of items')
        return attrs


class SuggestContextSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=500)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)


# ============================================================
# Output serializers
# ============================================================

class CoupleSettingsSerializer(serializers.ModelSerializer):
    """Full couple settings, premium flags included."""

    partner1_user = UserMinimalSerializer(read_only=True)
    partner2_user = UserMinimalSerializer(read_only=True)
    invitation_accepted_by = UserMinimalSerializer(read_only=True)
    premium_features = serializers.SerializerMethodField()

    class Meta:
        model = CoupleSettings
        fields = [
            'id',
            'account',
            'financial_model',
            'default_expense_type',
            'partner1_user',
            'partner2_user',
            'partner1_contribution_percentage',
            'partner2_contribution_percentage',
            'partner1_monthly_income',
            'partner2_monthly_income',
            'auto_calculate_from_income',
            'contribution_updated_at',
            'premium_tier',
            'premium_features',
            'premium_updated_at',
            'invitation_accepted_by',
            'invitation_accepted_at',
            'both_partners_accepted',
            'allow_comments',
            'allow_reactions',
            'show_contribution_stats',
            'enable_cross_reminders',
            'gift_mode_enabled',
            'shared_goals_enabled',
            'notifications',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_premium_features(self, obj):
        return {feature: getattr(obj, f'has_{feature}') for feature in FEATURE_NAMES}


class CoupleSettingsChangeSerializer(serializers.ModelSerializer):
    changed_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = CoupleSettingsChange
        fields = ['id', 'setting', 'old_value', 'new_value', 'changed_by', 'changed_at', 'reason']
        read_only_fields = fields


class GiftSerializer(serializers.ModelSerializer):
    """Gift expense as seen by its creator, or by the recipient once revealed."""

    user = UserMinimalSerializer(read_only=True)
    gift_for = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id',
            'account',
            'user',
            'gift_for',
            'description',
            'amount',
            'currency',
            'category',
            'date',
            'expense_type',
            'reveal_date',
            'reveal_message',
            'is_revealed',
            'revealed_at',
            'created_at',
        ]
        read_only_fields = fields


class ExpenseCommentSerializer(serializers.ModelSerializer):
    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = ExpenseComment
        fields = ['id', 'expense', 'user', 'text', 'is_edited', 'created_at']
        read_only_fields = fields


class ExpenseReactionSerializer(serializers.ModelSerializer):
    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = ExpenseReaction
        fields = ['id', 'expense', 'user', 'type', 'created_at']
        read_only_fields = fields


class CoupleStatsSerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    financial_model = serializers.CharField()
    total_shared = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_self_personal = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_partner_personal = serializers.DecimalField(max_digits=14, decimal_places=2)
    self_contribution_percentage = serializers.DecimalField(max_digits=6, decimal_places=2)
    partner_contribution_percentage = serializers.DecimalField(max_digits=6, decimal_places=2)
    self_total_contribution = serializers.DecimalField(max_digits=14, decimal_places=2)
    partner_total_contribution = serializers.DecimalField(max_digits=14, decimal_places=2)
    outstanding_balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    who_owes = serializers.CharField()
    recommended_transfer = serializers.DecimalField(max_digits=14, decimal_places=2, allow_null=True)
    hidden_gifts_count = serializers.IntegerField(allow_null=True)


class ContributionBalanceSerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    total_shared = serializers.DecimalField(max_digits=14, decimal_places=2)
    self_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    partner_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    self_expected = serializers.DecimalField(max_digits=14, decimal_places=2)
    partner_expected = serializers.DecimalField(max_digits=14, decimal_places=2)
    current_balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    who_owes = serializers.CharField()
    owing_user_id = serializers.UUIDField(allow_null=True)
    recommended_transfer = serializers.DecimalField(max_digits=14, decimal_places=2, allow_null=True)
    unsettled_count = serializers.IntegerField()
    settled_count = serializers.IntegerField()
    last_settled_at = serializers.DateTimeField(allow_null=True)


class SettleResultSerializer(serializers.Serializer):
    settled_count = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    settled_at = serializers.DateTimeField()


class FeatureUsageResultSerializer(serializers.Serializer):
    allowed = serializers.BooleanField()
    remaining = serializers.IntegerField(allow_null=True)
    limit = serializers.IntegerField(allow_null=True)
    message = serializers.CharField(allow_blank=True)


class ExpenseContextSerializer(serializers.Serializer):
    id = serializers.CharField(allow_null=True, required=False)
    context = serializers.CharField(allow_null=True)
    clean_description = serializers.CharField(allow_blank=True)
    confidence = serializers.FloatField()
    matched_keyword = serializers.CharField(allow_null=True)
    suggested_account_id = serializers.CharField(allow_null=True)
    account_type = serializers.CharField(allow_null=True)
    expense_type = serializers.CharField(allow_null=True)


class ContextSuggestionSerializer(serializers.Serializer):
    context = serializers.CharField()
    confidence = serializers.FloatField()
    reason = serializers.CharField()
