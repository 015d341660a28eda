from rest_framework import serializers
from .models import User, Account, AccountMember, AccountType


class UserSerializer(serializers.ModelSerializer):
    """Basic user serializer for profile display."""

    display_name = serializers.SerializerMethodField()
    has_active_premium = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'first_name',
            'last_name',
            'display_name',
            'is_premium',
            'has_active_premium',
            'subscription_type',
            'premium_expires_at',
            'created_at',
            'last_login',
        ]
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class UserPublicSerializer(serializers.ModelSerializer):
    """Public user info (for displaying account members)."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class AccountMemberSerializer(serializers.ModelSerializer):
    user = UserPublicSerializer(read_only=True)

    class Meta:
        model = AccountMember
        fields = ['id', 'user', 'role', 'is_active', 'joined_at']
        read_only_fields = fields


class AccountSerializer(serializers.ModelSerializer):
    """Account with its owner and active members."""

    owner = UserPublicSerializer(read_only=True)
    members = serializers.SerializerMethodField()

    class Meta:
        model = Account
        fields = [
            'id',
            'name',
            'type',
            'status',
            'currency',
            'description',
            'owner',
            'members',
            'last_activity_at',
            'created_at',
        ]
        read_only_fields = fields

    def get_members(self, obj):
        members = obj.members.filter(is_active=True).select_related('user')
        return AccountMemberSerializer(members, many=True).data


class AccountFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for account listing.

    Query Parameters:
        type (str): Filter by account type
    """

    type = serializers.ChoiceField(choices=AccountType.choices, required=False)
