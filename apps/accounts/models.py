from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone
import uuid


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """Custom user model with email authentication and subscription state."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=255, db_index=True)
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)

    # Permissions
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    # Subscription (mirrored from the billing provider)
    is_premium = models.BooleanField(default=False)
    subscription_type = models.CharField(max_length=50, blank=True)
    premium_expires_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    last_login = models.DateTimeField(null=True, blank=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['email'], name='users_email_idx'),
            models.Index(fields=['created_at'], name='users_created_idx'),
        ]

    def __str__(self):
        return self.email

    def get_display_name(self):
        """Return full name or email prefix."""
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email.split('@')[0]

    @property
    def has_active_premium(self):
        """Premium flag that also honours the expiry date."""
        if not self.is_premium:
            return False
        if self.premium_expires_at and self.premium_expires_at <= timezone.now():
            return False
        return True


class AccountType(models.TextChoices):
    PERSONAL = 'personal', 'Personal'
    COUPLE = 'couple', 'Couple'
    FAMILY = 'family', 'Family'
    BUSINESS = 'business', 'Business'


class AccountStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    SUSPENDED = 'suspended', 'Suspended'
    CLOSED = 'closed', 'Closed'


class AccountRole(models.TextChoices):
    OWNER = 'owner', 'Owner'
    ADMIN = 'admin', 'Admin'
    MEMBER = 'member', 'Member'
    VIEWER = 'viewer', 'Viewer'


class Account(models.Model):
    """Financial account shared by its owner and members."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=AccountType.choices)
    status = models.CharField(
        max_length=20,
        choices=AccountStatus.choices,
        default=AccountStatus.ACTIVE
    )
    owner = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='owned_accounts'
    )
    currency = models.CharField(max_length=3, default='USD')
    description = models.TextField(blank=True)

    # Soft delete
    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)

    last_activity_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'accounts'
        indexes = [
            models.Index(fields=['owner', 'type'], name='accounts_owner_type_idx'),
            models.Index(fields=['type', 'status', 'is_deleted'], name='accounts_type_status_idx'),
            models.Index(fields=['last_activity_at'], name='accounts_activity_idx'),
        ]
        ordering = ['-last_activity_at']

    def __str__(self):
        return f"{self.name} ({self.type})"

    def has_member(self, user):
        """Owner or active member."""
        if self.owner_id == user.id:
            return True
        return self.members.filter(user=user, is_active=True).exists()

    def get_partner_ids(self):
        """
        Owner first, then active members in join order, without duplicates.

        Couple logic relies on this list having exactly two entries.
        """
        partner_ids = [self.owner_id]
        for member in self.members.filter(is_active=True).order_by('joined_at'):
            if member.user_id not in partner_ids:
                partner_ids.append(member.user_id)
        return partner_ids


class AccountMember(models.Model):
    """User membership in an account."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    account = models.ForeignKey(Account, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='account_memberships'
    )
    role = models.CharField(max_length=20, choices=AccountRole.choices, default=AccountRole.MEMBER)
    is_active = models.BooleanField(default=True)
    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'account_members'
        unique_together = [['account', 'user']]
        indexes = [
            models.Index(fields=['account', 'is_active'], name='acct_members_account_idx'),
            models.Index(fields=['user', 'is_active'], name='acct_members_user_idx'),
        ]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.user.get_display_name()} in {self.account.name} ({self.role})"
