import pytest
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import AccountType, User
from apps.accounts.services import add_member, create_account
from apps.couples.models import CoupleSettings, FinancialModel
from apps.couples.services import create_gift
from apps.expenses.models import CoupleExpenseType
from apps.expenses.services import create_expense


def authenticate(client, user):
    """Attach a JWT access token for ``user`` to the client."""
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def partner_one(db):
    """Create and return the couple account owner."""
    return User.objects.create_user(
        email='ana@example.com',
        password='TestPass123!',
        first_name='Ana',
    )


@pytest.fixture
def partner_two(db):
    """Create and return the second partner."""
    return User.objects.create_user(
        email='luis@example.com',
        password='TestPass123!',
        first_name='Luis',
    )


@pytest.fixture
def outsider(db):
    """Create and return a user outside the couple."""
    return User.objects.create_user(
        email='outsider@example.com',
        password='TestPass123!',
        first_name='Olga',
    )


@pytest.fixture
def couple_account(partner_one, partner_two):
    """Couple account owned by partner_one with partner_two as member."""
    account = create_account(
        name='Ana & Luis',
        account_type=AccountType.COUPLE,
        owner=partner_one,
    )
    add_member(account_id=account.id, user=partner_two)
    return account


@pytest.fixture
def couple_settings(couple_account):
    """Default (50/50) settings for the couple account."""
    return CoupleSettings.objects.create(account=couple_account)


@pytest.fixture
def proportional_settings(couple_settings, partner_one, partner_two):
    """Settings switched to a 60/40 proportional split."""
    couple_settings.financial_model = FinancialModel.PROPORTIONAL_INCOME
    couple_settings.partner1_user = partner_one
    couple_settings.partner2_user = partner_two
    couple_settings.partner1_contribution_percentage = Decimal('60.00')
    couple_settings.partner2_contribution_percentage = Decimal('40.00')
    couple_settings.save()
    return couple_settings


@pytest.fixture
def solo_couple_account(partner_one):
    """Couple account whose partner never joined."""
    account = create_account(
        name='Waiting for partner',
        account_type=AccountType.COUPLE,
        owner=partner_one,
    )
    CoupleSettings.objects.create(account=account)
    return account


@pytest.fixture
def personal_account(partner_one):
    return create_account(
        name='My wallet',
        account_type=AccountType.PERSONAL,
        owner=partner_one,
    )


@pytest.fixture
def shared_expense(couple_account, couple_settings, partner_one):
    """A shared expense paid by partner_one."""
    return create_expense(
        account=couple_account,
        user=partner_one,
        amount=Decimal('80.00'),
        description='Groceries',
        expense_type=CoupleExpenseType.SHARED,
    )


@pytest.fixture
def future_reveal():
    return timezone.now() + timedelta(days=7)


@pytest.fixture
def gift(couple_account, couple_settings, partner_one, partner_two, future_reveal):
    """Hidden gift from partner_one to partner_two."""
    return create_gift(
        account_id=couple_account.id,
        user=partner_one,
        gift_for_id=partner_two.id,
        amount=Decimal('45.00'),
        description='Concert tickets',
        reveal_date=future_reveal,
        reveal_message='Happy birthday!',
    )


@pytest.fixture
def partner_one_client(api_client, partner_one):
    """Return API client authenticated as partner_one."""
    return authenticate(api_client, partner_one)


@pytest.fixture
def partner_two_client(partner_two):
    """Return API client authenticated as partner_two."""
    return authenticate(APIClient(), partner_two)


@pytest.fixture
def outsider_client(outsider):
    """Return API client authenticated as a non-member."""
    return authenticate(APIClient(), outsider)
