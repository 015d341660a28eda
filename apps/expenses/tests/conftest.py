import pytest
from apps.accounts.models import AccountType, User
from apps.accounts.services import add_member, create_account


@pytest.fixture
def payer(db):
    return User.objects.create_user(email='payer@example.com', password='TestPass123!')


@pytest.fixture
def partner(db):
    return User.objects.create_user(email='partner@example.com', password='TestPass123!')


@pytest.fixture
def account(payer, partner):
    """Couple account shared by payer and partner."""
    account = create_account(name='Shared', account_type=AccountType.COUPLE, owner=payer, currency='EUR')
    add_member(account_id=account.id, user=partner)
    return account
