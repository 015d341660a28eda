"""
Service tests for the gift lifecycle.

Tests cover:
- Creation rules (recipient, reveal date, gift mode)
- Manual reveal with and without conversion
- Scheduled sweep, including idempotence and per-item failure isolation
- Update/delete restricted to hidden gifts of the creator
"""

import logging
import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from django.utils import timezone

from apps.couples.services import (
    create_gift,
    delete_gift,
    list_my_gifts,
    list_received_gifts,
    reveal_gift,
    sweep_gift_reveals,
    update_gift,
)
from apps.couples.services.exceptions import (
    ForbiddenError,
    GiftAlreadyRevealedError,
    GiftModeDisabledError,
    GiftNotFoundError,
    InvalidAmountError,
    InvalidGiftRecipientError,
    InvalidStateError,
    NotAccountMemberError,
    NotGiftCreatorError,
    RevealDateNotInFutureError,
)
from apps.expenses.models import CoupleExpenseType, Expense, SplitMethod


def make_due(gift, minutes=5):
    """Move the reveal date into the past without going through the service."""
    Expense.objects.filter(id=gift.id).update(reveal_date=timezone.now() - timedelta(minutes=minutes))


@pytest.mark.django_db
class TestCreateGift:

    def test_create_gift(self, gift, partner_one, partner_two):
        assert gift.is_gift is True
        assert gift.is_revealed is False
        assert gift.user == partner_one
        assert gift.gift_for_id == partner_two.id
        assert gift.expense_type == CoupleExpenseType.PERSONAL
        assert gift.is_shared_expense is False
        assert gift.reveal_message == 'Happy birthday!'

    def test_gift_for_self_is_rejected(self, couple_account, couple_settings, partner_one, future_reveal):
        with pytest.raises(InvalidGiftRecipientError):
            create_gift(
                account_id=couple_account.id,
                user=partner_one,
                gift_for_id=partner_one.id,
                amount=Decimal('10.00'),
                description='For me',
                reveal_date=future_reveal,
            )

    def test_gift_for_non_partner_is_rejected(
        self, couple_account, couple_settings, partner_one, outsider, future_reveal
    ):
        with pytest.raises(InvalidGiftRecipientError):
            create_gift(
                account_id=couple_account.id,
                user=partner_one,
                gift_for_id=outsider.id,
                amount=Decimal('10.00'),
                description='Wrong person',
                reveal_date=future_reveal,
            )

    def test_past_reveal_date_is_invalid_state(self, couple_account, couple_settings, partner_one, partner_two):
        with pytest.raises(RevealDateNotInFutureError) as exc_info:
            create_gift(
                account_id=couple_account.id,
                user=partner_one,
                gift_for_id=partner_two.id,
                amount=Decimal('10.00'),
                description='Too late',
                reveal_date=timezone.now() - timedelta(hours=1),
            )
        assert isinstance(exc_info.value, InvalidStateError)

    def test_non_positive_amount(self, couple_account, couple_settings, partner_one, partner_two, future_reveal):
        with pytest.raises(InvalidAmountError):
            create_gift(
                account_id=couple_account.id,
                user=partner_one,
                gift_for_id=partner_two.id,
                amount=Decimal('0.00'),
                description='Nothing',
                reveal_date=future_reveal,
            )

    def test_gift_mode_disabled(self, couple_account, couple_settings, partner_one, partner_two, future_reveal):
        couple_settings.gift_mode_enabled = False
        couple_settings.save()

        with pytest.raises(GiftModeDisabledError) as exc_info:
            create_gift(
                account_id=couple_account.id,
                user=partner_one,
                gift_for_id=partner_two.id,
                amount=Decimal('10.00'),
                description='Surprise',
                reveal_date=future_reveal,
            )
        assert isinstance(exc_info.value, ForbiddenError)

    def test_non_member_cannot_create(self, couple_account, couple_settings, outsider, partner_two, future_reveal):
        with pytest.raises(NotAccountMemberError):
            create_gift(
                account_id=couple_account.id,
                user=outsider,
                gift_for_id=partner_two.id,
                amount=Decimal('10.00'),
                description='Intruder',
                reveal_date=future_reveal,
            )


@pytest.mark.django_db
class TestRevealGift:

    def test_manual_reveal_keeps_gift_personal(self, gift, partner_one):
        revealed = reveal_gift(gift_id=gift.id, user=partner_one)

        assert revealed.is_revealed is True
        assert revealed.revealed_at is not None
        assert revealed.expense_type == CoupleExpenseType.PERSONAL
        assert revealed.has_split is False

    def test_reveal_now_converts_to_shared(self, gift, partner_one, partner_two):
        revealed = reveal_gift(gift_id=gift.id, user=partner_one, reveal_now=True, message='Surprise!')

        revealed.refresh_from_db()
        assert revealed.expense_type == CoupleExpenseType.SHARED
        assert revealed.is_shared_expense is True
        assert revealed.reveal_message == 'Surprise!'
        assert revealed.split_method == SplitMethod.EQUAL
        assert revealed.split_partner1_user_id == partner_one.id
        assert revealed.split_partner2_user_id == partner_two.id
        assert revealed.split_partner1_amount == Decimal('22.50')
        assert revealed.split_partner2_amount == Decimal('22.50')

    def test_reveal_now_uses_contribution_percentages(
        self, proportional_settings, couple_account, partner_one, partner_two, future_reveal
    ):
        gift = create_gift(
            account_id=couple_account.id,
            user=partner_two,
            gift_for_id=partner_one.id,
            amount=Decimal('50.00'),
            description='Watch',
            reveal_date=future_reveal,
        )

        revealed = reveal_gift(gift_id=gift.id, user=partner_two, reveal_now=True)

        assert revealed.split_method == SplitMethod.PERCENTAGE
        assert revealed.split_partner1_user_id == partner_one.id
        assert revealed.split_partner1_amount == Decimal('30.00')
        assert revealed.split_partner2_amount == Decimal('20.00')

    def test_only_creator_can_reveal(self, gift, partner_two):
        with pytest.raises(NotGiftCreatorError):
            reveal_gift(gift_id=gift.id, user=partner_two)

    def test_reveal_twice_fails(self, gift, partner_one):
        reveal_gift(gift_id=gift.id, user=partner_one)

        with pytest.raises(GiftAlreadyRevealedError):
            reveal_gift(gift_id=gift.id, user=partner_one)

    def test_unknown_gift(self, couple_settings, partner_one):
        with pytest.raises(GiftNotFoundError):
            reveal_gift(gift_id=uuid4(), user=partner_one)


@pytest.mark.django_db
class TestSweepGiftReveals:

    def test_reveals_and_converts_due_gifts(self, gift):
        make_due(gift)

        summary = sweep_gift_reveals()

        gift.refresh_from_db()
        assert summary.processed == 1
        assert summary.succeeded == 1
        assert summary.errors == 0
        assert summary.alert is False
        assert gift.is_revealed is True
        assert gift.expense_type == CoupleExpenseType.SHARED
        assert gift.split_partner1_amount + gift.split_partner2_amount == gift.amount

    def test_future_gifts_are_left_alone(self, gift):
        summary = sweep_gift_reveals()

        gift.refresh_from_db()
        assert summary.processed == 0
        assert gift.is_revealed is False

    def test_second_run_does_not_touch_revealed_gifts(self, gift):
        make_due(gift)
        sweep_gift_reveals()
        gift.refresh_from_db()
        first_revealed_at = gift.revealed_at

        summary = sweep_gift_reveals(now=timezone.now() + timedelta(hours=1))

        gift.refresh_from_db()
        assert summary.processed == 0
        assert gift.revealed_at == first_revealed_at

    def test_deleted_gifts_are_skipped(self, gift, partner_one):
        delete_gift(gift_id=gift.id, user=partner_one)
        make_due(gift)

        assert sweep_gift_reveals().processed == 0

    def test_failure_is_isolated_and_raises_alert(
        self, couple_account, couple_settings, partner_one, partner_two, future_reveal, caplog
    ):
        gifts = [
            create_gift(
                account_id=couple_account.id,
                user=partner_one,
                gift_for_id=partner_two.id,
                amount=Decimal('10.00'),
                description=f'Gift {i}',
                reveal_date=future_reveal,
            )
            for i in range(3)
        ]
        for i, item in enumerate(gifts):
            make_due(item, minutes=10 - i)
        failing_id = gifts[0].id

        from apps.couples.services import gifts as gift_service
        real_reveal = gift_service._reveal

        def flaky_reveal(gift, **kwargs):
            if gift.id == failing_id:
                raise RuntimeError('boom')
            return real_reveal(gift, **kwargs)

        with patch.object(gift_service, '_reveal', side_effect=flaky_reveal):
            with caplog.at_level(logging.INFO, logger='apps.couples.services.gifts'):
                summary = sweep_gift_reveals()

        assert summary.processed == 3
        assert summary.succeeded == 2
        assert summary.errors == 1
        assert summary.failed_ids == [failing_id]
        assert summary.alert is True
        assert str(failing_id) in caplog.text
        assert Expense.objects.filter(id__in=[g.id for g in gifts[1:]], is_revealed=True).count() == 2
        assert Expense.objects.get(id=failing_id).is_revealed is False


@pytest.mark.django_db
class TestUpdateAndDeleteGift:

    def test_update_hidden_gift(self, gift, partner_one):
        new_date = timezone.now() + timedelta(days=30)

        updated = update_gift(
            gift_id=gift.id,
            user=partner_one,
            description='Better tickets',
            amount=Decimal('60.00'),
            reveal_date=new_date,
        )

        updated.refresh_from_db()
        assert updated.description == 'Better tickets'
        assert updated.amount == Decimal('60.00')
        assert updated.reveal_date == new_date

    def test_update_requires_future_date(self, gift, partner_one):
        with pytest.raises(RevealDateNotInFutureError):
            update_gift(gift_id=gift.id, user=partner_one, reveal_date=timezone.now() - timedelta(days=1))

    def test_update_by_recipient_is_forbidden(self, gift, partner_two):
        with pytest.raises(NotGiftCreatorError):
            update_gift(gift_id=gift.id, user=partner_two, description='Peek')

    def test_update_revealed_gift_fails(self, gift, partner_one):
        reveal_gift(gift_id=gift.id, user=partner_one)

        with pytest.raises(GiftAlreadyRevealedError):
            update_gift(gift_id=gift.id, user=partner_one, description='Too late')

    def test_delete_hidden_gift(self, gift, partner_one):
        delete_gift(gift_id=gift.id, user=partner_one)

        gift.refresh_from_db()
        assert gift.is_deleted is True
        assert gift.deleted_at is not None

    def test_delete_revealed_gift_fails(self, gift, partner_one):
        reveal_gift(gift_id=gift.id, user=partner_one)

        with pytest.raises(GiftAlreadyRevealedError):
            delete_gift(gift_id=gift.id, user=partner_one)

    def test_deleted_gift_is_not_found(self, gift, partner_one):
        delete_gift(gift_id=gift.id, user=partner_one)

        with pytest.raises(GiftNotFoundError):
            delete_gift(gift_id=gift.id, user=partner_one)


@pytest.mark.django_db
class TestListGifts:

    def test_list_my_gifts(self, gift, couple_account, partner_one, partner_two):
        assert list(list_my_gifts(account_id=couple_account.id, user=partner_one)) == [gift]
        assert list(list_my_gifts(account_id=couple_account.id, user=partner_two)) == []

    def test_recipient_only_sees_count_of_hidden_gifts(self, gift, couple_account, partner_two):
        received = list_received_gifts(account_id=couple_account.id, user=partner_two)

        assert list(received.revealed) == []
        assert received.hidden_count == 1

    def test_recipient_sees_revealed_gift(self, gift, couple_account, partner_one, partner_two):
        reveal_gift(gift_id=gift.id, user=partner_one)

        received = list_received_gifts(account_id=couple_account.id, user=partner_two)

        assert [g.id for g in received.revealed] == [gift.id]
        assert received.hidden_count == 0
