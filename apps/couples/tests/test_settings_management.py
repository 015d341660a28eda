"""
Service tests for couple settings: initialisation, updates, audit history
and invitation acceptance.
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from apps.couples.models import CoupleSettings, CoupleSettingsChange, FinancialModel, PremiumTier
from apps.couples.services import (
    ContributionSettingsInput,
    accept_couple_invitation,
    get_couple_settings,
    get_settings_history,
    initialize_couple_settings,
    update_couple_settings,
)
from apps.couples.services.exceptions import (
    ContributionSettingsMissingError,
    CoupleAccountNotFoundError,
    CoupleSettingsExistError,
    CoupleSettingsNotFoundError,
    InvalidContributionSettingsError,
    InvalidSettingsError,
    NotAccountMemberError,
)
from apps.expenses.models import CoupleExpenseType


def contribution(partner_one, partner_two, p1='60.00', p2='40.00', **kwargs):
    return ContributionSettingsInput(
        partner1_user_id=partner_one.id,
        partner2_user_id=partner_two.id,
        partner1_contribution_percentage=Decimal(p1) if p1 is not None else None,
        partner2_contribution_percentage=Decimal(p2) if p2 is not None else None,
        **kwargs
    )


@pytest.mark.django_db
class TestInitializeSettings:

    def test_creates_defaults(self, couple_account):
        couple_settings = initialize_couple_settings(account_id=couple_account.id)

        assert couple_settings.financial_model == FinancialModel.FIFTY_FIFTY
        assert couple_settings.default_expense_type == CoupleExpenseType.SHARED
        assert couple_settings.premium_tier == PremiumTier.BASIC
        assert couple_settings.gift_mode_enabled is True
        assert couple_settings.notifications['gift_revealed'] is True
        assert not couple_settings.has_contribution_settings

    def test_duplicate_initialisation_fails(self, couple_account, couple_settings):
        with pytest.raises(CoupleSettingsExistError):
            initialize_couple_settings(account_id=couple_account.id)

    def test_rejects_non_couple_account(self, personal_account):
        with pytest.raises(CoupleAccountNotFoundError):
            initialize_couple_settings(account_id=personal_account.id)


@pytest.mark.django_db
class TestGetSettings:

    def test_member_can_read(self, couple_account, couple_settings, partner_two):
        assert get_couple_settings(account_id=couple_account.id, user=partner_two) == couple_settings

    def test_outsider_is_refused(self, couple_account, couple_settings, outsider):
        with pytest.raises(NotAccountMemberError):
            get_couple_settings(account_id=couple_account.id, user=outsider)

    def test_missing_settings(self, couple_account, partner_one):
        with pytest.raises(CoupleSettingsNotFoundError):
            get_couple_settings(account_id=couple_account.id, user=partner_one)


@pytest.mark.django_db
class TestUpdateSettings:

    def test_updates_toggles_and_audits_changes(self, couple_account, couple_settings, partner_one):
        update_couple_settings(
            account_id=couple_account.id,
            user=partner_one,
            allow_comments=False,
            gift_mode_enabled=False,
            show_contribution_stats=False,
            reason='Quieter account',
        )

        couple_settings.refresh_from_db()
        assert couple_settings.allow_comments is False
        assert couple_settings.gift_mode_enabled is False
        assert couple_settings.show_contribution_stats is False

        entries = CoupleSettingsChange.objects.filter(settings=couple_settings)
        assert {entry.setting for entry in entries} == {'allow_comments', 'gift_mode_enabled'}
        entry = entries.get(setting='allow_comments')
        assert entry.old_value is True
        assert entry.new_value is False
        assert entry.changed_by == partner_one
        assert entry.reason == 'Quieter account'

    def test_unchanged_values_are_not_audited(self, couple_account, couple_settings, partner_one):
        update_couple_settings(
            account_id=couple_account.id,
            user=partner_one,
            financial_model=FinancialModel.FIFTY_FIFTY,
        )

        assert not CoupleSettingsChange.objects.exists()

    def test_switch_to_mixed(self, couple_account, couple_settings, partner_two):
        update_couple_settings(
            account_id=couple_account.id,
            user=partner_two,
            financial_model=FinancialModel.MIXED,
        )

        entry = CoupleSettingsChange.objects.get(setting='financial_model')
        assert entry.old_value == FinancialModel.FIFTY_FIFTY
        assert entry.new_value == FinancialModel.MIXED

    def test_proportional_requires_contribution_settings(self, couple_account, couple_settings, partner_one):
        with pytest.raises(ContributionSettingsMissingError):
            update_couple_settings(
                account_id=couple_account.id,
                user=partner_one,
                financial_model=FinancialModel.PROPORTIONAL_INCOME,
            )

        couple_settings.refresh_from_db()
        assert couple_settings.financial_model == FinancialModel.FIFTY_FIFTY

    def test_proportional_with_contribution_settings(
        self, couple_account, couple_settings, partner_one, partner_two
    ):
        update_couple_settings(
            account_id=couple_account.id,
            user=partner_one,
            financial_model=FinancialModel.PROPORTIONAL_INCOME,
            contribution_settings=contribution(partner_one, partner_two),
        )

        couple_settings.refresh_from_db()
        assert couple_settings.financial_model == FinancialModel.PROPORTIONAL_INCOME
        assert couple_settings.percentage_for(partner_one.id) == Decimal('60.00')
        assert couple_settings.percentage_for(partner_two.id) == Decimal('40.00')
        assert couple_settings.contribution_updated_by == partner_one
        assert couple_settings.contribution_updated_at is not None

        entry = CoupleSettingsChange.objects.get(setting='contribution_settings')
        assert entry.old_value is None
        assert entry.new_value['partner1_contribution_percentage'] == '60.00'

    def test_stored_contribution_settings_allow_switch(
        self, couple_account, couple_settings, partner_one, partner_two
    ):
        update_couple_settings(
            account_id=couple_account.id,
            user=partner_one,
            contribution_settings=contribution(partner_one, partner_two, '70.00', '30.00'),
        )

        update_couple_settings(
            account_id=couple_account.id,
            user=partner_two,
            financial_model=FinancialModel.PROPORTIONAL_INCOME,
        )

        couple_settings.refresh_from_db()
        assert couple_settings.financial_model == FinancialModel.PROPORTIONAL_INCOME

    @pytest.mark.parametrize('p1,p2', [('60.00', '30.00'), ('50.00', '50.02')])
    def test_percentages_must_sum_to_hundred(self, couple_account, couple_settings, partner_one, partner_two, p1, p2):
        with pytest.raises(InvalidContributionSettingsError):
            update_couple_settings(
                account_id=couple_account.id,
                user=partner_one,
                financial_model=FinancialModel.PROPORTIONAL_INCOME,
                contribution_settings=contribution(partner_one, partner_two, p1, p2),
            )

        assert not CoupleSettingsChange.objects.exists()

    def test_sum_within_tolerance_is_accepted(self, couple_account, couple_settings, partner_one, partner_two):
        update_couple_settings(
            account_id=couple_account.id,
            user=partner_one,
            financial_model=FinancialModel.PROPORTIONAL_INCOME,
            contribution_settings=contribution(partner_one, partner_two, '66.67', '33.34'),
        )

        couple_settings.refresh_from_db()
        assert couple_settings.financial_model == FinancialModel.PROPORTIONAL_INCOME

    def test_percentages_from_income(self, couple_account, couple_settings, partner_one, partner_two):
        update_couple_settings(
            account_id=couple_account.id,
            user=partner_one,
            financial_model=FinancialModel.PROPORTIONAL_INCOME,
            contribution_settings=contribution(
                partner_one,
                partner_two,
                p1=None,
                p2=None,
                partner1_monthly_income=Decimal('3000.00'),
                partner2_monthly_income=Decimal('2000.00'),
                auto_calculate_from_income=True,
            ),
        )

        couple_settings.refresh_from_db()
        assert couple_settings.partner1_contribution_percentage == Decimal('60.00')
        assert couple_settings.partner2_contribution_percentage == Decimal('40.00')
        assert couple_settings.auto_calculate_from_income is True

    def test_contribution_settings_must_name_the_partners(
        self, couple_account, couple_settings, partner_one, outsider
    ):
        with pytest.raises(InvalidSettingsError):
            update_couple_settings(
                account_id=couple_account.id,
                user=partner_one,
                contribution_settings=contribution(partner_one, outsider),
            )

    def test_same_partner_twice_is_invalid(self, couple_account, couple_settings, partner_one):
        with pytest.raises(InvalidSettingsError):
            update_couple_settings(
                account_id=couple_account.id,
                user=partner_one,
                contribution_settings=contribution(partner_one, partner_one),
            )

    def test_unknown_financial_model(self, couple_account, couple_settings, partner_one):
        with pytest.raises(InvalidSettingsError):
            update_couple_settings(
                account_id=couple_account.id,
                user=partner_one,
                financial_model='winner_takes_all',
            )

    def test_notifications_are_merged(self, couple_account, couple_settings, partner_one):
        update_couple_settings(
            account_id=couple_account.id,
            user=partner_one,
            notifications={'reminders': False},
        )

        couple_settings.refresh_from_db()
        assert couple_settings.notifications['reminders'] is False
        assert couple_settings.notifications['expense_added'] is True

    def test_unknown_notification_key(self, couple_account, couple_settings, partner_one):
        with pytest.raises(InvalidSettingsError):
            update_couple_settings(
                account_id=couple_account.id,
                user=partner_one,
                notifications={'carrier_pigeon': True},
            )

    def test_outsider_cannot_update(self, couple_account, couple_settings, outsider):
        with pytest.raises(NotAccountMemberError):
            update_couple_settings(
                account_id=couple_account.id,
                user=outsider,
                allow_comments=False,
            )


@pytest.mark.django_db
class TestAcceptInvitation:

    def test_first_acceptance_records_acceptor(self, couple_account, couple_settings, partner_two):
        accepted = accept_couple_invitation(account_id=couple_account.id, user=partner_two)

        assert accepted.invitation_accepted_by == partner_two
        assert accepted.invitation_accepted_at is not None
        assert accepted.both_partners_accepted is False

    def test_second_acceptance_recomputes_premium(
        self, couple_account, couple_settings, partner_one, partner_two
    ):
        partner_one.is_premium = True
        partner_one.premium_expires_at = timezone.now() + timedelta(days=30)
        partner_one.save()

        accept_couple_invitation(account_id=couple_account.id, user=partner_two)
        accepted = accept_couple_invitation(account_id=couple_account.id, user=partner_one)

        accepted.refresh_from_db()
        assert accepted.both_partners_accepted is True
        assert accepted.invitation_accepted_by == partner_two
        assert accepted.premium_tier == PremiumTier.ONE_PREMIUM
        assert accepted.has_unlimited_comments is True

    def test_repeat_acceptance_by_same_partner(self, couple_account, couple_settings, partner_two):
        accept_couple_invitation(account_id=couple_account.id, user=partner_two)
        accepted = accept_couple_invitation(account_id=couple_account.id, user=partner_two)

        assert accepted.both_partners_accepted is False

    def test_creates_missing_settings(self, couple_account, partner_two):
        accept_couple_invitation(account_id=couple_account.id, user=partner_two)

        assert CoupleSettings.objects.filter(account=couple_account).count() == 1

    def test_initial_preferences_are_validated_and_audited(
        self, couple_account, couple_settings, partner_one, partner_two
    ):
        accept_couple_invitation(
            account_id=couple_account.id,
            user=partner_two,
            preferred_financial_model=FinancialModel.PROPORTIONAL_INCOME,
            initial_contribution_settings=contribution(partner_one, partner_two, '55.00', '45.00'),
        )

        couple_settings.refresh_from_db()
        assert couple_settings.financial_model == FinancialModel.PROPORTIONAL_INCOME
        reasons = set(CoupleSettingsChange.objects.values_list('reason', flat=True))
        assert reasons == {'Invitation acceptance'}

    def test_initial_proportional_without_percentages(self, couple_account, couple_settings, partner_two):
        with pytest.raises(ContributionSettingsMissingError):
            accept_couple_invitation(
                account_id=couple_account.id,
                user=partner_two,
                preferred_financial_model=FinancialModel.PROPORTIONAL_INCOME,
            )

    def test_outsider_cannot_accept(self, couple_account, couple_settings, outsider):
        with pytest.raises(NotAccountMemberError):
            accept_couple_invitation(account_id=couple_account.id, user=outsider)


@pytest.mark.django_db
class TestSettingsHistory:

    def test_history_is_oldest_first(self, couple_account, couple_settings, partner_one, partner_two):
        update_couple_settings(account_id=couple_account.id, user=partner_one, allow_reactions=False)
        update_couple_settings(account_id=couple_account.id, user=partner_two, allow_reactions=True)

        history = get_settings_history(account_id=couple_account.id, user=partner_one)

        assert [entry.changed_by for entry in history] == [partner_one, partner_two]
        assert [entry.new_value for entry in history] == [False, True]
