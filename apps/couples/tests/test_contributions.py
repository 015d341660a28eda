"""
Unit tests for the contribution models and expense splitting.

These are pure calculations; settings instances are built in memory.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from apps.couples.models import CoupleSettings, FinancialModel
from apps.couples.services import (
    ContributionTotals,
    EverythingCommon,
    FiftyFifty,
    Mixed,
    ProportionalIncome,
    contribution_model_for,
    percentages_from_income,
    split_amount,
    split_equally,
)
from apps.couples.services.exceptions import (
    ContributionSettingsMissingError,
    InvalidAmountError,
    InvalidStateError,
)
from apps.expenses.models import SplitMethod


def make_settings(financial_model, partner1_id=None, partner2_id=None, p1='60.00', p2='40.00'):
    settings = CoupleSettings(financial_model=financial_model)
    if partner1_id:
        settings.partner1_user_id = partner1_id
        settings.partner2_user_id = partner2_id
        settings.partner1_contribution_percentage = Decimal(p1)
        settings.partner2_contribution_percentage = Decimal(p2)
    return settings


# =============================================================================
# Expected contributions
# =============================================================================

class TestExpectedContributions:

    def test_fifty_fifty_halves_shared_total(self):
        expected = FiftyFifty().expected(ContributionTotals(total_shared=Decimal('120.00')))

        assert expected.self_expected == Decimal('60.00')
        assert expected.partner_expected == Decimal('60.00')

    def test_fifty_fifty_ignores_personal(self):
        totals = ContributionTotals(
            total_shared=Decimal('100.00'),
            self_personal=Decimal('40.00'),
            partner_personal=Decimal('10.00'),
        )
        expected = FiftyFifty().expected(totals, include_personal=True)

        assert expected.self_expected == expected.partner_expected == Decimal('50.00')

    def test_proportional_uses_self_percentage(self):
        expected = ProportionalIncome(self_percentage=Decimal('60')).expected(
            ContributionTotals(total_shared=Decimal('100.00'))
        )

        assert expected.self_expected == Decimal('60.00')
        assert expected.partner_expected == Decimal('40.00')

    @pytest.mark.parametrize('total,percentage', [
        ('0.00', '50'),
        ('33.33', '33.33'),
        ('100.01', '66.67'),
        ('999999.99', '12.34'),
        ('0.01', '99.99'),
    ])
    def test_proportional_shares_always_sum_to_total(self, total, percentage):
        """Partner share is derived by subtraction, so nothing is lost to rounding."""
        total = Decimal(total)
        expected = ProportionalIncome(self_percentage=Decimal(percentage)).expected(
            ContributionTotals(total_shared=total)
        )

        assert expected.self_expected + expected.partner_expected == total

    def test_mixed_adds_each_partners_personal(self):
        totals = ContributionTotals(
            total_shared=Decimal('100.00'),
            self_personal=Decimal('30.00'),
            partner_personal=Decimal('10.00'),
        )
        expected = Mixed().expected(totals)

        assert expected.self_expected == Decimal('80.00')
        assert expected.partner_expected == Decimal('60.00')

    def test_everything_common_shared_component(self):
        totals = ContributionTotals(
            total_shared=Decimal('100.00'),
            self_personal=Decimal('30.00'),
            partner_personal=Decimal('10.00'),
        )
        expected = EverythingCommon().expected(totals)

        assert expected.self_expected == expected.partner_expected == Decimal('50.00')

    def test_everything_common_pools_personal_in_full_mode(self):
        totals = ContributionTotals(
            total_shared=Decimal('100.00'),
            self_personal=Decimal('30.00'),
            partner_personal=Decimal('10.00'),
        )
        expected = EverythingCommon().expected(totals, include_personal=True)

        assert expected.self_expected == expected.partner_expected == Decimal('70.00')


class TestContributionModelFor:

    @pytest.mark.parametrize('financial_model,model_class', [
        (FinancialModel.FIFTY_FIFTY, FiftyFifty),
        (FinancialModel.EVERYTHING_COMMON, EverythingCommon),
        (FinancialModel.MIXED, Mixed),
    ])
    def test_stateless_models(self, financial_model, model_class):
        model = contribution_model_for(make_settings(financial_model), uuid4())
        assert isinstance(model, model_class)

    def test_proportional_takes_callers_percentage(self):
        partner1, partner2 = uuid4(), uuid4()
        settings = make_settings(FinancialModel.PROPORTIONAL_INCOME, partner1, partner2)

        assert contribution_model_for(settings, partner1).self_percentage == Decimal('60.00')
        assert contribution_model_for(settings, partner2).self_percentage == Decimal('40.00')

    def test_proportional_without_settings_is_invalid_state(self):
        settings = make_settings(FinancialModel.PROPORTIONAL_INCOME)

        with pytest.raises(ContributionSettingsMissingError) as exc_info:
            contribution_model_for(settings, uuid4())
        assert isinstance(exc_info.value, InvalidStateError)

    def test_proportional_for_unknown_user(self):
        settings = make_settings(FinancialModel.PROPORTIONAL_INCOME, uuid4(), uuid4())

        with pytest.raises(ContributionSettingsMissingError):
            contribution_model_for(settings, uuid4())


# =============================================================================
# Single-expense splitting
# =============================================================================

class TestSplitEqually:

    def test_even_amount(self):
        assert split_equally(Decimal('10.00'), 2) == [Decimal('5.00'), Decimal('5.00')]

    def test_odd_cent_goes_to_first_share(self):
        assert split_equally(Decimal('10.01'), 2) == [Decimal('5.01'), Decimal('5.00')]

    def test_three_way_split_is_exact(self):
        shares = split_equally(Decimal('100.00'), 3)

        assert shares == [Decimal('33.34'), Decimal('33.33'), Decimal('33.33')]
        assert sum(shares) == Decimal('100.00')

    def test_requires_a_participant(self):
        with pytest.raises(ValueError):
            split_equally(Decimal('10.00'), 0)


class TestSplitAmount:

    def test_equal_split_for_fifty_fifty(self):
        partner1, partner2 = uuid4(), uuid4()
        split = split_amount(Decimal('25.55'), make_settings(FinancialModel.FIFTY_FIFTY), (partner1, partner2))

        assert split.partner1_user_id == partner1
        assert split.partner2_user_id == partner2
        assert split.partner1_amount == Decimal('12.78')
        assert split.partner2_amount == Decimal('12.77')
        assert split.split_method == SplitMethod.EQUAL

    def test_mixed_model_also_splits_equally(self):
        split = split_amount(Decimal('40.00'), make_settings(FinancialModel.MIXED), (uuid4(), uuid4()))

        assert split.partner1_amount == split.partner2_amount == Decimal('20.00')

    def test_proportional_split_gives_remainder_to_partner2(self):
        partner1, partner2 = uuid4(), uuid4()
        settings = make_settings(FinancialModel.PROPORTIONAL_INCOME, partner1, partner2)

        split = split_amount(Decimal('33.33'), settings, (partner1, partner2))

        assert split.partner1_amount == Decimal('20.00')
        assert split.partner2_amount == Decimal('13.33')
        assert split.partner1_amount + split.partner2_amount == Decimal('33.33')
        assert split.split_method == SplitMethod.PERCENTAGE
        assert split.partner1_percentage == Decimal('60.00')
        assert split.partner2_percentage == Decimal('40.00')

    def test_proportional_split_without_settings(self):
        settings = make_settings(FinancialModel.PROPORTIONAL_INCOME)

        with pytest.raises(ContributionSettingsMissingError):
            split_amount(Decimal('10.00'), settings, (uuid4(), uuid4()))

    @pytest.mark.parametrize('amount', [Decimal('0'), Decimal('-5.00'), None])
    def test_rejects_non_positive_amount(self, amount):
        with pytest.raises(InvalidAmountError):
            split_amount(amount, make_settings(FinancialModel.FIFTY_FIFTY), (uuid4(), uuid4()))


class TestPercentagesFromIncome:

    def test_proportional_to_income(self):
        assert percentages_from_income(Decimal('3000'), Decimal('2000')) == (
            Decimal('60.00'), Decimal('40.00')
        )

    def test_complement_absorbs_rounding(self):
        partner1, partner2 = percentages_from_income(Decimal('1000'), Decimal('2000'))

        assert partner1 == Decimal('33.33')
        assert partner2 == Decimal('66.67')
        assert partner1 + partner2 == Decimal('100')

    def test_rejects_zero_income(self):
        with pytest.raises(InvalidAmountError):
            percentages_from_income(Decimal('0'), Decimal('2000'))
