"""
Contribution model service.

Expected contribution of each partner under the account's financial model,
and cent-precise splitting of a single expense between the partners.

Each financial model is a small frozen dataclass; ``contribution_model_for``
picks the right one from the couple settings. Only the proportional model
carries data (the caller's percentage), so a proportional model without
percentages cannot be built.

Example:
    >>> model = FiftyFifty()
    >>> model.expected(ContributionTotals(total_shared=Decimal('120.00')))
    ExpectedContributions(self_expected=Decimal('60.00'), partner_expected=Decimal('60.00'))
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple, Union
from uuid import UUID

from apps.couples.models import CoupleSettings, FinancialModel
from apps.expenses.models import SplitMethod

from .exceptions import ContributionSettingsMissingError, InvalidAmountError


ZERO = Decimal('0.00')
HUNDRED = Decimal('100')
CENT = Decimal('0.01')


@dataclass(frozen=True)
class ContributionTotals:
    """Sums for one period, seen from the caller's side."""

    total_shared: Decimal
    self_personal: Decimal = ZERO
    partner_personal: Decimal = ZERO


@dataclass(frozen=True)
class ExpectedContributions:
    self_expected: Decimal
    partner_expected: Decimal


@dataclass(frozen=True)
class FiftyFifty:
    financial_model = FinancialModel.FIFTY_FIFTY

    def expected(self, totals: ContributionTotals, include_personal: bool = False) -> ExpectedContributions:
        half = totals.total_shared / 2
        return ExpectedContributions(self_expected=half, partner_expected=half)


@dataclass(frozen=True)
class ProportionalIncome:
    self_percentage: Decimal
    financial_model = FinancialModel.PROPORTIONAL_INCOME

    def expected(self, totals: ContributionTotals, include_personal: bool = False) -> ExpectedContributions:
        self_expected = totals.total_shared * self.self_percentage / HUNDRED
        # Partner share by subtraction keeps the two exactly complementary
        return ExpectedContributions(
            self_expected=self_expected,
            partner_expected=totals.total_shared - self_expected,
        )


@dataclass(frozen=True)
class EverythingCommon:
    financial_model = FinancialModel.EVERYTHING_COMMON

    def expected(self, totals: ContributionTotals, include_personal: bool = False) -> ExpectedContributions:
        """
        Shared component only by default. With ``include_personal`` every
        expense of the period is pooled and halved.
        """
        pool = totals.total_shared
        if include_personal:
            pool = pool + totals.self_personal + totals.partner_personal
        half = pool / 2
        return ExpectedContributions(self_expected=half, partner_expected=half)


@dataclass(frozen=True)
class Mixed:
    financial_model = FinancialModel.MIXED

    def expected(self, totals: ContributionTotals, include_personal: bool = False) -> ExpectedContributions:
        half = totals.total_shared / 2
        return ExpectedContributions(
            self_expected=half + totals.self_personal,
            partner_expected=half + totals.partner_personal,
        )


ContributionModel = Union[FiftyFifty, ProportionalIncome, EverythingCommon, Mixed]

_STATELESS_MODELS = {
    FinancialModel.FIFTY_FIFTY: FiftyFifty(),
    FinancialModel.EVERYTHING_COMMON: EverythingCommon(),
    FinancialModel.MIXED: Mixed(),
}


def contribution_model_for(settings: CoupleSettings, self_user_id: UUID) -> ContributionModel:
    """
    Build the contribution model of the account for the given caller.

    Args:
        settings: Couple settings of the account
        self_user_id: Partner whose point of view the result takes

    Returns:
        One of FiftyFifty, ProportionalIncome, EverythingCommon, Mixed

    Raises:
        ContributionSettingsMissingError: Proportional model without
            percentages for the caller
    """
    if settings.financial_model == FinancialModel.PROPORTIONAL_INCOME:
        percentage = settings.percentage_for(self_user_id) if settings.has_contribution_settings else None
        if percentage is None:
            raise ContributionSettingsMissingError(
                "Proportional income model requires contribution settings for both partners"
            )
        return ProportionalIncome(self_percentage=Decimal(percentage))

    return _STATELESS_MODELS[FinancialModel(settings.financial_model)]


def calculate_expected(
    model: ContributionModel,
    totals: ContributionTotals,
    include_personal: bool = False
) -> ExpectedContributions:
    return model.expected(totals, include_personal=include_personal)


# ============================================================
# Single-expense splitting
# ============================================================

@dataclass(frozen=True)
class ExpenseSplit:
    """Split of one expense between partner 1 and partner 2."""

    partner1_user_id: UUID
    partner2_user_id: UUID
    partner1_amount: Decimal
    partner2_amount: Decimal
    split_method: str
    partner1_percentage: Optional[Decimal] = None
    partner2_percentage: Optional[Decimal] = None


def split_equally(amount: Decimal, count: int) -> List[Decimal]:
    """
    Split amount with cent precision (no rounding errors).

    Algorithm:
        1. Convert to cents
        2. Base share: ``cents // count``
        3. First ``cents % count`` shares get one extra cent
        4. Convert back

    Raises:
        ValueError: If count is not positive or the shares don't add up
    """
    if count < 1:
        raise ValueError("At least one participant required")

    total_cents = int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))
    base_cents, remainder = divmod(total_cents, count)

    shares = []
    for i in range(count):
        cents = base_cents + 1 if i < remainder else base_cents
        shares.append(Decimal(cents) / Decimal(100))

    if sum(shares) != amount:
        raise ValueError(f"Split calculation error: {sum(shares)} != {amount}")

    return shares


def split_amount(
    amount: Decimal,
    settings: CoupleSettings,
    partner_ids: Tuple[UUID, UUID]
) -> ExpenseSplit:
    """
    Split one expense between the partners.

    The proportional model splits by the contribution percentages
    (partner 2 receives the remainder); every other model splits equally.

    Args:
        amount: Expense amount, positive with at most two decimals
        settings: Couple settings of the account
        partner_ids: (partner1, partner2) in split order

    Raises:
        InvalidAmountError: If amount is not positive
        ContributionSettingsMissingError: Proportional model without percentages
    """
    if amount is None or amount <= 0:
        raise InvalidAmountError("Amount must be greater than zero")

    partner1_id, partner2_id = partner_ids

    if settings.financial_model == FinancialModel.PROPORTIONAL_INCOME:
        model = contribution_model_for(settings, partner1_id)
        partner1_percentage = model.self_percentage
        partner1_amount = (amount * partner1_percentage / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
        return ExpenseSplit(
            partner1_user_id=partner1_id,
            partner2_user_id=partner2_id,
            partner1_amount=partner1_amount,
            partner2_amount=amount - partner1_amount,
            split_method=SplitMethod.PERCENTAGE,
            partner1_percentage=partner1_percentage,
            partner2_percentage=HUNDRED - partner1_percentage,
        )

    first, second = split_equally(amount, 2)
    return ExpenseSplit(
        partner1_user_id=partner1_id,
        partner2_user_id=partner2_id,
        partner1_amount=first,
        partner2_amount=second,
        split_method=SplitMethod.EQUAL,
        partner1_percentage=Decimal('50'),
        partner2_percentage=Decimal('50'),
    )


def percentages_from_income(
    partner1_income: Decimal,
    partner2_income: Decimal
) -> Tuple[Decimal, Decimal]:
    """
    Contribution percentages proportional to monthly income.

    Partner 2 receives the complement so the pair always sums to 100.

    Raises:
        InvalidAmountError: If either income is not positive
    """
    if partner1_income is None or partner2_income is None or partner1_income <= 0 or partner2_income <= 0:
        raise InvalidAmountError("Both monthly incomes must be greater than zero")

    partner1_percentage = (
        partner1_income * HUNDRED / (partner1_income + partner2_income)
    ).quantize(CENT, rounding=ROUND_HALF_UP)
    return partner1_percentage, HUNDRED - partner1_percentage
