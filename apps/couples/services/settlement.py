"""
Settlement calculator.

Turns expected and actual contributions into an outstanding balance and a
"who owes whom" decision. Pure and idempotent: no database access.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.conf import settings

from .contributions import ExpectedContributions, HUNDRED, ZERO


class WhoOwes:
    BALANCED = 'balanced'
    SELF = 'self'
    PARTNER = 'partner'


@dataclass(frozen=True)
class Settlement:
    current_balance: Decimal
    who_owes: str
    recommended_transfer: Optional[Decimal]
    self_contribution_percentage: Decimal
    partner_contribution_percentage: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.who_owes == WhoOwes.BALANCED


def settlement_tolerance() -> Decimal:
    return Decimal(str(settings.COUPLE_SETTLEMENT_TOLERANCE))


def calculate_settlement(
    expected: ExpectedContributions,
    self_actual_paid: Decimal,
    partner_actual_paid: Decimal,
    total_shared: Decimal,
    tolerance: Optional[Decimal] = None
) -> Settlement:
    """
    Compute the outstanding balance between the partners.

    A positive balance means the caller paid more than their share, so the
    partner owes. Balances within the tolerance (inclusive) are reported as
    balanced and carry no transfer.

    Args:
        expected: Expected contributions from the caller's side
        self_actual_paid: What the caller actually paid
        partner_actual_paid: What the partner actually paid
        total_shared: Shared total the percentages are relative to
        tolerance: Override of COUPLE_SETTLEMENT_TOLERANCE

    Returns:
        Settlement with balance, debtor and recommended transfer
    """
    if tolerance is None:
        tolerance = settlement_tolerance()

    current_balance = (
        (self_actual_paid - expected.self_expected)
        - (partner_actual_paid - expected.partner_expected)
    )

    if abs(current_balance) <= tolerance:
        who_owes = WhoOwes.BALANCED
        recommended_transfer = None
    else:
        who_owes = WhoOwes.PARTNER if current_balance > 0 else WhoOwes.SELF
        recommended_transfer = abs(current_balance)

    return Settlement(
        current_balance=current_balance,
        who_owes=who_owes,
        recommended_transfer=recommended_transfer,
        self_contribution_percentage=_percentage(expected.self_expected, total_shared),
        partner_contribution_percentage=_percentage(expected.partner_expected, total_shared),
    )


def _percentage(part: Decimal, total: Decimal) -> Decimal:
    if total <= 0:
        return ZERO
    return part / total * HUNDRED
