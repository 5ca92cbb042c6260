"""Simple-interest accrual on SIBOR-plus-margin loans."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from loan_core.models.credit import InterestBasis, Loan, LoanStatus
from loan_core.numeric import HUNDRED, ZERO, quantize

DAYS_IN_YEAR = {
    InterestBasis.ACTUAL_365: 365,
    InterestBasis.ACTUAL_360: 360,
}


def calculate_interest(
    amount: Decimal,
    annual_rate: Decimal,
    start_date: date,
    end_date: date,
    basis: InterestBasis = InterestBasis.ACTUAL_365,
) -> Decimal:
    """Interest on ``amount`` at ``annual_rate`` percent between two dates.

    Zero when the period is empty or the rate is not positive.
    """
    days = (end_date - start_date).days
    if days <= 0 or annual_rate <= 0:
        return ZERO
    interest = amount * annual_rate / HUNDRED * Decimal(days) / Decimal(DAYS_IN_YEAR[basis])
    return quantize(interest)


def accrued_interest(loan: Loan, as_of: date) -> Decimal:
    """Interest accrued from the loan's start date to ``as_of``.

    Only active loans accrue; settled and cancelled loans return zero.
    """
    if loan.status != LoanStatus.ACTIVE:
        return ZERO
    return calculate_interest(
        loan.amount, loan.effective_rate, loan.start_date, as_of, loan.interest_basis
    )


def projected_interest(loan: Loan) -> Decimal:
    """Interest over the full tenor, start date to due date."""
    return calculate_interest(
        loan.amount, loan.effective_rate, loan.start_date, loan.due_date, loan.interest_basis
    )
