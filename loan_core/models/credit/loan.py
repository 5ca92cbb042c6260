"""Loan and balance models for credit domain."""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal

from loan_core.models.credit.enums import InterestBasis, LoanStatus


@dataclass
class Loan:
    """Drawdown against a facility (optionally through a credit line)."""

    loan_id: str
    organization_id: str
    facility_id: str | None  # None when drawn only through credit_line_id
    reference_number: str  # Unique per organization, kept across revolves
    amount: Decimal
    sibor_rate: Decimal  # percent
    margin: Decimal  # bank spread over SIBOR, percent
    start_date: date
    due_date: date
    status: LoanStatus = LoanStatus.ACTIVE
    credit_line_id: str | None = None
    interest_basis: InterestBasis = InterestBasis.ACTUAL_365
    cycle_number: int = 1  # Incremented on every revolve
    settled_amount: Decimal | None = None
    settled_date: date | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def effective_rate(self) -> Decimal:
        """Annual all-in rate: SIBOR plus margin."""
        return self.sibor_rate + self.margin

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE


@dataclass(frozen=True)
class LoanBalance:
    """Outstanding amounts on a loan, by bucket."""

    principal: Decimal
    interest: Decimal = Decimal("0")
    fees: Decimal = Decimal("0")
    version: int = 0  # Bumped by the store on every write

    @property
    def total(self) -> Decimal:
        return self.principal + self.interest + self.fees

    def bump(self, **changes: Decimal) -> "LoanBalance":
        """Return a copy with ``changes`` applied and the version incremented."""
        return replace(self, version=self.version + 1, **changes)
