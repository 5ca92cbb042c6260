"""Payment allocation and payment record models."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from loan_core.models.credit.enums import AllocationType
from loan_core.models.credit.loan import LoanBalance


@dataclass(frozen=True)
class PaymentAllocation:
    """How a single payment is split across balance buckets.

    ``unapplied`` holds surplus kept as prepayment credit under the credit
    overpayment policy, or sub-cent rounding residue otherwise.
    """

    fees: Decimal
    interest: Decimal
    principal: Decimal
    unapplied: Decimal = Decimal("0")

    @property
    def applied(self) -> Decimal:
        return self.fees + self.interest + self.principal

    @property
    def total(self) -> Decimal:
        return self.applied + self.unapplied


@dataclass
class Payment:
    """Recorded repayment against a loan."""

    payment_id: str
    loan_id: str
    organization_id: str
    amount: Decimal
    payment_date: date
    allocation_type: AllocationType
    allocation: PaymentAllocation
    balance_after: LoanBalance
    created_by: str | None = None
    reference: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PaymentSummary:
    """Totals paid on one loan, by bucket, against what is still owed."""

    loan_id: str
    payment_count: int
    total_paid: Decimal
    fees_paid: Decimal
    interest_paid: Decimal
    principal_paid: Decimal
    unapplied: Decimal
    remaining_balance: LoanBalance
    last_payment_date: date | None = None
