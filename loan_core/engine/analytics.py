"""Portfolio analytics: maturity ladder and period-over-period activity."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from loan_core.engine.portfolio import loan_facility_id
from loan_core.exceptions import ValidationError
from loan_core.models.credit import (
    CreditLine,
    Facility,
    FacilityType,
    Loan,
    LoanBalance,
    LoanStatus,
    Payment,
    PaymentSummary,
    PeriodGrouping,
    PortfolioSnapshot,
)
from loan_core.numeric import HUNDRED, ZERO, quantize


@dataclass
class MonthBucket:
    """Active loans maturing in one calendar month."""

    month_key: str  # YYYY-MM
    label: str  # e.g. "Oct 2026"
    count: int = 0
    amount: Decimal = ZERO


@dataclass
class PaymentPage:
    """One page of payment history, newest first, with the unpaged total."""

    items: list[Payment]
    total: int
    limit: int | None = None
    offset: int = 0


@dataclass
class PeriodActivity:
    """Loans drawn, payments received and closing snapshot for one period."""

    period: str
    loans_created: int = 0
    total_disbursed: Decimal = ZERO
    payment_count: int = 0
    total_paid: Decimal = ZERO
    principal_paid: Decimal = ZERO
    interest_paid: Decimal = ZERO
    fees_paid: Decimal = ZERO
    snapshot: PortfolioSnapshot | None = None
    changes: dict[str, Decimal | None] | None = None

    @property
    def avg_loan_size(self) -> Decimal:
        if not self.loans_created:
            return ZERO
        return quantize(self.total_disbursed / self.loans_created)


@dataclass
class ActivityReport:
    """Period rows in chronological order plus range totals."""

    group_by: PeriodGrouping
    start: date
    end: date
    periods: list[PeriodActivity] = field(default_factory=list)

    @property
    def total_loans_created(self) -> int:
        return sum(p.loans_created for p in self.periods)

    @property
    def total_disbursed(self) -> Decimal:
        return sum((p.total_disbursed for p in self.periods), ZERO)

    @property
    def total_paid(self) -> Decimal:
        return sum((p.total_paid for p in self.periods), ZERO)

    @property
    def total_principal_paid(self) -> Decimal:
        return sum((p.principal_paid for p in self.periods), ZERO)

    @property
    def total_interest_paid(self) -> Decimal:
        return sum((p.interest_paid for p in self.periods), ZERO)


def period_key(day: date, group_by: PeriodGrouping) -> str:
    """Label a date as ``2026``, ``2026-Q4`` or ``2026-10``."""
    if group_by == PeriodGrouping.YEAR:
        return f"{day.year}"
    if group_by == PeriodGrouping.QUARTER:
        return f"{day.year}-Q{(day.month - 1) // 3 + 1}"
    return f"{day.year}-{day.month:02d}"


def percent_change(current: Decimal, previous: Decimal) -> Decimal:
    """Change from ``previous`` to ``current`` in percent.

    From a zero base: 100 if anything happened, else 0.
    """
    if previous == 0:
        return HUNDRED if current > 0 else ZERO
    return quantize((current - previous) / previous * HUNDRED)


def upcoming_loans_by_month(
    loans: Iterable[Loan],
    facilities: Sequence[Facility],
    today: date,
    *,
    bank_id: str | None = None,
    facility_type: FacilityType | None = None,
    months: int = 12,
    credit_lines: Iterable[CreditLine] = (),
) -> list[MonthBucket]:
    """Count and sum active loans by due month, starting with today's month.

    The bank and facility-type filters follow loans drawn through a credit
    line to the line's facility.
    """
    buckets: dict[str, MonthBucket] = {}
    year, month = today.year, today.month
    for _ in range(months):
        first = date(year, month, 1)
        key = f"{year}-{month:02d}"
        buckets[key] = MonthBucket(month_key=key, label=first.strftime("%b %Y"))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)

    line_map = {line.credit_line_id: line for line in credit_lines}
    allowed: set[str] | None = None
    if bank_id is not None or facility_type is not None:
        allowed = {
            f.facility_id
            for f in facilities
            if (bank_id is None or f.bank_id == bank_id)
            and (facility_type is None or f.facility_type == facility_type)
        }

    for loan in loans:
        if loan.status != LoanStatus.ACTIVE:
            continue
        if allowed is not None and loan_facility_id(loan, line_map) not in allowed:
            continue
        bucket = buckets.get(f"{loan.due_date.year}-{loan.due_date.month:02d}")
        if bucket is not None:
            bucket.count += 1
            bucket.amount += loan.amount

    return list(buckets.values())


def period_activity(
    loans: Iterable[Loan],
    payments: Iterable[Payment],
    start: date,
    end: date,
    group_by: PeriodGrouping = PeriodGrouping.MONTH,
    snapshots: Iterable[PortfolioSnapshot] = (),
) -> ActivityReport:
    """Group loan drawdowns and payments in ``[start, end]`` by period.

    Every loan counts regardless of status. The latest snapshot inside each
    period is attached as its closing position.
    """
    if end < start:
        raise ValidationError(f"end {end} is before start {start}")

    rows: dict[str, PeriodActivity] = {}

    def row(key: str) -> PeriodActivity:
        if key not in rows:
            rows[key] = PeriodActivity(period=key)
        return rows[key]

    for loan in loans:
        if start <= loan.start_date <= end:
            r = row(period_key(loan.start_date, group_by))
            r.loans_created += 1
            r.total_disbursed += loan.amount

    for payment in payments:
        if start <= payment.payment_date <= end:
            r = row(period_key(payment.payment_date, group_by))
            r.payment_count += 1
            r.total_paid += payment.amount
            r.principal_paid += payment.allocation.principal
            r.interest_paid += payment.allocation.interest
            r.fees_paid += payment.allocation.fees

    for snapshot in snapshots:
        if start <= snapshot.snapshot_date <= end:
            r = row(period_key(snapshot.snapshot_date, group_by))
            if r.snapshot is None or snapshot.snapshot_date > r.snapshot.snapshot_date:
                r.snapshot = snapshot

    ordered = [rows[key] for key in sorted(rows)]
    for previous, current in zip(ordered, ordered[1:]):
        current.changes = {
            "loans_created": percent_change(
                Decimal(current.loans_created), Decimal(previous.loans_created)
            ),
            "total_disbursed": percent_change(current.total_disbursed, previous.total_disbursed),
            "total_paid": percent_change(current.total_paid, previous.total_paid),
            "outstanding_balance": (
                percent_change(
                    current.snapshot.total_outstanding, previous.snapshot.total_outstanding
                )
                if current.snapshot and previous.snapshot
                else None
            ),
        }

    return ActivityReport(group_by=group_by, start=start, end=end, periods=ordered)


def payment_history(
    payments: Iterable[Payment],
    *,
    from_date: date | None = None,
    to_date: date | None = None,
    loan_id: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> PaymentPage:
    """Filter payments by date range (inclusive) and loan, then page them.

    Payments are ordered newest first; payments on the same day keep the
    reverse of their recording order.

    Raises
    ------
    ValidationError
        If the range is inverted, ``limit`` is not positive or ``offset``
        is negative.
    """
    if from_date is not None and to_date is not None and to_date < from_date:
        raise ValidationError(f"to_date {to_date} is before from_date {from_date}")
    if limit is not None and limit <= 0:
        raise ValidationError(f"limit must be positive, got {limit}")
    if offset < 0:
        raise ValidationError(f"offset must not be negative, got {offset}")

    matched = [
        p
        for p in payments
        if (loan_id is None or p.loan_id == loan_id)
        and (from_date is None or p.payment_date >= from_date)
        and (to_date is None or p.payment_date <= to_date)
    ]
    matched.reverse()
    matched.sort(key=lambda p: p.payment_date, reverse=True)

    end = offset + limit if limit is not None else None
    return PaymentPage(items=matched[offset:end], total=len(matched), limit=limit, offset=offset)


def summarize_payments(
    loan_id: str, payments: Iterable[Payment], balance: LoanBalance
) -> PaymentSummary:
    """Totals paid per bucket on one loan, with the balance still owed."""
    paid = [p for p in payments if p.loan_id == loan_id]
    return PaymentSummary(
        loan_id=loan_id,
        payment_count=len(paid),
        total_paid=sum((p.amount for p in paid), ZERO),
        fees_paid=sum((p.allocation.fees for p in paid), ZERO),
        interest_paid=sum((p.allocation.interest for p in paid), ZERO),
        principal_paid=sum((p.allocation.principal for p in paid), ZERO),
        unapplied=sum((p.allocation.unapplied for p in paid), ZERO),
        remaining_balance=balance,
        last_payment_date=max((p.payment_date for p in paid), default=None),
    )
