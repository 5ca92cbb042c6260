"""Revolving-period usage for loans and facilities.

Facilities with revolving tracking cap how many days funds may stay drawn
(``max_revolving_period``). Usage is reported as days used, days left, a
percentage clamped to 0..100 and a status band.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from loan_core.engine.portfolio import loan_facility_id
from loan_core.exceptions import InvalidEntityStateError
from loan_core.models.credit import CreditLine, Facility, Loan, LoanStatus, RevolvingStatus

WARNING_PERCENT = Decimal("70")
CRITICAL_PERCENT = Decimal("90")
EXPIRED_PERCENT = Decimal("100")


@dataclass(frozen=True)
class RevolvingUsage:
    """Revolving-period consumption."""

    days_used: int
    days_remaining: int
    percentage_used: Decimal  # one decimal place, 0..100
    status: RevolvingStatus
    max_revolving_period: int
    active_loans: int = 0
    total_loans: int = 0

    @property
    def can_revolve(self) -> bool:
        return self.days_remaining > 0


def revolving_status(percentage_used: Decimal) -> RevolvingStatus:
    """Map a usage percentage onto its status band."""
    if percentage_used >= EXPIRED_PERCENT:
        return RevolvingStatus.EXPIRED
    if percentage_used >= CRITICAL_PERCENT:
        return RevolvingStatus.CRITICAL
    if percentage_used >= WARNING_PERCENT:
        return RevolvingStatus.WARNING
    return RevolvingStatus.AVAILABLE


def loan_revolving_usage(loan: Loan, facility: Facility, today: date) -> RevolvingUsage:
    """Days a single loan has been drawn against its facility's revolving cap.

    Settled loans stop counting at their settlement date.

    Raises
    ------
    InvalidEntityStateError
        If the facility does not track revolving periods.
    """
    max_period = _max_period(facility)
    if loan.status == LoanStatus.SETTLED and loan.settled_date is not None:
        end = loan.settled_date
    else:
        end = today
    days_used = max(0, (end - loan.start_date).days)
    return _usage(
        days_used,
        max_period,
        active_loans=1 if loan.status == LoanStatus.ACTIVE else 0,
        total_loans=1,
    )


def facility_revolving_usage(
    facility: Facility,
    loans: Iterable[Loan],
    credit_lines: Iterable[CreditLine] = (),
) -> RevolvingUsage:
    """Total drawn days across a facility's loans.

    Each loan counts from start to due date, or to its settlement date when
    it was settled early. Cancelled loans never drew funds and are skipped.
    Loans drawn through a credit line count toward the line's facility.
    """
    max_period = _max_period(facility)
    line_map = {line.credit_line_id: line for line in credit_lines}
    total_days = 0
    active = 0
    counted = 0
    for loan in loans:
        if loan.status == LoanStatus.CANCELLED:
            continue
        if loan_facility_id(loan, line_map) != facility.facility_id:
            continue
        counted += 1
        end = loan.due_date
        if loan.settled_date is not None and loan.settled_date < end:
            end = loan.settled_date
        total_days += max(0, (end - loan.start_date).days)
        if loan.status == LoanStatus.ACTIVE:
            active += 1
    return _usage(total_days, max_period, active_loans=active, total_loans=counted)


def _max_period(facility: Facility) -> int:
    if not facility.enable_revolving_tracking or not facility.max_revolving_period:
        raise InvalidEntityStateError(
            f"Revolving period tracking is not enabled for facility {facility.facility_id}"
        )
    return facility.max_revolving_period


def _usage(days_used: int, max_period: int, *, active_loans: int, total_loans: int) -> RevolvingUsage:
    raw = Decimal(days_used) / Decimal(max_period) * 100
    percent = min(EXPIRED_PERCENT, max(Decimal("0"), raw)).quantize(
        Decimal("0.1"), rounding=ROUND_HALF_UP
    )
    return RevolvingUsage(
        days_used=days_used,
        days_remaining=max(0, max_period - days_used),
        percentage_used=percent,
        status=revolving_status(percent),
        max_revolving_period=max_period,
        active_loans=active_loans,
        total_loans=total_loans,
    )
