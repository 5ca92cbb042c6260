"""Portfolio exposure aggregation.

Rolls loans up into bank-level and facility-level utilization and a
portfolio summary. Every call recomputes from the records it is given;
nothing is cached here, so settling or deleting a loan shows up on the very
next call.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from loan_core.exceptions import ReferentialIntegrityError
from loan_core.models.credit import (
    Bank,
    BankExposure,
    CollateralAsset,
    CreditLine,
    CreditLineExposure,
    Facility,
    FacilityExposure,
    Loan,
    LoanStatus,
    PortfolioSnapshot,
    PortfolioSummary,
)
from loan_core.numeric import ZERO, percentage, quantize


def resolve_facility_id(
    loan: Loan,
    facilities: dict[str, Facility],
    credit_lines: dict[str, CreditLine],
) -> str:
    """Find the facility a loan is drawn from, directly or via its credit line."""
    if loan.facility_id:
        if loan.facility_id not in facilities:
            raise ReferentialIntegrityError(
                f"Loan {loan.loan_id} references unknown facility {loan.facility_id}"
            )
        return loan.facility_id

    if loan.credit_line_id:
        credit_line = credit_lines.get(loan.credit_line_id)
        if credit_line is None:
            raise ReferentialIntegrityError(
                f"Loan {loan.loan_id} references unknown credit line {loan.credit_line_id}"
            )
        if credit_line.facility_id not in facilities:
            raise ReferentialIntegrityError(
                f"Credit line {credit_line.credit_line_id} references unknown facility "
                f"{credit_line.facility_id}"
            )
        return credit_line.facility_id

    raise ReferentialIntegrityError(
        f"Loan {loan.loan_id} has neither a facility nor a credit line"
    )


def loan_facility_id(loan: Loan, credit_lines: Mapping[str, CreditLine]) -> str | None:
    """Facility of a loan, following its credit line; None if unknown."""
    if loan.facility_id:
        return loan.facility_id
    credit_line = credit_lines.get(loan.credit_line_id) if loan.credit_line_id else None
    return credit_line.facility_id if credit_line is not None else None


def active_loans(loans: Iterable[Loan]) -> list[Loan]:
    """Loans that count toward outstanding exposure."""
    return [loan for loan in loans if loan.status == LoanStatus.ACTIVE]


def utilization(outstanding: Decimal, credit_limit: Decimal) -> Decimal:
    """Outstanding as a percentage of the limit; 0 when the limit is 0."""
    ratio = percentage(outstanding, credit_limit)
    return quantize(ratio) if ratio is not None else ZERO


def compute_bank_exposures(
    banks: Sequence[Bank],
    facilities: Sequence[Facility],
    loans: Iterable[Loan],
    credit_lines: Sequence[CreditLine] = (),
) -> list[BankExposure]:
    """Compute outstanding, limit and utilization per bank.

    Parameters
    ----------
    banks : Sequence[Bank]
        Banks to report on. Output follows this order.
    facilities : Sequence[Facility]
        Facilities whose limits are summed per bank.
    loans : Iterable[Loan]
        Loans; only ``active`` ones count as outstanding.
    credit_lines : Sequence[CreditLine]
        Needed to resolve loans drawn through a credit line only.

    Returns
    -------
    list[BankExposure]
        One entry per bank, in input order.
    """
    facility_map = {f.facility_id: f for f in facilities}
    line_map = {cl.credit_line_id: cl for cl in credit_lines}

    outstanding: dict[str, Decimal] = {}
    for loan in active_loans(loans):
        facility = facility_map[resolve_facility_id(loan, facility_map, line_map)]
        outstanding[facility.bank_id] = outstanding.get(facility.bank_id, ZERO) + loan.amount

    limits: dict[str, Decimal] = {}
    for facility in facilities:
        limits[facility.bank_id] = limits.get(facility.bank_id, ZERO) + facility.credit_limit

    exposures = []
    for bank in banks:
        bank_outstanding = outstanding.get(bank.bank_id, ZERO)
        bank_limit = limits.get(bank.bank_id, ZERO)
        exposures.append(
            BankExposure(
                bank_id=bank.bank_id,
                bank_name=bank.name,
                outstanding=bank_outstanding,
                credit_limit=bank_limit,
                utilization=utilization(bank_outstanding, bank_limit),
            )
        )
    return exposures


def compute_facility_exposures(
    facilities: Sequence[Facility],
    loans: Iterable[Loan],
    credit_lines: Sequence[CreditLine] = (),
) -> list[FacilityExposure]:
    """Compute availability per facility, in input order."""
    facility_map = {f.facility_id: f for f in facilities}
    line_map = {cl.credit_line_id: cl for cl in credit_lines}

    outstanding: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for loan in active_loans(loans):
        facility_id = resolve_facility_id(loan, facility_map, line_map)
        outstanding[facility_id] = outstanding.get(facility_id, ZERO) + loan.amount
        counts[facility_id] = counts.get(facility_id, 0) + 1

    exposures = []
    for facility in facilities:
        drawn = outstanding.get(facility.facility_id, ZERO)
        exposures.append(
            FacilityExposure(
                facility_id=facility.facility_id,
                bank_id=facility.bank_id,
                facility_type=facility.facility_type,
                outstanding=drawn,
                credit_limit=facility.credit_limit,
                available=facility.credit_limit - drawn,
                utilization=utilization(drawn, facility.credit_limit),
                active_loans=counts.get(facility.facility_id, 0),
            )
        )
    return exposures


def compute_credit_line_exposures(
    credit_lines: Sequence[CreditLine],
    loans: Iterable[Loan],
) -> list[CreditLineExposure]:
    """Compute availability per credit line, in input order."""
    outstanding: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for loan in active_loans(loans):
        if loan.credit_line_id is None:
            continue
        outstanding[loan.credit_line_id] = (
            outstanding.get(loan.credit_line_id, ZERO) + loan.amount
        )
        counts[loan.credit_line_id] = counts.get(loan.credit_line_id, 0) + 1

    exposures = []
    for line in credit_lines:
        drawn = outstanding.get(line.credit_line_id, ZERO)
        exposures.append(
            CreditLineExposure(
                credit_line_id=line.credit_line_id,
                facility_id=line.facility_id,
                outstanding=drawn,
                credit_limit=line.credit_limit,
                available=line.credit_limit - drawn,
                utilization=utilization(drawn, line.credit_limit),
                active_loans=counts.get(line.credit_line_id, 0),
            )
        )
    return exposures


def total_collateral_value(collateral: Iterable[CollateralAsset]) -> Decimal:
    """Sum of current values of active collateral assets."""
    return sum((c.current_value for c in collateral if c.is_active), ZERO)


def compute_portfolio_summary(
    exposures: Sequence[BankExposure],
    collateral: Iterable[CollateralAsset],
    *,
    active_loans_count: int = 0,
) -> PortfolioSummary:
    """Roll bank exposures and collateral into portfolio totals.

    ``total_available`` is not clamped and goes negative when the portfolio
    is over-utilized. ``portfolio_ltv`` and ``coverage_ratio`` are None when
    their denominator is zero.
    """
    total_outstanding = sum((e.outstanding for e in exposures), ZERO)
    total_credit_limit = sum((e.credit_limit for e in exposures), ZERO)
    collateral_value = total_collateral_value(collateral)

    ltv = percentage(total_outstanding, collateral_value)
    coverage = percentage(collateral_value, total_outstanding)

    return PortfolioSummary(
        total_outstanding=total_outstanding,
        total_credit_limit=total_credit_limit,
        total_available=total_credit_limit - total_outstanding,
        total_collateral_value=collateral_value,
        portfolio_ltv=quantize(ltv) if ltv is not None else None,
        coverage_ratio=quantize(coverage) if coverage is not None else None,
        active_loans_count=active_loans_count,
        bank_exposures=tuple(exposures),
    )


def build_snapshot(
    organization_id: str,
    snapshot_date: date,
    summary: PortfolioSummary,
    loans: Iterable[Loan],
    facilities: Sequence[Facility],
    *,
    snapshot_id: str | None = None,
) -> PortfolioSnapshot:
    """Freeze a summary into a dated snapshot with loan-size metrics."""
    amounts = [loan.amount for loan in active_loans(loans)]
    count = len(amounts)

    metrics = {
        "avg_loan_size": quantize(sum(amounts, ZERO) / count) if count else ZERO,
        "max_loan_size": max(amounts) if amounts else ZERO,
        "min_loan_size": min(amounts) if amounts else ZERO,
        "utilization_rate": utilization(summary.total_outstanding, summary.total_credit_limit),
        "bank_count": sum(1 for e in summary.bank_exposures if e.outstanding > 0),
        "facility_count": len(facilities),
    }

    return PortfolioSnapshot(
        snapshot_id=snapshot_id or uuid.uuid4().hex,
        organization_id=organization_id,
        snapshot_date=snapshot_date,
        total_outstanding=summary.total_outstanding,
        total_credit_limit=summary.total_credit_limit,
        portfolio_ltv=summary.portfolio_ltv,
        active_loans_count=count,
        bank_exposures=[
            {
                "bank_id": e.bank_id,
                "bank_name": e.bank_name,
                "outstanding": e.outstanding,
                "credit_limit": e.credit_limit,
                "utilization": e.utilization,
            }
            for e in summary.bank_exposures
        ],
        metrics=metrics,
    )


class PortfolioAggregator:
    """Stateless facade over the aggregation functions."""

    compute_bank_exposures = staticmethod(compute_bank_exposures)
    compute_facility_exposures = staticmethod(compute_facility_exposures)
    compute_credit_line_exposures = staticmethod(compute_credit_line_exposures)
    compute_portfolio_summary = staticmethod(compute_portfolio_summary)
    build_snapshot = staticmethod(build_snapshot)

    def summarize(
        self,
        banks: Sequence[Bank],
        facilities: Sequence[Facility],
        loans: Sequence[Loan],
        collateral: Iterable[CollateralAsset],
        credit_lines: Sequence[CreditLine] = (),
    ) -> PortfolioSummary:
        """Bank exposures plus portfolio totals in one call."""
        exposures = compute_bank_exposures(banks, facilities, loans, credit_lines)
        return compute_portfolio_summary(
            exposures,
            collateral,
            active_loans_count=len(active_loans(loans)),
        )
