"""Daily alert digest, auto-categorized by severity.

=========  ====================================================
category   trigger
=========  ====================================================
critical   active loans past due date
critical   facilities expiring within ``facility_expiry_days``
high       active loans due within ``due_soon_days``
high       facility utilization above ``utilization_threshold``
medium     single-bank share above ``concentration_threshold``
medium     portfolio LTV above ``ltv_threshold``
medium     revolving period usage above ``revolving_threshold``
low        active loans due after ``due_soon_days`` up to ``upcoming_days``
=========  ====================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Sequence

from loan_core.config import AlertConfig
from loan_core.engine.portfolio import (
    active_loans,
    compute_bank_exposures,
    compute_facility_exposures,
    loan_facility_id,
    total_collateral_value,
)
from loan_core.engine.revolving import facility_revolving_usage
from loan_core.models.credit import (
    Alert,
    AlertCategory,
    Bank,
    CollateralAsset,
    CreditLine,
    Facility,
    Loan,
)
from loan_core.numeric import ZERO, percentage, quantize


def generate_daily_alerts(
    loans: Sequence[Loan],
    facilities: Sequence[Facility],
    banks: Sequence[Bank],
    collateral: Sequence[CollateralAsset],
    today: date,
    config: AlertConfig | None = None,
    credit_lines: Sequence[CreditLine] = (),
) -> list[Alert]:
    """Build the alert digest for one organization, most severe first."""
    config = config or AlertConfig()
    live = active_loans(loans)
    bank_names = {b.bank_id: b.name for b in banks}
    stamp = today.isoformat()
    alerts: list[Alert] = []

    overdue = [loan for loan in live if loan.due_date < today]
    if overdue:
        total = _sum_amounts(overdue)
        alerts.append(
            Alert(
                alert_id=f"overdue-{stamp}",
                category=AlertCategory.CRITICAL,
                title=f"{len(overdue)} Overdue Loan(s)",
                message=f"You have {len(overdue)} overdue loan(s) totaling {_sar(total)}",
                action_required="Immediate payment or renegotiation required",
                data=[
                    {
                        "loan_id": loan.loan_id,
                        "reference_number": loan.reference_number,
                        "amount": loan.amount,
                        "due_date": loan.due_date,
                        "days_overdue": (today - loan.due_date).days,
                    }
                    for loan in overdue
                ],
            )
        )

    expiring = [
        f
        for f in facilities
        if f.is_active and 0 < (f.expiry_date - today).days <= config.facility_expiry_days
    ]
    if expiring:
        alerts.append(
            Alert(
                alert_id=f"facilities-expiring-{stamp}",
                category=AlertCategory.CRITICAL,
                title=f"{len(expiring)} Facility/Facilities Expiring Soon",
                message=(
                    f"{len(expiring)} facility/facilities will expire within "
                    f"{config.facility_expiry_days} days"
                ),
                action_required="Contact bank to renew or close facilities",
                data=[
                    {
                        "facility_id": f.facility_id,
                        "bank_name": bank_names.get(f.bank_id, "Unknown"),
                        "facility_type": f.facility_type,
                        "expiry_date": f.expiry_date,
                        "days_until_expiry": (f.expiry_date - today).days,
                    }
                    for f in expiring
                ],
            )
        )

    due_soon = [
        loan for loan in live if 0 <= (loan.due_date - today).days <= config.due_soon_days
    ]
    if due_soon:
        total = _sum_amounts(due_soon)
        alerts.append(
            Alert(
                alert_id=f"upcoming-{stamp}",
                category=AlertCategory.HIGH,
                title=f"{len(due_soon)} Loan(s) Due Within {config.due_soon_days} Days",
                message=(
                    f"{len(due_soon)} loan(s) totaling {_sar(total)} due within "
                    f"{config.due_soon_days} days"
                ),
                action_required="Ensure sufficient funds or arrange renewal",
                data=[
                    {
                        "loan_id": loan.loan_id,
                        "reference_number": loan.reference_number,
                        "amount": loan.amount,
                        "due_date": loan.due_date,
                        "days_until_due": (loan.due_date - today).days,
                    }
                    for loan in due_soon
                ],
            )
        )

    hot = [
        e
        for e in compute_facility_exposures(facilities, live, credit_lines)
        if e.credit_limit > 0 and e.utilization > config.utilization_threshold
    ]
    if hot:
        alerts.append(
            Alert(
                alert_id=f"high-utilization-{stamp}",
                category=AlertCategory.HIGH,
                title=f"{len(hot)} Facility/Facilities with High Utilization",
                message=(
                    f"{len(hot)} facility/facilities exceeding "
                    f"{config.utilization_threshold}% utilization"
                ),
                action_required="Consider requesting limit increase or reducing exposure",
                data=[
                    {
                        "facility_id": e.facility_id,
                        "bank_name": bank_names.get(e.bank_id, "Unknown"),
                        "facility_type": e.facility_type,
                        "utilization": e.utilization,
                        "outstanding": e.outstanding,
                        "limit": e.credit_limit,
                    }
                    for e in hot
                ],
            )
        )

    bank_exposures = compute_bank_exposures(banks, facilities, live, credit_lines)
    total_exposure = sum((e.outstanding for e in bank_exposures), ZERO)
    concentrated = []
    for exposure in bank_exposures:
        share = percentage(exposure.outstanding, total_exposure)
        if share is not None and share > config.concentration_threshold:
            concentrated.append((exposure, quantize(share)))
    if concentrated:
        alerts.append(
            Alert(
                alert_id=f"concentration-{stamp}",
                category=AlertCategory.MEDIUM,
                title="Bank Concentration Risk Detected",
                message=(
                    f"{len(concentrated)} bank(s) exceed "
                    f"{config.concentration_threshold}% of portfolio exposure"
                ),
                action_required="Consider diversifying across more banks",
                data=[
                    {
                        "bank_id": exposure.bank_id,
                        "bank_name": exposure.bank_name,
                        "exposure": exposure.outstanding,
                        "concentration": share,
                    }
                    for exposure, share in concentrated
                ],
            )
        )

    collateral_value = total_collateral_value(collateral)
    ltv = percentage(total_exposure, collateral_value)
    if ltv is not None and ltv > config.ltv_threshold:
        alerts.append(
            Alert(
                alert_id=f"high-ltv-{stamp}",
                category=AlertCategory.MEDIUM,
                title="High Loan-to-Value Ratio",
                message=(
                    f"Portfolio LTV is {quantize(ltv)}% "
                    f"(exceeds {config.ltv_threshold}% threshold)"
                ),
                action_required="Consider adding collateral or reducing loan amounts",
                data={
                    "ltv": quantize(ltv),
                    "total_loans": total_exposure,
                    "total_collateral": collateral_value,
                },
            )
        )

    line_map = {line.credit_line_id: line for line in credit_lines}
    for facility in facilities:
        if not facility.enable_revolving_tracking:
            continue
        facility_loans = [
            loan for loan in live if loan_facility_id(loan, line_map) == facility.facility_id
        ]
        if not facility_loans:
            continue
        if not facility.max_revolving_period or facility.max_revolving_period <= 0:
            facility = replace(
                facility, max_revolving_period=config.default_max_revolving_period
            )
        usage = facility_revolving_usage(facility, facility_loans, credit_lines)
        if usage.percentage_used > config.revolving_threshold:
            bank_name = bank_names.get(facility.bank_id, "Unknown")
            alerts.append(
                Alert(
                    alert_id=f"revolving-limit-{facility.facility_id}",
                    category=AlertCategory.MEDIUM,
                    title="Revolving Period Limit Approaching",
                    message=(
                        f"Facility at {bank_name} has used {usage.percentage_used}% "
                        f"of revolving period"
                    ),
                    action_required="Monitor usage and plan for period renewal",
                    data={
                        "facility_id": facility.facility_id,
                        "bank_name": bank_name,
                        "days_used": usage.days_used,
                        "max_days": usage.max_revolving_period,
                        "usage_percent": usage.percentage_used,
                    },
                )
            )

    upcoming = [
        loan
        for loan in live
        if config.due_soon_days < (loan.due_date - today).days <= config.upcoming_days
    ]
    if upcoming:
        total = _sum_amounts(upcoming)
        alerts.append(
            Alert(
                alert_id=f"monthly-upcoming-{stamp}",
                category=AlertCategory.LOW,
                title=f"{len(upcoming)} Loan(s) Due Within {config.upcoming_days} Days",
                message=(
                    f"{len(upcoming)} loan(s) totaling {_sar(total)} due within "
                    f"{config.upcoming_days} days"
                ),
                action_required="Plan ahead for upcoming payments",
                data=len(upcoming),
            )
        )

    alerts.sort(key=lambda a: a.category.rank)
    return alerts


def count_by_category(alerts: Sequence[Alert]) -> dict[AlertCategory, int]:
    """Number of alerts per category, every category present."""
    counts = {category: 0 for category in AlertCategory}
    for alert in alerts:
        counts[alert.category] += 1
    return counts


def _sum_amounts(loans: Sequence[Loan]) -> Decimal:
    return sum((loan.amount for loan in loans), ZERO)


def _sar(amount: Decimal) -> str:
    return f"SAR {amount:,.2f}"
