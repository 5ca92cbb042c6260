"""Pure computation over credit records: allocation, exposure, urgency."""

from loan_core.engine.alerts import count_by_category, generate_daily_alerts
from loan_core.engine.allocation import (
    PaymentAllocator,
    allocate,
    allocate_custom,
    allocate_standard,
    apply_allocation,
)
from loan_core.engine.analytics import (
    payment_history,
    period_activity,
    summarize_payments,
    upcoming_loans_by_month,
)
from loan_core.engine.interest import (
    accrued_interest,
    calculate_interest,
    projected_interest,
)
from loan_core.engine.portfolio import (
    PortfolioAggregator,
    build_snapshot,
    compute_bank_exposures,
    compute_credit_line_exposures,
    compute_facility_exposures,
    compute_portfolio_summary,
)
from loan_core.engine.reminders import (
    build_due_notices,
    due_reminders,
    plan_auto_reminders,
    reminder_events,
)
from loan_core.engine.revolving import facility_revolving_usage, loan_revolving_usage
from loan_core.engine.urgency import UrgencyClassifier, classify_urgency, days_until

__all__ = [
    "PaymentAllocator",
    "PortfolioAggregator",
    "UrgencyClassifier",
    "accrued_interest",
    "allocate",
    "allocate_custom",
    "allocate_standard",
    "apply_allocation",
    "build_due_notices",
    "build_snapshot",
    "calculate_interest",
    "classify_urgency",
    "compute_bank_exposures",
    "compute_credit_line_exposures",
    "compute_facility_exposures",
    "compute_portfolio_summary",
    "count_by_category",
    "days_until",
    "due_reminders",
    "facility_revolving_usage",
    "generate_daily_alerts",
    "loan_revolving_usage",
    "payment_history",
    "period_activity",
    "plan_auto_reminders",
    "projected_interest",
    "reminder_events",
    "summarize_payments",
    "upcoming_loans_by_month",
]
