"""Enumeration types for credit domain entities."""

from enum import Enum


class FacilityType(str, Enum):
    REVOLVING = "revolving"
    TERM = "term"
    BULLET = "bullet"
    BRIDGE = "bridge"
    WORKING_CAPITAL = "working_capital"
    NON_CASH_GUARANTEE = "non_cash_guarantee"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    SETTLED = "settled"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class GuaranteeStatus(str, Enum):
    ACTIVE = "active"
    RELEASED = "released"  # returned by the beneficiary
    EXPIRED = "expired"


class InterestBasis(str, Enum):
    ACTUAL_365 = "actual_365"
    ACTUAL_360 = "actual_360"


class CollateralType(str, Enum):
    REAL_ESTATE = "real_estate"
    LIQUID_STOCKS = "liquid_stocks"
    OTHER = "other"


class AssignmentLevel(str, Enum):
    BANK = "bank"
    FACILITY = "facility"
    CREDIT_LINE = "credit_line"


class AllocationType(str, Enum):
    STANDARD = "standard"
    CUSTOM = "custom"


class OverpaymentPolicy(str, Enum):
    """What to do with the part of a payment above the outstanding balance."""

    REJECT = "reject"
    CREDIT = "credit"  # kept as unapplied prepayment credit


class UrgencyLevel(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"


class RevolvingStatus(str, Enum):
    AVAILABLE = "available"
    WARNING = "warning"
    CRITICAL = "critical"
    EXPIRED = "expired"


class AlertCategory(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort key, most severe first."""
        return _ALERT_RANK[self]


_ALERT_RANK = {
    AlertCategory.CRITICAL: 0,
    AlertCategory.HIGH: 1,
    AlertCategory.MEDIUM: 2,
    AlertCategory.LOW: 3,
}


class ReminderType(str, Enum):
    DUE_DATE = "due_date"
    PAYMENT = "payment"
    CUSTOM = "custom"


class ReminderStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    CANCELLED = "cancelled"


class PeriodGrouping(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
