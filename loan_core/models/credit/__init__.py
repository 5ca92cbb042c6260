"""Credit domain models."""

from loan_core.models.credit.bank import Bank
from loan_core.models.credit.collateral import CollateralAsset, CollateralAssignment
from loan_core.models.credit.enums import (
    AlertCategory,
    AllocationType,
    AssignmentLevel,
    CollateralType,
    FacilityType,
    GuaranteeStatus,
    InterestBasis,
    LoanStatus,
    OverpaymentPolicy,
    PeriodGrouping,
    ReminderStatus,
    ReminderType,
    RevolvingStatus,
    UrgencyLevel,
)
from loan_core.models.credit.exposure import (
    BankExposure,
    CreditLineExposure,
    FacilityExposure,
    PortfolioSnapshot,
    PortfolioSummary,
)
from loan_core.models.credit.facility import CreditLine, Facility
from loan_core.models.credit.guarantee import Guarantee
from loan_core.models.credit.loan import Loan, LoanBalance
from loan_core.models.credit.payment import Payment, PaymentAllocation, PaymentSummary
from loan_core.models.credit.reminder import Alert, LoanReminder

__all__ = [
    "Alert",
    "AlertCategory",
    "AllocationType",
    "AssignmentLevel",
    "Bank",
    "BankExposure",
    "CollateralAsset",
    "CollateralAssignment",
    "CollateralType",
    "CreditLine",
    "CreditLineExposure",
    "Facility",
    "FacilityExposure",
    "FacilityType",
    "Guarantee",
    "GuaranteeStatus",
    "InterestBasis",
    "Loan",
    "LoanBalance",
    "LoanReminder",
    "LoanStatus",
    "OverpaymentPolicy",
    "Payment",
    "PaymentAllocation",
    "PaymentSummary",
    "PeriodGrouping",
    "PortfolioSnapshot",
    "PortfolioSummary",
    "ReminderStatus",
    "ReminderType",
    "RevolvingStatus",
    "UrgencyLevel",
]
