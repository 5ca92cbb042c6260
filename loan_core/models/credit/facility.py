"""Facility and credit line models for credit domain."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loan_core.models.credit.enums import FacilityType


@dataclass
class Facility:
    """Bank-granted credit ceiling against which loans are drawn."""

    facility_id: str
    bank_id: str
    organization_id: str
    facility_type: FacilityType
    credit_limit: Decimal
    cost_of_funding: Decimal  # SIBOR + margin, percent
    start_date: date
    expiry_date: date
    is_active: bool = True
    enable_revolving_tracking: bool = False
    max_revolving_period: int | None = None  # days
    terms: str | None = None


@dataclass
class CreditLine:
    """Optional sub-limit carved out of a facility."""

    credit_line_id: str
    facility_id: str
    organization_id: str
    name: str
    credit_limit: Decimal
    interest_rate: Decimal = Decimal("0")
    is_active: bool = True
    description: str | None = None
