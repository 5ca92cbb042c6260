"""Derived exposure and snapshot models (never cached by the engine)."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from loan_core.models.credit.enums import FacilityType


@dataclass(frozen=True)
class BankExposure:
    """Outstanding vs. limit for one bank."""

    bank_id: str
    bank_name: str
    outstanding: Decimal
    credit_limit: Decimal
    utilization: Decimal  # percent, 0 when credit_limit is 0

    @property
    def is_over_limit(self) -> bool:
        return self.outstanding > self.credit_limit


@dataclass(frozen=True)
class FacilityExposure:
    """Availability for one facility."""

    facility_id: str
    bank_id: str
    facility_type: FacilityType
    outstanding: Decimal
    credit_limit: Decimal
    available: Decimal  # may be negative when over-utilized
    utilization: Decimal
    active_loans: int

    @property
    def is_over_limit(self) -> bool:
        return self.available < 0


@dataclass(frozen=True)
class CreditLineExposure:
    """Availability for one credit line."""

    credit_line_id: str
    facility_id: str
    outstanding: Decimal
    credit_limit: Decimal
    available: Decimal
    utilization: Decimal
    active_loans: int


@dataclass(frozen=True)
class PortfolioSummary:
    """Portfolio-wide roll-up of bank exposures and collateral."""

    total_outstanding: Decimal
    total_credit_limit: Decimal
    total_available: Decimal
    total_collateral_value: Decimal
    portfolio_ltv: Decimal | None
    coverage_ratio: Decimal | None
    active_loans_count: int = 0
    bank_exposures: tuple[BankExposure, ...] = ()


@dataclass
class PortfolioSnapshot:
    """Dated copy of a portfolio summary, one per organization per day."""

    snapshot_id: str
    organization_id: str
    snapshot_date: date
    total_outstanding: Decimal
    total_credit_limit: Decimal
    portfolio_ltv: Decimal | None
    active_loans_count: int
    bank_exposures: list[dict] = field(default_factory=list)
    metrics: dict = field(default_factory=dict)
