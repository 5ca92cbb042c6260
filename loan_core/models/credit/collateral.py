"""Collateral models for credit domain."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loan_core.models.credit.enums import AssignmentLevel, CollateralType


@dataclass
class CollateralAsset:
    """Pledged asset backing the portfolio."""

    collateral_id: str
    organization_id: str
    collateral_type: CollateralType
    name: str
    current_value: Decimal
    valuation_date: date
    is_active: bool = True
    valuation_source: str | None = None


@dataclass
class CollateralAssignment:
    """Link from an asset to exactly one bank, facility or credit line."""

    assignment_id: str
    collateral_id: str
    organization_id: str
    level: AssignmentLevel
    target_id: str
    is_active: bool = True
