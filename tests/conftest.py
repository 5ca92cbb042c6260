"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from loan_core.models.credit import (
    Bank,
    CollateralAsset,
    CollateralType,
    Facility,
    FacilityType,
    Loan,
)
from loan_core.store.portfolio import PortfolioStore

ORG_ID = "org-test-001"
OTHER_ORG_ID = "org-test-002"


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def today() -> date:
    """Fixed business date."""
    return date(2026, 10, 19)


@pytest.fixture
def org_id() -> str:
    """Sample organization ID."""
    return ORG_ID


@pytest.fixture
def other_org_id() -> str:
    """Second organization, for isolation tests."""
    return OTHER_ORG_ID


def make_bank(bank_id: str = "bank-001", name: str = "Saudi National Bank") -> Bank:
    return Bank(bank_id=bank_id, name=name, code="SNB")


def make_facility(
    facility_id: str = "fac-001",
    bank_id: str = "bank-001",
    credit_limit: str = "5000000",
    organization_id: str = ORG_ID,
    facility_type: FacilityType = FacilityType.REVOLVING,
    **kwargs,
) -> Facility:
    return Facility(
        facility_id=facility_id,
        bank_id=bank_id,
        organization_id=organization_id,
        facility_type=facility_type,
        credit_limit=Decimal(credit_limit),
        cost_of_funding=Decimal("6.50"),
        start_date=kwargs.pop("start_date", date(2026, 1, 1)),
        expiry_date=kwargs.pop("expiry_date", date(2027, 12, 31)),
        **kwargs,
    )


def make_loan(
    loan_id: str = "loan-001",
    facility_id: str | None = "fac-001",
    amount: str = "2000000",
    organization_id: str = ORG_ID,
    reference_number: str | None = None,
    **kwargs,
) -> Loan:
    return Loan(
        loan_id=loan_id,
        organization_id=organization_id,
        facility_id=facility_id,
        reference_number=reference_number or f"LN-{loan_id}",
        amount=Decimal(amount),
        sibor_rate=Decimal("5.50"),
        margin=Decimal("1.50"),
        start_date=kwargs.pop("start_date", date(2026, 9, 1)),
        due_date=kwargs.pop("due_date", date(2026, 11, 30)),
        **kwargs,
    )


def make_collateral(
    collateral_id: str = "col-001",
    value: str = "4000000",
    organization_id: str = ORG_ID,
    **kwargs,
) -> CollateralAsset:
    return CollateralAsset(
        collateral_id=collateral_id,
        organization_id=organization_id,
        collateral_type=kwargs.pop("collateral_type", CollateralType.REAL_ESTATE),
        name=kwargs.pop("name", "Riyadh plot 1200"),
        current_value=Decimal(value),
        valuation_date=kwargs.pop("valuation_date", date(2026, 6, 1)),
        **kwargs,
    )


@pytest.fixture
def bank() -> Bank:
    """Sample bank."""
    return make_bank()


@pytest.fixture
def facility() -> Facility:
    """Revolving facility of SAR 5M at the sample bank."""
    return make_facility()


@pytest.fixture
def loan() -> Loan:
    """Active SAR 2M loan on the sample facility."""
    return make_loan()


@pytest.fixture
def store(bank: Bank, facility: Facility) -> PortfolioStore:
    """Fresh store holding the sample bank and facility."""
    store = PortfolioStore()
    store.add_bank(bank)
    store.add_facility(facility)
    return store


@pytest.fixture
def auth_context(org_id: str) -> dict:
    """Request context carrying OIDC-style claims."""
    return {"user": {"claims": {"sub": "user-001"}}, "organization_id": org_id}
