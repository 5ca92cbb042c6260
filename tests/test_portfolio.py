"""Tests for portfolio exposure aggregation."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import make_bank, make_collateral, make_facility, make_loan
from loan_core.engine.portfolio import (
    PortfolioAggregator,
    build_snapshot,
    compute_bank_exposures,
    compute_credit_line_exposures,
    compute_facility_exposures,
    compute_portfolio_summary,
    resolve_facility_id,
    utilization,
)
from loan_core.exceptions import ReferentialIntegrityError
from loan_core.models.credit import CreditLine, LoanStatus


@pytest.fixture
def credit_line() -> CreditLine:
    """Credit line under fac-002."""
    return CreditLine(
        credit_line_id="cl-001",
        facility_id="fac-002",
        organization_id="org-test-001",
        name="Credit Line 1",
        credit_limit=Decimal("3000000"),
    )


class TestUtilization:
    """Tests for the utilization ratio."""

    def test_ratio(self) -> None:
        """Test a plain percentage."""
        assert utilization(Decimal("2000000"), Decimal("8000000")) == Decimal("25.00")

    def test_zero_limit(self) -> None:
        """Test that a zero limit gives zero, not an error."""
        assert utilization(Decimal("100"), Decimal("0")) == Decimal("0")

    def test_rounded_to_two_places(self) -> None:
        """Test half-up rounding."""
        assert utilization(Decimal("1"), Decimal("3")) == Decimal("33.33")
        assert utilization(Decimal("2"), Decimal("3")) == Decimal("66.67")


class TestResolveFacility:
    """Tests for finding a loan's facility."""

    def test_direct_facility(self) -> None:
        """Test a loan with a facility ID."""
        facilities = {"fac-001": make_facility()}

        assert resolve_facility_id(make_loan(), facilities, {}) == "fac-001"

    def test_via_credit_line(self, credit_line: CreditLine) -> None:
        """Test a loan drawn only through a credit line."""
        facilities = {"fac-002": make_facility("fac-002")}
        loan = make_loan(facility_id=None, credit_line_id="cl-001")

        assert resolve_facility_id(loan, facilities, {"cl-001": credit_line}) == "fac-002"

    def test_unknown_facility(self) -> None:
        """Test that an unknown facility raises."""
        with pytest.raises(ReferentialIntegrityError):
            resolve_facility_id(make_loan(facility_id="missing"), {}, {})

    def test_unknown_credit_line(self) -> None:
        """Test that an unknown credit line raises."""
        loan = make_loan(facility_id=None, credit_line_id="missing")

        with pytest.raises(ReferentialIntegrityError):
            resolve_facility_id(loan, {}, {})

    def test_neither_reference(self) -> None:
        """Test that a loan with no facility reference raises."""
        with pytest.raises(ReferentialIntegrityError, match="neither"):
            resolve_facility_id(make_loan(facility_id=None), {}, {})


class TestBankExposures:
    """Tests for per-bank exposure."""

    def test_limits_summed_across_facilities(self) -> None:
        """Test Bank X with 5M and 3M facilities and one 2M loan."""
        bank = make_bank("bank-x", "Bank X")
        facilities = [
            make_facility("fac-001", "bank-x", "5000000"),
            make_facility("fac-002", "bank-x", "3000000"),
        ]
        loans = [make_loan(amount="2000000")]

        [exposure] = compute_bank_exposures([bank], facilities, loans)

        assert exposure.bank_name == "Bank X"
        assert exposure.outstanding == Decimal("2000000")
        assert exposure.credit_limit == Decimal("8000000")
        assert exposure.utilization == Decimal("25.00")
        assert exposure.is_over_limit is False

    def test_only_active_loans_count(self) -> None:
        """Test that settled and cancelled loans are ignored."""
        loans = [
            make_loan("loan-001", amount="1000000"),
            make_loan("loan-002", amount="500000", status=LoanStatus.SETTLED),
            make_loan("loan-003", amount="700000", status=LoanStatus.CANCELLED),
        ]

        [exposure] = compute_bank_exposures([make_bank()], [make_facility()], loans)

        assert exposure.outstanding == Decimal("1000000")

    def test_bank_without_facilities(self) -> None:
        """Test a bank with no limit reports zero utilization."""
        [exposure] = compute_bank_exposures([make_bank("bank-002", "Riyad Bank")], [], [])

        assert exposure.credit_limit == Decimal("0")
        assert exposure.utilization == Decimal("0")

    def test_order_follows_banks(self) -> None:
        """Test output order matches the input bank order."""
        banks = [make_bank("bank-b", "B"), make_bank("bank-a", "A")]

        exposures = compute_bank_exposures(banks, [], [])

        assert [e.bank_id for e in exposures] == ["bank-b", "bank-a"]

    def test_over_limit(self) -> None:
        """Test an over-utilized bank."""
        facilities = [make_facility(credit_limit="1000000")]
        loans = [make_loan(amount="1500000")]

        [exposure] = compute_bank_exposures([make_bank()], facilities, loans)

        assert exposure.utilization == Decimal("150.00")
        assert exposure.is_over_limit is True

    def test_loan_via_credit_line(self, credit_line: CreditLine) -> None:
        """Test a loan resolved through its credit line."""
        facilities = [make_facility("fac-002")]
        loans = [make_loan(facility_id=None, credit_line_id="cl-001", amount="1000000")]

        [exposure] = compute_bank_exposures([make_bank()], facilities, loans, [credit_line])

        assert exposure.outstanding == Decimal("1000000")

    def test_unresolvable_loan_raises(self) -> None:
        """Test that a loan on an unknown facility is not silently dropped."""
        with pytest.raises(ReferentialIntegrityError):
            compute_bank_exposures([make_bank()], [], [make_loan()])


class TestFacilityExposures:
    """Tests for per-facility availability."""

    def test_available_and_count(self) -> None:
        """Test outstanding, available and active loan count."""
        loans = [
            make_loan("loan-001", amount="1000000"),
            make_loan("loan-002", amount="1500000"),
        ]

        [exposure] = compute_facility_exposures([make_facility()], loans)

        assert exposure.outstanding == Decimal("2500000")
        assert exposure.available == Decimal("2500000")
        assert exposure.utilization == Decimal("50.00")
        assert exposure.active_loans == 2

    def test_negative_available(self) -> None:
        """Test that availability is not clamped."""
        [exposure] = compute_facility_exposures(
            [make_facility(credit_limit="1000000")], [make_loan(amount="1200000")]
        )

        assert exposure.available == Decimal("-200000")
        assert exposure.is_over_limit is True


class TestCreditLineExposures:
    """Tests for per-credit-line availability."""

    def test_credit_line_usage(self, credit_line: CreditLine) -> None:
        """Test usage of a credit line."""
        loans = [
            make_loan(facility_id="fac-002", credit_line_id="cl-001", amount="600000"),
            make_loan("loan-002", facility_id="fac-002", amount="900000"),
        ]

        [exposure] = compute_credit_line_exposures([credit_line], loans)

        assert exposure.outstanding == Decimal("600000")
        assert exposure.available == Decimal("2400000")
        assert exposure.utilization == Decimal("20.00")
        assert exposure.active_loans == 1


class TestPortfolioSummary:
    """Tests for the portfolio roll-up."""

    def test_summary_with_collateral(self) -> None:
        """Test totals, LTV and coverage."""
        exposures = compute_bank_exposures(
            [make_bank()], [make_facility()], [make_loan(amount="2000000")]
        )

        summary = compute_portfolio_summary(exposures, [make_collateral(value="4000000")])

        assert summary.total_outstanding == Decimal("2000000")
        assert summary.total_credit_limit == Decimal("5000000")
        assert summary.total_available == Decimal("3000000")
        assert summary.total_collateral_value == Decimal("4000000")
        assert summary.portfolio_ltv == Decimal("50.00")
        assert summary.coverage_ratio == Decimal("200.00")

    def test_no_collateral(self) -> None:
        """Test that LTV is None without collateral."""
        exposures = compute_bank_exposures([make_bank()], [make_facility()], [make_loan()])

        summary = compute_portfolio_summary(exposures, [])

        assert summary.portfolio_ltv is None
        assert summary.coverage_ratio == Decimal("0.00")

    def test_no_outstanding(self) -> None:
        """Test that coverage is None with nothing drawn."""
        exposures = compute_bank_exposures([make_bank()], [make_facility()], [])

        summary = compute_portfolio_summary(exposures, [make_collateral()])

        assert summary.coverage_ratio is None
        assert summary.portfolio_ltv == Decimal("0.00")

    def test_empty_portfolio(self) -> None:
        """Test that an empty portfolio returns zeros without error."""
        summary = compute_portfolio_summary([], [])

        assert summary.total_outstanding == Decimal("0")
        assert summary.total_credit_limit == Decimal("0")
        assert summary.portfolio_ltv is None
        assert summary.coverage_ratio is None

    def test_inactive_collateral_excluded(self) -> None:
        """Test that inactive assets do not count."""
        exposures = compute_bank_exposures([make_bank()], [make_facility()], [make_loan()])
        collateral = [
            make_collateral("col-001", "4000000"),
            make_collateral("col-002", "9000000", is_active=False),
        ]

        summary = compute_portfolio_summary(exposures, collateral)

        assert summary.total_collateral_value == Decimal("4000000")

    def test_negative_available(self) -> None:
        """Test over-utilized portfolio."""
        exposures = compute_bank_exposures(
            [make_bank()], [make_facility(credit_limit="1000000")], [make_loan()]
        )

        summary = compute_portfolio_summary(exposures, [])

        assert summary.total_available == Decimal("-1000000")


class TestSnapshot:
    """Tests for snapshot building."""

    def test_metrics(self) -> None:
        """Test loan-size metrics and bank exposure copy."""
        loans = [
            make_loan("loan-001", amount="1000000"),
            make_loan("loan-002", amount="3000000"),
        ]
        facilities = [make_facility(credit_limit="8000000")]
        summary = PortfolioAggregator().summarize([make_bank()], facilities, loans, [])

        snapshot = build_snapshot(
            "org-test-001", date(2026, 10, 19), summary, loans, facilities, snapshot_id="snap-1"
        )

        assert snapshot.snapshot_id == "snap-1"
        assert snapshot.total_outstanding == Decimal("4000000")
        assert snapshot.active_loans_count == 2
        assert snapshot.metrics["avg_loan_size"] == Decimal("2000000.00")
        assert snapshot.metrics["max_loan_size"] == Decimal("3000000")
        assert snapshot.metrics["min_loan_size"] == Decimal("1000000")
        assert snapshot.metrics["utilization_rate"] == Decimal("50.00")
        assert snapshot.metrics["bank_count"] == 1
        assert snapshot.bank_exposures[0]["bank_id"] == "bank-001"

    def test_empty_metrics(self) -> None:
        """Test a snapshot of an empty portfolio."""
        summary = compute_portfolio_summary([], [])

        snapshot = build_snapshot("org-test-001", date(2026, 10, 19), summary, [], [])

        assert snapshot.metrics["avg_loan_size"] == Decimal("0")
        assert snapshot.active_loans_count == 0


class TestPortfolioAggregator:
    """Tests for the aggregator facade."""

    def test_summarize(self) -> None:
        """Test exposures and totals in one call."""
        loans = [make_loan(), make_loan("loan-002", status=LoanStatus.SETTLED)]

        summary = PortfolioAggregator().summarize(
            [make_bank()], [make_facility()], loans, [make_collateral()]
        )

        assert summary.active_loans_count == 1
        assert len(summary.bank_exposures) == 1
        assert summary.portfolio_ltv == Decimal("50.00")

    def test_recomputed_after_settlement(self) -> None:
        """Test that settling a loan shows up on the next call."""
        aggregator = PortfolioAggregator()
        loan = make_loan()
        before = aggregator.summarize([make_bank()], [make_facility()], [loan], [])

        loan.status = LoanStatus.SETTLED
        after = aggregator.summarize([make_bank()], [make_facility()], [loan], [])

        assert before.total_outstanding == Decimal("2000000")
        assert after.total_outstanding == Decimal("0")
