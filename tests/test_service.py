"""Tests for the tenant-scoped service layer."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import make_collateral, make_facility
from loan_core.auth import ClaimsAuthProvider
from loan_core.config import LoanCoreConfig, ReminderConfig
from loan_core.exceptions import AccessDeniedError, AuthenticationError, ValidationError
from loan_core.models.credit import (
    AlertCategory,
    CreditLine,
    GuaranteeStatus,
    LoanStatus,
    UrgencyLevel,
)
from loan_core.service import PortfolioService
from loan_core.store.portfolio import PortfolioStore

TODAY = date(2026, 10, 19)


@pytest.fixture
def service(store: PortfolioStore) -> PortfolioService:
    """Service over the sample store with claims auth."""
    return PortfolioService(store, ClaimsAuthProvider())


@pytest.fixture
def intruder() -> dict:
    """Caller from another organization."""
    return {"user": {"claims": {"sub": "user-999"}}, "organization_id": "org-test-002"}


def loan_record(**overrides) -> dict:
    record = {
        "id": "loan-001",
        "facilityId": "fac-001",
        "referenceNumber": "LN-2026-00001",
        "amount": "900000",
        "siborRate": "5.5",
        "margin": "1.5",
        "startDate": "2026-10-01",
        "dueDate": "2026-12-30",
    }
    record.update(overrides)
    return record


def guarantee_record(**overrides) -> dict:
    record = {
        "id": "lg-001",
        "facilityId": "fac-001",
        "referenceNumber": "LG-2026-00001",
        "beneficiary": "Ministry of Housing",
        "amount": "750000",
        "issueDate": "2026-03-01",
        "expiryDate": "2027-03-01",
    }
    record.update(overrides)
    return record


class TestLoans:
    """Tests for booking and servicing loans."""

    def test_create_forces_caller_org(self, service: PortfolioService, auth_context: dict) -> None:
        """Test the caller's organization overrides the record."""
        loan = service.create_loan(
            auth_context, loan_record(organizationId="org-test-002"), today=TODAY
        )

        assert loan.organization_id == "org-test-001"

    def test_create_plans_reminders(self, service: PortfolioService, auth_context: dict) -> None:
        """Test default reminders are planned on creation."""
        service.create_loan(auth_context, loan_record(), today=TODAY)

        dates = sorted(r.reminder_date for r in service.store.get_loan_reminders("loan-001"))
        assert dates == [
            date(2026, 11, 30),
            date(2026, 12, 16),
            date(2026, 12, 23),
            date(2026, 12, 29),
        ]

    def test_auto_reminders_off(self, store: PortfolioStore, auth_context: dict) -> None:
        """Test reminders are skipped when auto-apply is off."""
        config = LoanCoreConfig(reminders=ReminderConfig(auto_apply=False))
        service = PortfolioService(store, ClaimsAuthProvider(), config)

        service.create_loan(auth_context, loan_record(), today=TODAY)

        assert store.reminders == {}

    def test_generated_id(self, service: PortfolioService, auth_context: dict) -> None:
        """Test an ID is generated when the record has none."""
        record = loan_record()
        del record["id"]

        loan = service.create_loan(auth_context, record, today=TODAY)

        assert len(loan.loan_id) == 32

    def test_payment_recorded_by_caller(
        self, service: PortfolioService, auth_context: dict
    ) -> None:
        """Test the payment carries the caller as creator."""
        service.create_loan(auth_context, loan_record(), today=TODAY)

        payment = service.record_payment(auth_context, "loan-001", "100000", TODAY)

        assert payment.created_by == "user-001"
        assert payment.balance_after.principal == Decimal("800000")
        assert service.payment_history(auth_context, "loan-001") == [payment]

    def test_other_org_denied(
        self, service: PortfolioService, auth_context: dict, intruder: dict
    ) -> None:
        """Test another organization cannot touch the loan."""
        service.create_loan(auth_context, loan_record(), today=TODAY)

        with pytest.raises(AccessDeniedError):
            service.record_payment(intruder, "loan-001", "1000", TODAY)
        with pytest.raises(AccessDeniedError):
            service.settle_loan(intruder, "loan-001", TODAY)
        with pytest.raises(AccessDeniedError):
            service.delete_loan(intruder, "loan-001")

    def test_unauthenticated(self, service: PortfolioService) -> None:
        """Test a request without a user is rejected."""
        with pytest.raises(AuthenticationError):
            service.portfolio_summary({})

    def test_lifecycle(self, service: PortfolioService, auth_context: dict) -> None:
        """Test revolve, settle, reverse, cancel and delete through the service."""
        service.create_loan(auth_context, loan_record(), today=TODAY)

        loan = service.revolve_loan(auth_context, "loan-001", date(2026, 12, 30), date(2027, 3, 30))
        assert loan.cycle_number == 2

        assert service.settle_loan(auth_context, "loan-001", TODAY).status == LoanStatus.SETTLED
        assert service.reverse_settlement(auth_context, "loan-001").status == LoanStatus.ACTIVE
        assert service.cancel_loan(auth_context, "loan-001").status == LoanStatus.CANCELLED

        service.delete_loan(auth_context, "loan-001")
        assert service.store.loans == {}

    def test_loan_interest(self, service: PortfolioService, auth_context: dict) -> None:
        """Test accrued and projected interest."""
        service.create_loan(
            auth_context, loan_record(amount="3650000", dueDate="2026-10-31"), today=TODAY
        )

        interest = service.loan_interest(auth_context, "loan-001", date(2026, 10, 11))

        assert interest["effective_rate"] == Decimal("7.0")
        assert interest["accrued_interest"] == Decimal("7000.00")
        assert interest["projected_interest"] == Decimal("21000.00")

    def test_search_payments(
        self, service: PortfolioService, auth_context: dict, intruder: dict
    ) -> None:
        """Test filtered payment history for the caller's organization."""
        service.create_loan(auth_context, loan_record(), today=TODAY)
        service.record_payment(auth_context, "loan-001", "1000", date(2026, 10, 2))
        service.record_payment(auth_context, "loan-001", "2000", date(2026, 10, 9))

        page = service.search_payments(auth_context, from_date=date(2026, 10, 5), loan_id="loan-001")

        assert [p.amount for p in page.items] == [Decimal("2000")]
        assert service.search_payments(intruder).total == 0
        with pytest.raises(AccessDeniedError):
            service.search_payments(intruder, loan_id="loan-001")

    def test_payment_summary(
        self, service: PortfolioService, auth_context: dict, intruder: dict
    ) -> None:
        """Test the per-loan summary through the service."""
        service.create_loan(auth_context, loan_record(), today=TODAY)
        service.record_payment(auth_context, "loan-001", "100000", TODAY)

        summary = service.payment_summary(auth_context, "loan-001")

        assert summary.principal_paid == Decimal("100000")
        assert summary.remaining_balance.principal == Decimal("800000")
        with pytest.raises(AccessDeniedError):
            service.payment_summary(intruder, "loan-001")


class TestPortfolioViews:
    """Tests for exposure, alerts and analytics views."""

    def test_exposures_and_summary(self, service: PortfolioService, auth_context: dict) -> None:
        """Test bank and facility exposure plus the summary."""
        service.create_loan(auth_context, loan_record(amount="2000000"), today=TODAY)
        service.store.add_collateral(make_collateral(value="4000000"))

        [bank] = service.bank_exposures(auth_context)
        [facility] = service.facility_exposures(auth_context)
        summary = service.portfolio_summary(auth_context)

        assert bank.utilization == Decimal("40.00")
        assert facility.available == Decimal("3000000")
        assert summary.portfolio_ltv == Decimal("50.00")

    def test_intruder_sees_empty_portfolio(
        self, service: PortfolioService, auth_context: dict, intruder: dict
    ) -> None:
        """Test views are scoped to the caller's organization."""
        service.create_loan(auth_context, loan_record(), today=TODAY)

        assert service.bank_exposures(intruder) == []
        assert service.portfolio_summary(intruder).total_outstanding == Decimal("0")

    def test_revolving_usage(self, store: PortfolioStore, auth_context: dict, intruder: dict) -> None:
        """Test revolving usage of an owned facility only."""
        store.add_facility(
            make_facility("fac-002", enable_revolving_tracking=True, max_revolving_period=360)
        )
        service = PortfolioService(store, ClaimsAuthProvider())
        service.create_loan(auth_context, loan_record(facilityId="fac-002"), today=TODAY)

        usage = service.revolving_usage(auth_context, "fac-002")

        assert usage.days_used == 90
        assert usage.percentage_used == Decimal("25.0")
        with pytest.raises(AccessDeniedError):
            service.revolving_usage(intruder, "fac-002")

    def test_revolving_usage_via_credit_line(
        self, store: PortfolioStore, auth_context: dict
    ) -> None:
        """Test a loan booked on a credit line alone counts toward its facility."""
        store.add_facility(
            make_facility("fac-002", enable_revolving_tracking=True, max_revolving_period=30)
        )
        store.add_credit_line(
            CreditLine(
                credit_line_id="cl-001",
                facility_id="fac-002",
                organization_id="org-test-001",
                name="Credit Line A",
                credit_limit=Decimal("2500000"),
            )
        )
        service = PortfolioService(store, ClaimsAuthProvider())
        record = loan_record(creditLineId="cl-001", startDate="2026-09-01", dueDate="2026-11-29")
        del record["facilityId"]
        service.create_loan(auth_context, record, today=TODAY)

        usage = service.revolving_usage(auth_context, "fac-002")

        assert usage.days_used == 89
        assert usage.can_revolve is False

    def test_daily_alerts(self, service: PortfolioService, auth_context: dict) -> None:
        """Test an overdue loan yields a critical alert."""
        service.create_loan(
            auth_context,
            loan_record(startDate="2026-08-01", dueDate="2026-10-10"),
            today=TODAY,
        )

        alerts = service.daily_alerts(auth_context, TODAY)

        assert alerts[0].category == AlertCategory.CRITICAL
        assert alerts[0].alert_id == "overdue-2026-10-19"

    def test_upcoming_by_month(self, service: PortfolioService, auth_context: dict) -> None:
        """Test the maturity ladder for the caller."""
        service.create_loan(auth_context, loan_record(), today=TODAY)

        buckets = service.upcoming_by_month(auth_context, TODAY, bank_id="bank-001")

        assert buckets[2].month_key == "2026-12"
        assert buckets[2].count == 1

    def test_activity_with_snapshot(self, service: PortfolioService, auth_context: dict) -> None:
        """Test activity picks up payments and captured snapshots."""
        service.create_loan(auth_context, loan_record(), today=TODAY)
        service.record_payment(auth_context, "loan-001", "50000", TODAY)
        service.capture_snapshot(auth_context, TODAY)

        report = service.activity(auth_context, date(2026, 10, 1), date(2026, 10, 31))

        [october] = report.periods
        assert october.loans_created == 1
        assert october.total_paid == Decimal("50000")
        assert october.snapshot.total_outstanding == Decimal("900000")


class TestNotifications:
    """Tests for due notices and reminder events."""

    def test_due_notices(self, service: PortfolioService, auth_context: dict) -> None:
        """Test only urgent loans produce notices."""
        service.create_loan(
            auth_context, loan_record(dueDate="2026-10-24"), today=TODAY
        )
        service.create_loan(
            auth_context,
            loan_record(id="loan-002", referenceNumber="LN-2026-00002"),
            today=TODAY,
        )

        notices = service.due_notices(auth_context, TODAY)

        [notice] = notices
        assert notice.subject == "loan-001"
        assert notice.data["urgency"] == UrgencyLevel.CRITICAL

    def test_pending_reminder_events_marks_sent(
        self, service: PortfolioService, auth_context: dict
    ) -> None:
        """Test due reminders become events once."""
        service.create_loan(auth_context, loan_record(), today=TODAY)
        later = date(2026, 12, 1)

        events = service.pending_reminder_events(auth_context, later)
        again = service.pending_reminder_events(auth_context, later)

        assert len(events) == 1
        assert events[0].data["title"] == "Payment Due in 30 Days"
        assert again == []


class TestGuarantees:
    """Tests for guarantees scoped to the caller's facilities."""

    def test_create_and_read(self, service: PortfolioService, auth_context: dict) -> None:
        """Test a guarantee is created for the caller and listed."""
        guarantee = service.create_guarantee(
            auth_context, guarantee_record(organizationId="org-test-002")
        )

        assert guarantee.organization_id == "org-test-001"
        assert guarantee.amount == Decimal("750000")
        assert service.get_guarantee(auth_context, "lg-001") is guarantee
        assert service.list_guarantees(auth_context) == [guarantee]
        assert service.facility_guarantees(auth_context, "fac-001") == [guarantee]

    def test_create_on_foreign_facility(
        self, service: PortfolioService, intruder: dict
    ) -> None:
        """Test a caller cannot issue a guarantee on another org's facility."""
        with pytest.raises(AccessDeniedError):
            service.create_guarantee(intruder, guarantee_record())

    def test_create_invalid_record(self, service: PortfolioService, auth_context: dict) -> None:
        """Test record validation errors surface as the domain error."""
        with pytest.raises(ValidationError, match="amount"):
            service.create_guarantee(auth_context, guarantee_record(amount="-5"))

    def test_update(self, service: PortfolioService, auth_context: dict) -> None:
        """Test partial edits in either key style are revalidated and saved."""
        service.create_guarantee(auth_context, guarantee_record())

        updated = service.update_guarantee(
            auth_context, "lg-001", {"expiryDate": "2027-06-30", "status": "released"}
        )

        assert updated.expiry_date.isoformat() == "2027-06-30"
        assert updated.status == GuaranteeStatus.RELEASED
        assert updated.beneficiary == "Ministry of Housing"
        assert service.get_guarantee(auth_context, "lg-001") is updated

    def test_update_rejects_bad_dates(self, service: PortfolioService, auth_context: dict) -> None:
        """Test an edit that inverts the term leaves the guarantee unchanged."""
        service.create_guarantee(auth_context, guarantee_record())

        with pytest.raises(ValidationError, match="before issue_date"):
            service.update_guarantee(auth_context, "lg-001", {"expiry_date": "2026-01-01"})

        assert service.get_guarantee(auth_context, "lg-001").expiry_date.year == 2027

    def test_intruder_denied(
        self, service: PortfolioService, auth_context: dict, intruder: dict
    ) -> None:
        """Test another organization cannot read, edit or delete."""
        service.create_guarantee(auth_context, guarantee_record())

        with pytest.raises(AccessDeniedError):
            service.get_guarantee(intruder, "lg-001")
        with pytest.raises(AccessDeniedError):
            service.update_guarantee(intruder, "lg-001", {"amount": "1"})
        with pytest.raises(AccessDeniedError):
            service.delete_guarantee(intruder, "lg-001")
        with pytest.raises(AccessDeniedError):
            service.facility_guarantees(intruder, "fac-001")
        assert service.list_guarantees(intruder) == []

    def test_delete(self, service: PortfolioService, auth_context: dict) -> None:
        service.create_guarantee(auth_context, guarantee_record())

        service.delete_guarantee(auth_context, "lg-001")

        assert service.list_guarantees(auth_context) == []
