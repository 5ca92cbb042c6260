"""Tenant-scoped entry point for API handlers.

Every call resolves the caller through the injected ``AuthProvider`` and
only touches records of the caller's organization.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import Any, Mapping

from loan_core.auth import AuthenticatedUser, AuthProvider
from loan_core.config import LoanCoreConfig
from loan_core.engine.alerts import generate_daily_alerts
from loan_core.engine.analytics import (
    ActivityReport,
    MonthBucket,
    PaymentPage,
    period_activity,
    upcoming_loans_by_month,
)
from loan_core.engine.interest import accrued_interest, projected_interest
from loan_core.engine.reminders import build_due_notices, due_reminders, reminder_events
from loan_core.engine.revolving import RevolvingUsage, facility_revolving_usage
from loan_core.exceptions import AccessDeniedError
from loan_core.logging import get_logger
from loan_core.models.base import Event
from loan_core.models.credit import (
    Alert,
    BankExposure,
    FacilityExposure,
    FacilityType,
    Guarantee,
    Loan,
    Payment,
    PaymentAllocation,
    PaymentSummary,
    PeriodGrouping,
    PortfolioSnapshot,
    PortfolioSummary,
)
from loan_core.records import guarantee_from_record, loan_from_record
from loan_core.store.portfolio import PortfolioStore

logger = get_logger(__name__)


class PortfolioService:
    """Authenticated operations over a ``PortfolioStore``.

    Parameters
    ----------
    store : PortfolioStore
        Backing store.
    auth : AuthProvider
        Strategy resolved once at startup (see ``resolve_auth_provider``).
    config : LoanCoreConfig | None
        Thresholds and reminder defaults.
    """

    def __init__(
        self,
        store: PortfolioStore,
        auth: AuthProvider,
        config: LoanCoreConfig | None = None,
    ) -> None:
        self.store = store
        self.auth = auth
        self.config = config or LoanCoreConfig()

    def _caller(self, context: Mapping[str, Any]) -> AuthenticatedUser:
        return self.auth.get_current_user(context)

    def _owned_loan(self, user: AuthenticatedUser, loan_id: str) -> Loan:
        loan = self.store.get_loan(loan_id)
        if loan.organization_id != user.organization_id:
            logger.warning(
                "User %s denied access to loan %s of another organization",
                user.user_id,
                loan_id,
            )
            raise AccessDeniedError(f"Loan {loan_id} belongs to another organization")
        return loan

    # Loans

    def create_loan(
        self, context: Mapping[str, Any], record: Mapping[str, Any], today: date | None = None
    ) -> Loan:
        """Parse and book a loan for the caller's organization.

        Automatic reminders are planned when ``reminders.auto_apply`` is on.
        """
        user = self._caller(context)
        loan = loan_from_record(_scoped(record, user.organization_id))
        self.store.create_loan(loan)

        settings = self.config.reminders
        if settings.auto_apply and settings.default_intervals:
            self.store.plan_reminders(
                loan.loan_id,
                settings.default_intervals,
                today or date.today(),
                email_enabled=settings.email_enabled,
                calendar_enabled=settings.calendar_enabled,
            )
        return loan

    def record_payment(
        self,
        context: Mapping[str, Any],
        loan_id: str,
        amount: Decimal | str | int,
        payment_date: date,
        split: Mapping[str, Any] | PaymentAllocation | None = None,
        *,
        expected_version: int | None = None,
        reference: str | None = None,
    ) -> Payment:
        """Record a repayment; a ``split`` switches to custom allocation."""
        user = self._caller(context)
        self._owned_loan(user, loan_id)
        return self.store.record_payment(
            loan_id,
            amount,
            payment_date,
            split,
            expected_version=expected_version,
            created_by=user.user_id,
            reference=reference,
        )

    def payment_history(self, context: Mapping[str, Any], loan_id: str) -> list[Payment]:
        user = self._caller(context)
        self._owned_loan(user, loan_id)
        return self.store.get_loan_payments(loan_id)

    def search_payments(
        self,
        context: Mapping[str, Any],
        *,
        from_date: date | None = None,
        to_date: date | None = None,
        loan_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> PaymentPage:
        """Page through the organization's payments, newest first."""
        user = self._caller(context)
        if loan_id is not None:
            self._owned_loan(user, loan_id)
        return self.store.get_payment_history(
            user.organization_id, from_date, to_date, loan_id, limit, offset
        )

    def payment_summary(self, context: Mapping[str, Any], loan_id: str) -> PaymentSummary:
        user = self._caller(context)
        self._owned_loan(user, loan_id)
        return self.store.payment_summary(loan_id)

    def revolve_loan(
        self,
        context: Mapping[str, Any],
        loan_id: str,
        start_date: date,
        due_date: date,
        sibor_rate: Decimal | None = None,
    ) -> Loan:
        user = self._caller(context)
        self._owned_loan(user, loan_id)
        return self.store.revolve_loan(loan_id, start_date, due_date, sibor_rate)

    def settle_loan(
        self,
        context: Mapping[str, Any],
        loan_id: str,
        settled_date: date,
        settled_amount: Decimal | None = None,
    ) -> Loan:
        user = self._caller(context)
        self._owned_loan(user, loan_id)
        return self.store.settle_loan(loan_id, settled_date, settled_amount)

    def reverse_settlement(
        self, context: Mapping[str, Any], loan_id: str, reason: str | None = None
    ) -> Loan:
        user = self._caller(context)
        self._owned_loan(user, loan_id)
        return self.store.reverse_settlement(loan_id, reason)

    def cancel_loan(self, context: Mapping[str, Any], loan_id: str) -> Loan:
        user = self._caller(context)
        self._owned_loan(user, loan_id)
        return self.store.cancel_loan(loan_id)

    def delete_loan(self, context: Mapping[str, Any], loan_id: str) -> None:
        user = self._caller(context)
        self._owned_loan(user, loan_id)
        self.store.delete_loan(loan_id)

    def loan_interest(
        self, context: Mapping[str, Any], loan_id: str, as_of: date
    ) -> dict[str, Decimal]:
        """Accrued-to-date and full-tenor interest of one loan."""
        user = self._caller(context)
        loan = self._owned_loan(user, loan_id)
        return {
            "effective_rate": loan.effective_rate,
            "accrued_interest": accrued_interest(loan, as_of),
            "projected_interest": projected_interest(loan),
        }

    # Guarantees

    def _owned_guarantee(self, user: AuthenticatedUser, guarantee_id: str) -> Guarantee:
        guarantee = self.store.get_guarantee(guarantee_id)
        if guarantee.organization_id != user.organization_id:
            logger.warning(
                "User %s denied access to guarantee %s of another organization",
                user.user_id,
                guarantee_id,
            )
            raise AccessDeniedError(f"Guarantee {guarantee_id} belongs to another organization")
        return guarantee

    def list_guarantees(self, context: Mapping[str, Any]) -> list[Guarantee]:
        user = self._caller(context)
        return self.store.get_guarantees(user.organization_id)

    def get_guarantee(self, context: Mapping[str, Any], guarantee_id: str) -> Guarantee:
        user = self._caller(context)
        return self._owned_guarantee(user, guarantee_id)

    def facility_guarantees(self, context: Mapping[str, Any], facility_id: str) -> list[Guarantee]:
        user = self._caller(context)
        facility = self.store.get_facility(facility_id)
        if facility.organization_id != user.organization_id:
            raise AccessDeniedError(f"Facility {facility_id} belongs to another organization")
        return self.store.get_facility_guarantees(facility_id)

    def create_guarantee(self, context: Mapping[str, Any], record: Mapping[str, Any]) -> Guarantee:
        """Parse and register a guarantee on one of the caller's facilities."""
        user = self._caller(context)
        guarantee = guarantee_from_record(_scoped(record, user.organization_id))
        self.store.add_guarantee(guarantee)
        return guarantee

    def update_guarantee(
        self, context: Mapping[str, Any], guarantee_id: str, changes: Mapping[str, Any]
    ) -> Guarantee:
        """Apply ``changes`` (either key style) to a guarantee and revalidate it."""
        user = self._caller(context)
        existing = self._owned_guarantee(user, guarantee_id)
        current = {**asdict(existing), "id": guarantee_id}
        edits = {k: v for k, v in _scoped(changes, user.organization_id).items() if k != "id"}
        guarantee = guarantee_from_record({**current, **edits})
        return self.store.update_guarantee(guarantee)

    def delete_guarantee(self, context: Mapping[str, Any], guarantee_id: str) -> None:
        user = self._caller(context)
        self._owned_guarantee(user, guarantee_id)
        self.store.delete_guarantee(guarantee_id, user.organization_id)

    # Portfolio views

    def bank_exposures(self, context: Mapping[str, Any]) -> list[BankExposure]:
        user = self._caller(context)
        return self.store.bank_exposures(user.organization_id)

    def facility_exposures(self, context: Mapping[str, Any]) -> list[FacilityExposure]:
        user = self._caller(context)
        return self.store.facility_exposures(user.organization_id)

    def portfolio_summary(self, context: Mapping[str, Any]) -> PortfolioSummary:
        user = self._caller(context)
        return self.store.portfolio_summary(user.organization_id)

    def revolving_usage(
        self, context: Mapping[str, Any], facility_id: str
    ) -> RevolvingUsage:
        user = self._caller(context)
        facility = self.store.get_facility(facility_id)
        if facility.organization_id != user.organization_id:
            raise AccessDeniedError(f"Facility {facility_id} belongs to another organization")
        return facility_revolving_usage(
            facility,
            self.store.get_loans(user.organization_id),
            self.store.get_credit_lines(user.organization_id),
        )

    def daily_alerts(self, context: Mapping[str, Any], today: date) -> list[Alert]:
        user = self._caller(context)
        org = user.organization_id
        alerts = generate_daily_alerts(
            self.store.get_loans(org),
            self.store.get_facilities(org),
            self.store.get_banks(org),
            self.store.get_collateral_assets(org),
            today,
            self.config.alerts,
            self.store.get_credit_lines(org),
        )
        logger.info("Generated %d alerts for %s", len(alerts), org)
        return alerts

    def upcoming_by_month(
        self,
        context: Mapping[str, Any],
        today: date,
        *,
        bank_id: str | None = None,
        facility_type: FacilityType | None = None,
    ) -> list[MonthBucket]:
        user = self._caller(context)
        org = user.organization_id
        return upcoming_loans_by_month(
            self.store.get_loans(org),
            self.store.get_facilities(org),
            today,
            bank_id=bank_id,
            facility_type=facility_type,
            credit_lines=self.store.get_credit_lines(org),
        )

    def activity(
        self,
        context: Mapping[str, Any],
        start: date,
        end: date,
        group_by: PeriodGrouping = PeriodGrouping.MONTH,
    ) -> ActivityReport:
        user = self._caller(context)
        org = user.organization_id
        return period_activity(
            self.store.get_loans(org),
            self.store.get_payments(org),
            start,
            end,
            group_by,
            self.store.get_snapshots(org),
        )

    def capture_snapshot(self, context: Mapping[str, Any], snapshot_date: date) -> PortfolioSnapshot:
        user = self._caller(context)
        return self.store.capture_snapshot(user.organization_id, snapshot_date)

    # Notifications

    def due_notices(self, context: Mapping[str, Any], today: date) -> list[Event]:
        """Due-notice events for the caller's loans that are critical or warning."""
        user = self._caller(context)
        notices = build_due_notices(
            self.store.get_loans(user.organization_id),
            today,
            urgency=self.config.urgency,
        )
        logger.info("Built %d due notices for %s", len(notices), user.organization_id)
        return notices

    def pending_reminder_events(self, context: Mapping[str, Any], today: date) -> list[Event]:
        """Events for reminders that fell due, marking them sent."""
        user = self._caller(context)
        reminders = due_reminders(self.store.get_reminders(user.organization_id), today)
        events = reminder_events(reminders, self.store.loans)
        for reminder in reminders:
            self.store.mark_reminder_sent(reminder.reminder_id)
        return events


def _scoped(record: Mapping[str, Any], organization_id: str) -> dict[str, Any]:
    """Copy ``record`` with a fresh id and the caller's organization, whatever the key style."""
    data = {k: v for k, v in record.items() if k not in ("organization_id", "organizationId")}
    return {"id": uuid.uuid4().hex, **data, "organization_id": organization_id}
