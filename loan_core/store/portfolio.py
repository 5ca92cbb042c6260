"""Credit portfolio store with referential integrity and atomic balance writes."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping

from loan_core.engine.allocation import PaymentAllocator
from loan_core.engine.analytics import PaymentPage, payment_history, summarize_payments
from loan_core.engine.portfolio import (
    active_loans,
    build_snapshot,
    compute_bank_exposures,
    compute_facility_exposures,
    compute_portfolio_summary,
    loan_facility_id,
)
from loan_core.engine.reminders import plan_auto_reminders
from loan_core.engine.revolving import facility_revolving_usage
from loan_core.exceptions import (
    AccessDeniedError,
    ConcurrencyConflictError,
    EntityNotFoundError,
    InvalidEntityStateError,
    ReferentialIntegrityError,
    ValidationError,
)
from loan_core.logging import get_logger
from loan_core.models.credit import (
    AssignmentLevel,
    Bank,
    BankExposure,
    CollateralAsset,
    CollateralAssignment,
    CreditLine,
    Facility,
    FacilityExposure,
    Guarantee,
    Loan,
    LoanBalance,
    LoanReminder,
    LoanStatus,
    Payment,
    PaymentAllocation,
    PaymentSummary,
    PortfolioSnapshot,
    PortfolioSummary,
    ReminderStatus,
)
from loan_core.numeric import ZERO, parse_positive

logger = get_logger(__name__)

_PAYABLE = (LoanStatus.ACTIVE, LoanStatus.OVERDUE)


@dataclass
class PortfolioStore:
    """In-memory store for credit entities, scoped by organization.

    Banks are shared reference data; every other entity carries an
    ``organization_id``. Balance writes happen under a single lock and bump
    ``LoanBalance.version``, so a caller holding a stale version gets
    ``ConcurrencyConflictError`` instead of a lost update.
    """

    allocator: PaymentAllocator = field(default_factory=PaymentAllocator)

    # Primary entities
    banks: dict[str, Bank] = field(default_factory=dict)
    facilities: dict[str, Facility] = field(default_factory=dict)
    credit_lines: dict[str, CreditLine] = field(default_factory=dict)
    loans: dict[str, Loan] = field(default_factory=dict)
    balances: dict[str, LoanBalance] = field(default_factory=dict)
    collateral: dict[str, CollateralAsset] = field(default_factory=dict)
    guarantees: dict[str, Guarantee] = field(default_factory=dict)
    assignments: dict[str, CollateralAssignment] = field(default_factory=dict)
    reminders: dict[str, LoanReminder] = field(default_factory=dict)
    snapshots: dict[tuple[str, date], PortfolioSnapshot] = field(default_factory=dict)

    # Append-only history
    payments: list[Payment] = field(default_factory=list)

    # Relationship indexes
    _facility_credit_lines: dict[str, list[str]] = field(default_factory=dict)
    _loan_payments: dict[str, list[int]] = field(default_factory=dict)
    _references: dict[tuple[str, str], str] = field(default_factory=dict)

    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    # Reference data

    def add_bank(self, bank: Bank) -> None:
        """Add a bank to the store."""
        self.banks[bank.bank_id] = bank

    def add_facility(self, facility: Facility) -> None:
        """Add a facility to the store."""
        if facility.bank_id not in self.banks:
            raise ReferentialIntegrityError(f"Bank {facility.bank_id} not found")

        self.facilities[facility.facility_id] = facility
        self._facility_credit_lines.setdefault(facility.facility_id, [])

    def add_credit_line(self, credit_line: CreditLine) -> None:
        """Add a credit line under an existing facility of the same organization."""
        facility = self.facilities.get(credit_line.facility_id)
        if facility is None:
            raise ReferentialIntegrityError(f"Facility {credit_line.facility_id} not found")
        _check_owner(facility.organization_id, credit_line.organization_id, "Facility", facility.facility_id)

        self.credit_lines[credit_line.credit_line_id] = credit_line
        self._facility_credit_lines[facility.facility_id].append(credit_line.credit_line_id)

    # Loan lifecycle

    def create_loan(self, loan: Loan, *, auto_credit_line: bool = True) -> LoanBalance:
        """Register a new loan and open its balance at the full amount.

        When only a facility is given, the loan is booked against the
        facility's first credit line, creating one that spans the whole
        facility limit if there is none yet.

        Raises
        ------
        ReferentialIntegrityError
            If the facility or credit line does not exist.
        AccessDeniedError
            If either belongs to another organization.
        ValidationError
            If the reference number is taken or the dates are inverted.
        """
        if loan.due_date < loan.start_date:
            raise ValidationError(
                f"due_date {loan.due_date} is before start_date {loan.start_date}"
            )
        parse_positive(loan.amount, "amount")

        with self._lock:
            if loan.loan_id in self.loans:
                raise ValidationError(f"Loan {loan.loan_id} already exists")
            key = (loan.organization_id, loan.reference_number)
            if key in self._references:
                raise ValidationError(
                    f"Reference number {loan.reference_number} already exists"
                )

            if loan.credit_line_id is not None:
                line = self.credit_lines.get(loan.credit_line_id)
                if line is None:
                    raise ReferentialIntegrityError(
                        f"Credit line {loan.credit_line_id} not found"
                    )
                _check_owner(line.organization_id, loan.organization_id, "Credit line", line.credit_line_id)
                if loan.facility_id is not None and line.facility_id != loan.facility_id:
                    raise ValidationError(
                        f"Credit line {line.credit_line_id} does not belong to "
                        f"facility {loan.facility_id}"
                    )
                if loan.facility_id is None:
                    loan.facility_id = line.facility_id

            if loan.facility_id is not None:
                facility = self.facilities.get(loan.facility_id)
                if facility is None:
                    raise ReferentialIntegrityError(f"Facility {loan.facility_id} not found")
                _check_owner(facility.organization_id, loan.organization_id, "Facility", facility.facility_id)
                if loan.credit_line_id is None and auto_credit_line:
                    loan.credit_line_id = self._default_credit_line(facility).credit_line_id

            now = datetime.now()
            loan.created_at = loan.created_at or now
            loan.updated_at = now

            balance = LoanBalance(principal=loan.amount)
            self.loans[loan.loan_id] = loan
            self.balances[loan.loan_id] = balance
            self._loan_payments[loan.loan_id] = []
            self._references[key] = loan.loan_id

        logger.info(
            "Created loan %s (%s) for %s",
            loan.reference_number,
            loan.loan_id,
            loan.amount,
            extra={"loan_id": loan.loan_id, "organization_id": loan.organization_id},
        )
        return balance

    def _default_credit_line(self, facility: Facility) -> CreditLine:
        for line_id in self._facility_credit_lines.get(facility.facility_id, []):
            line = self.credit_lines[line_id]
            if line.is_active:
                return line

        bank = self.banks.get(facility.bank_id)
        line = CreditLine(
            credit_line_id=uuid.uuid4().hex,
            facility_id=facility.facility_id,
            organization_id=facility.organization_id,
            name=f"Credit Line 1 - {bank.name if bank else 'Bank'}",
            credit_limit=facility.credit_limit,
            interest_rate=facility.cost_of_funding,
            description="Auto-created credit line for loan drawdown",
        )
        self.add_credit_line(line)
        logger.info("Auto-created credit line %s for facility %s", line.credit_line_id, facility.facility_id)
        return line

    def revolve_loan(
        self,
        loan_id: str,
        start_date: date,
        due_date: date,
        sibor_rate: Decimal | None = None,
    ) -> Loan:
        """Roll an active loan into a new period.

        Reference number and amount are kept; dates, SIBOR and the cycle
        number change. Facilities that track revolving periods must still
        have days remaining.
        """
        if due_date < start_date:
            raise ValidationError(f"due_date {due_date} is before start_date {start_date}")

        with self._lock:
            loan = self.get_loan(loan_id)
            if loan.status != LoanStatus.ACTIVE:
                raise InvalidEntityStateError(
                    f"Loan {loan_id} is {loan.status.value}; only active loans can revolve"
                )

            facility_id = loan_facility_id(loan, self.credit_lines)
            facility = self.facilities.get(facility_id) if facility_id else None
            if facility is not None and facility.enable_revolving_tracking and facility.max_revolving_period:
                usage = facility_revolving_usage(
                    facility, self.loans.values(), self.credit_lines.values()
                )
                if not usage.can_revolve:
                    raise InvalidEntityStateError(
                        f"Facility {facility.facility_id} has used its revolving period"
                    )

            loan.start_date = start_date
            loan.due_date = due_date
            if sibor_rate is not None:
                loan.sibor_rate = sibor_rate
            loan.cycle_number += 1
            loan.updated_at = datetime.now()

        logger.info("Revolved loan %s into cycle %d", loan.reference_number, loan.cycle_number)
        return loan

    def settle_loan(
        self,
        loan_id: str,
        settled_date: date,
        settled_amount: Decimal | None = None,
    ) -> Loan:
        """Mark a loan settled. The amount defaults to the loan amount."""
        with self._lock:
            loan = self.get_loan(loan_id)
            if loan.status not in _PAYABLE:
                raise InvalidEntityStateError(
                    f"Loan {loan_id} is {loan.status.value} and cannot be settled"
                )
            loan.status = LoanStatus.SETTLED
            loan.settled_date = settled_date
            loan.settled_amount = settled_amount if settled_amount is not None else loan.amount
            loan.updated_at = datetime.now()

        logger.info("Settled loan %s on %s", loan.reference_number, settled_date)
        return loan

    def reverse_settlement(self, loan_id: str, reason: str | None = None) -> Loan:
        """Put a settled loan back to active and clear its settlement fields."""
        with self._lock:
            loan = self.get_loan(loan_id)
            if loan.status != LoanStatus.SETTLED:
                raise InvalidEntityStateError(f"Loan {loan_id} is not settled")
            loan.status = LoanStatus.ACTIVE
            loan.settled_date = None
            loan.settled_amount = None
            loan.updated_at = datetime.now()

        logger.info("Reversed settlement of loan %s: %s", loan.reference_number, reason or "no reason given")
        return loan

    def cancel_loan(self, loan_id: str) -> Loan:
        """Cancel an active loan; it stops counting toward exposure."""
        with self._lock:
            loan = self.get_loan(loan_id)
            if loan.status != LoanStatus.ACTIVE:
                raise InvalidEntityStateError(
                    f"Loan {loan_id} is {loan.status.value} and cannot be cancelled"
                )
            loan.status = LoanStatus.CANCELLED
            loan.updated_at = datetime.now()

        logger.info("Cancelled loan %s", loan.reference_number)
        return loan

    def delete_loan(self, loan_id: str) -> None:
        """Remove a loan with its balance, payments and reminders."""
        with self._lock:
            loan = self.get_loan(loan_id)
            del self.loans[loan_id]
            del self.balances[loan_id]
            del self._references[(loan.organization_id, loan.reference_number)]

            payment_idx = set(self._loan_payments.pop(loan_id, []))
            if payment_idx:
                self.payments = [p for i, p in enumerate(self.payments) if i not in payment_idx]
                self._reindex_payments()

            for reminder_id in [r.reminder_id for r in self.reminders.values() if r.loan_id == loan_id]:
                del self.reminders[reminder_id]

        logger.info("Deleted loan %s", loan.reference_number)

    def _reindex_payments(self) -> None:
        self._loan_payments = {loan_id: [] for loan_id in self.loans}
        for idx, payment in enumerate(self.payments):
            self._loan_payments.setdefault(payment.loan_id, []).append(idx)

    # Balance writes

    def charge_interest(self, loan_id: str, amount: Decimal, *, expected_version: int | None = None) -> LoanBalance:
        """Add accrued interest to a loan's interest bucket."""
        return self._charge(loan_id, "interest", amount, expected_version)

    def add_fee(self, loan_id: str, amount: Decimal, *, expected_version: int | None = None) -> LoanBalance:
        """Add a fee or charge to a loan's fees bucket."""
        return self._charge(loan_id, "fees", amount, expected_version)

    def _charge(
        self, loan_id: str, bucket: str, amount: Decimal, expected_version: int | None
    ) -> LoanBalance:
        amount = parse_positive(amount, bucket)
        with self._lock:
            loan = self.get_loan(loan_id)
            if loan.status not in _PAYABLE:
                raise InvalidEntityStateError(
                    f"Loan {loan_id} is {loan.status.value}; cannot charge {bucket}"
                )
            balance = self._balance_for_write(loan_id, expected_version)
            updated = balance.bump(**{bucket: getattr(balance, bucket) + amount})
            self.balances[loan_id] = updated

        logger.debug("Charged %s %s to loan %s", amount, bucket, loan_id)
        return updated

    def record_payment(
        self,
        loan_id: str,
        amount: Decimal | str | int,
        payment_date: date,
        split: Mapping[str, Any] | PaymentAllocation | None = None,
        *,
        expected_version: int | None = None,
        created_by: str | None = None,
        reference: str | None = None,
    ) -> Payment:
        """Allocate a payment and apply it to the loan balance atomically.

        Read, allocate, apply and write all happen under the store lock.
        Validation failures (bad split, overpayment) raise before anything
        is written.

        Parameters
        ----------
        loan_id : str
            Loan being repaid.
        amount : Decimal | str | int
            Payment amount.
        payment_date : date
            Value date of the payment.
        split : Mapping | PaymentAllocation | None
            Custom fees / interest / principal split. None runs the waterfall.
        expected_version : int | None
            Balance version the caller read. A mismatch raises
            ``ConcurrencyConflictError``.

        Returns
        -------
        Payment
            The recorded payment, including the balance after it.
        """
        with self._lock:
            loan = self.get_loan(loan_id)
            if loan.status not in _PAYABLE:
                raise InvalidEntityStateError(
                    f"Loan {loan_id} is {loan.status.value} and cannot take payments"
                )
            balance = self._balance_for_write(loan_id, expected_version)

            allocation_type, allocation = self.allocator.allocate(amount, balance, split)
            remaining = self.allocator.apply(balance, allocation)
            updated = remaining.bump()

            payment = Payment(
                payment_id=uuid.uuid4().hex,
                loan_id=loan_id,
                organization_id=loan.organization_id,
                amount=allocation.total,
                payment_date=payment_date,
                allocation_type=allocation_type,
                allocation=allocation,
                balance_after=updated,
                created_by=created_by,
                reference=reference,
                created_at=datetime.now(),
            )
            self.balances[loan_id] = updated
            self._loan_payments.setdefault(loan_id, []).append(len(self.payments))
            self.payments.append(payment)

        logger.info(
            "Recorded %s payment of %s on loan %s (fees=%s interest=%s principal=%s)",
            allocation_type.value,
            payment.amount,
            loan.reference_number,
            allocation.fees,
            allocation.interest,
            allocation.principal,
            extra={"loan_id": loan_id, "payment_id": payment.payment_id},
        )
        if allocation.unapplied > 0:
            logger.warning(
                "Payment %s left %s unapplied on loan %s",
                payment.payment_id,
                allocation.unapplied,
                loan.reference_number,
            )
        return payment

    def _balance_for_write(self, loan_id: str, expected_version: int | None) -> LoanBalance:
        balance = self.balances[loan_id]
        if expected_version is not None and balance.version != expected_version:
            raise ConcurrencyConflictError(
                f"Balance of loan {loan_id} is at version {balance.version}, "
                f"expected {expected_version}"
            )
        return balance

    # Collateral

    def add_collateral(self, asset: CollateralAsset) -> None:
        """Add a collateral asset to the store (unassigned)."""
        self.collateral[asset.collateral_id] = asset

    def assign_collateral(
        self, collateral_id: str, level: AssignmentLevel, target_id: str
    ) -> CollateralAssignment:
        """Pledge an asset to one bank, facility or credit line.

        An asset holds at most one active assignment; unassign it first to
        move it.
        """
        with self._lock:
            asset = self.get_collateral(collateral_id)
            if self.active_assignment(collateral_id) is not None:
                raise InvalidEntityStateError(f"Collateral {collateral_id} is already assigned")

            if level == AssignmentLevel.BANK:
                if target_id not in self.banks:
                    raise ReferentialIntegrityError(f"Bank {target_id} not found")
            elif level == AssignmentLevel.FACILITY:
                facility = self.facilities.get(target_id)
                if facility is None:
                    raise ReferentialIntegrityError(f"Facility {target_id} not found")
                _check_owner(facility.organization_id, asset.organization_id, "Facility", target_id)
            else:
                line = self.credit_lines.get(target_id)
                if line is None:
                    raise ReferentialIntegrityError(f"Credit line {target_id} not found")
                _check_owner(line.organization_id, asset.organization_id, "Credit line", target_id)

            assignment = CollateralAssignment(
                assignment_id=uuid.uuid4().hex,
                collateral_id=collateral_id,
                organization_id=asset.organization_id,
                level=level,
                target_id=target_id,
            )
            self.assignments[assignment.assignment_id] = assignment

        logger.info("Assigned collateral %s to %s %s", collateral_id, level.value, target_id)
        return assignment

    def unassign_collateral(self, collateral_id: str) -> CollateralAssignment:
        """Deactivate the asset's current assignment."""
        with self._lock:
            current = self.active_assignment(collateral_id)
            if current is None:
                raise EntityNotFoundError(f"Collateral {collateral_id} has no active assignment")
            current.is_active = False
        return current

    def active_assignment(self, collateral_id: str) -> CollateralAssignment | None:
        for assignment in self.assignments.values():
            if assignment.collateral_id == collateral_id and assignment.is_active:
                return assignment
        return None

    def collateral_for_target(self, level: AssignmentLevel, target_id: str) -> list[CollateralAsset]:
        """Active assets currently pledged to a bank, facility or credit line."""
        return [
            self.collateral[a.collateral_id]
            for a in self.assignments.values()
            if a.is_active and a.level == level and a.target_id == target_id
        ]

    # Guarantees

    def add_guarantee(self, guarantee: Guarantee) -> None:
        """Register a guarantee under a facility of the same organization.

        Raises
        ------
        ReferentialIntegrityError
            If the facility does not exist.
        AccessDeniedError
            If the facility belongs to another organization.
        ValidationError
            If the id is taken, the amount is not positive or the expiry
            precedes the issue date.
        """
        _check_guarantee_terms(guarantee)
        with self._lock:
            if guarantee.guarantee_id in self.guarantees:
                raise ValidationError(f"Guarantee {guarantee.guarantee_id} already exists")
            self._owned_facility(guarantee.facility_id, guarantee.organization_id)

            now = datetime.now()
            guarantee.created_at = guarantee.created_at or now
            guarantee.updated_at = now
            self.guarantees[guarantee.guarantee_id] = guarantee

        logger.info(
            "Added guarantee %s on facility %s",
            guarantee.reference_number,
            guarantee.facility_id,
            extra={"organization_id": guarantee.organization_id},
        )

    def update_guarantee(self, guarantee: Guarantee) -> Guarantee:
        """Replace a guarantee with an edited copy of the same organization."""
        _check_guarantee_terms(guarantee)
        with self._lock:
            existing = self.get_guarantee(guarantee.guarantee_id)
            _check_owner(existing.organization_id, guarantee.organization_id, "Guarantee", existing.guarantee_id)
            self._owned_facility(guarantee.facility_id, guarantee.organization_id)

            guarantee.created_at = existing.created_at
            guarantee.updated_at = datetime.now()
            self.guarantees[guarantee.guarantee_id] = guarantee

        logger.info("Updated guarantee %s", guarantee.reference_number)
        return guarantee

    def delete_guarantee(self, guarantee_id: str, organization_id: str) -> None:
        with self._lock:
            guarantee = self.get_guarantee(guarantee_id)
            _check_owner(guarantee.organization_id, organization_id, "Guarantee", guarantee_id)
            del self.guarantees[guarantee_id]

        logger.info("Deleted guarantee %s", guarantee.reference_number)

    def _owned_facility(self, facility_id: str, organization_id: str) -> Facility:
        facility = self.facilities.get(facility_id)
        if facility is None:
            raise ReferentialIntegrityError(f"Facility {facility_id} not found")
        _check_owner(facility.organization_id, organization_id, "Facility", facility_id)
        return facility

    # Reminders

    def add_reminder(self, reminder: LoanReminder) -> None:
        if reminder.loan_id not in self.loans:
            raise ReferentialIntegrityError(f"Loan {reminder.loan_id} not found")
        self.reminders[reminder.reminder_id] = reminder

    def plan_reminders(
        self,
        loan_id: str,
        intervals: Iterable[object],
        today: date,
        *,
        email_enabled: bool = True,
        calendar_enabled: bool = False,
    ) -> list[LoanReminder]:
        """Create due-date reminders for ``intervals`` days before the due date."""
        with self._lock:
            loan = self.get_loan(loan_id)
            existing = [r.reminder_date for r in self.get_loan_reminders(loan_id) if r.is_active]
            planned = plan_auto_reminders(
                loan,
                intervals,
                today,
                existing,
                email_enabled=email_enabled,
                calendar_enabled=calendar_enabled,
            )
            for reminder in planned:
                self.reminders[reminder.reminder_id] = reminder

        if planned:
            logger.info("Planned %d reminders for loan %s", len(planned), loan.reference_number)
        return planned

    def mark_reminder_sent(self, reminder_id: str) -> LoanReminder:
        reminder = self.reminders.get(reminder_id)
        if reminder is None:
            raise EntityNotFoundError(f"Reminder {reminder_id} not found")
        reminder.status = ReminderStatus.SENT
        return reminder

    # Snapshots

    def capture_snapshot(self, organization_id: str, snapshot_date: date) -> PortfolioSnapshot:
        """Store today's portfolio position; repeated calls return the first one."""
        with self._lock:
            key = (organization_id, snapshot_date)
            existing = self.snapshots.get(key)
            if existing is not None:
                logger.debug("Snapshot for %s on %s already exists", organization_id, snapshot_date)
                return existing

            snapshot = build_snapshot(
                organization_id,
                snapshot_date,
                self.portfolio_summary(organization_id),
                self.get_loans(organization_id),
                self.get_facilities(organization_id),
            )
            self.snapshots[key] = snapshot

        logger.info("Captured portfolio snapshot for %s on %s", organization_id, snapshot_date)
        return snapshot

    # Query methods

    def get_loan(self, loan_id: str) -> Loan:
        loan = self.loans.get(loan_id)
        if loan is None:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        return loan

    def get_balance(self, loan_id: str) -> LoanBalance:
        self.get_loan(loan_id)
        return self.balances[loan_id]

    def get_facility(self, facility_id: str) -> Facility:
        facility = self.facilities.get(facility_id)
        if facility is None:
            raise EntityNotFoundError(f"Facility {facility_id} not found")
        return facility

    def get_collateral(self, collateral_id: str) -> CollateralAsset:
        asset = self.collateral.get(collateral_id)
        if asset is None:
            raise EntityNotFoundError(f"Collateral {collateral_id} not found")
        return asset

    def get_facilities(self, organization_id: str) -> list[Facility]:
        """Get all facilities of an organization."""
        return [f for f in self.facilities.values() if f.organization_id == organization_id]

    def get_credit_lines(self, organization_id: str) -> list[CreditLine]:
        """Get all credit lines of an organization."""
        return [cl for cl in self.credit_lines.values() if cl.organization_id == organization_id]

    def get_facility_credit_lines(self, facility_id: str) -> list[CreditLine]:
        return [self.credit_lines[i] for i in self._facility_credit_lines.get(facility_id, [])]

    def get_loans(self, organization_id: str, status: LoanStatus | None = None) -> list[Loan]:
        """Get an organization's loans, optionally filtered by status."""
        return [
            loan
            for loan in self.loans.values()
            if loan.organization_id == organization_id and (status is None or loan.status == status)
        ]

    def get_collateral_assets(self, organization_id: str) -> list[CollateralAsset]:
        return [c for c in self.collateral.values() if c.organization_id == organization_id]

    def get_loan_payments(self, loan_id: str) -> list[Payment]:
        """Payment history of a loan, oldest first."""
        return [self.payments[i] for i in self._loan_payments.get(loan_id, [])]

    def get_payments(self, organization_id: str) -> list[Payment]:
        return [p for p in self.payments if p.organization_id == organization_id]

    def get_guarantee(self, guarantee_id: str) -> Guarantee:
        guarantee = self.guarantees.get(guarantee_id)
        if guarantee is None:
            raise EntityNotFoundError(f"Guarantee {guarantee_id} not found")
        return guarantee

    def get_guarantees(self, organization_id: str) -> list[Guarantee]:
        return [g for g in self.guarantees.values() if g.organization_id == organization_id]

    def get_facility_guarantees(self, facility_id: str) -> list[Guarantee]:
        return [g for g in self.guarantees.values() if g.facility_id == facility_id]

    def get_payment_history(
        self,
        organization_id: str,
        from_date: date | None = None,
        to_date: date | None = None,
        loan_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> PaymentPage:
        """Payments of an organization, filtered and paged, newest first."""
        return payment_history(
            self.get_payments(organization_id),
            from_date=from_date,
            to_date=to_date,
            loan_id=loan_id,
            limit=limit,
            offset=offset,
        )

    def payment_summary(self, loan_id: str) -> PaymentSummary:
        """Totals paid on a loan per bucket, with its remaining balance."""
        balance = self.get_balance(loan_id)
        return summarize_payments(loan_id, self.get_loan_payments(loan_id), balance)

    def get_loan_reminders(self, loan_id: str) -> list[LoanReminder]:
        return [r for r in self.reminders.values() if r.loan_id == loan_id]

    def get_reminders(self, organization_id: str) -> list[LoanReminder]:
        return [r for r in self.reminders.values() if r.organization_id == organization_id]

    def get_snapshots(self, organization_id: str) -> list[PortfolioSnapshot]:
        """Snapshots of an organization, oldest first."""
        return sorted(
            (s for (org, _), s in self.snapshots.items() if org == organization_id),
            key=lambda s: s.snapshot_date,
        )

    def get_banks(self, organization_id: str) -> list[Bank]:
        """Banks the organization holds at least one facility with."""
        bank_ids = {f.bank_id for f in self.get_facilities(organization_id)}
        return [b for b in self.banks.values() if b.bank_id in bank_ids]

    # Aggregations (always recomputed)

    def bank_exposures(self, organization_id: str) -> list[BankExposure]:
        return compute_bank_exposures(
            self.get_banks(organization_id),
            self.get_facilities(organization_id),
            self.get_loans(organization_id),
            self.get_credit_lines(organization_id),
        )

    def facility_exposures(self, organization_id: str) -> list[FacilityExposure]:
        return compute_facility_exposures(
            self.get_facilities(organization_id),
            self.get_loans(organization_id),
            self.get_credit_lines(organization_id),
        )

    def portfolio_summary(self, organization_id: str) -> PortfolioSummary:
        loans = self.get_loans(organization_id)
        return compute_portfolio_summary(
            self.bank_exposures(organization_id),
            self.get_collateral_assets(organization_id),
            active_loans_count=len(active_loans(loans)),
        )

    def outstanding_balance(self, organization_id: str) -> Decimal:
        """Sum of remaining balances over the organization's active loans."""
        return sum(
            (self.balances[loan.loan_id].total for loan in active_loans(self.get_loans(organization_id))),
            ZERO,
        )

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "banks": len(self.banks),
            "facilities": len(self.facilities),
            "credit_lines": len(self.credit_lines),
            "loans": len(self.loans),
            "payments": len(self.payments),
            "collateral": len(self.collateral),
            "assignments": len(self.assignments),
            "guarantees": len(self.guarantees),
            "reminders": len(self.reminders),
            "snapshots": len(self.snapshots),
        }


def _check_owner(owner_org: str, caller_org: str, kind: str, entity_id: str) -> None:
    if owner_org != caller_org:
        raise AccessDeniedError(f"{kind} {entity_id} belongs to another organization")



def _check_guarantee_terms(guarantee: Guarantee) -> None:
    parse_positive(guarantee.amount, "amount")
    if guarantee.expiry_date < guarantee.issue_date:
        raise ValidationError(
            f"expiry_date {guarantee.expiry_date} is before issue_date {guarantee.issue_date}"
        )
