"""Sample portfolio scenario: a Saudi corporate borrower's bank debt."""

from __future__ import annotations

import random
from datetime import date
from decimal import Decimal
from typing import Any

from loan_core.config import LoanCoreConfig
from loan_core.engine.alerts import count_by_category, generate_daily_alerts
from loan_core.engine.allocation import PaymentAllocator
from loan_core.engine.interest import accrued_interest
from loan_core.engine.reminders import build_due_notices
from loan_core.generators.credit import (
    BankGenerator,
    CollateralGenerator,
    FacilityGenerator,
    LoanGenerator,
)
from loan_core.logging import get_logger
from loan_core.models.credit import AssignmentLevel, LoanStatus
from loan_core.numeric import quantize
from loan_core.sinks.serialization import to_dict
from loan_core.store.portfolio import PortfolioStore

logger = get_logger(__name__)

MIN_DRAWDOWN = Decimal("100000")


class SamplePortfolioScenario:
    """Generate one organization's credit portfolio.

    This scenario creates:
    - Facilities at several Saudi banks, some split into credit lines
    - Drawdowns within each facility's limit, with accrued interest charged
    - Repayments through the allocation waterfall, a few settlements
    - Collateral pledged to facilities, reminders and a snapshot for today
    """

    def __init__(
        self,
        num_banks: int = 4,
        facilities_per_bank: tuple[int, int] = (1, 3),
        loans_per_facility: tuple[int, int] = (1, 4),
        num_collateral: int = 3,
        payment_rate: float = 0.5,
        settle_rate: float = 0.15,
        today: date | None = None,
        seed: int | None = None,
        *,
        config: LoanCoreConfig | None = None,
    ) -> None:
        """Initialize the scenario.

        Parameters
        ----------
        num_banks : int
            Number of lending banks.
        facilities_per_bank : tuple[int, int]
            Inclusive range of facilities per bank.
        loans_per_facility : tuple[int, int]
            Inclusive range of drawdowns per facility.
        num_collateral : int
            Number of collateral assets.
        payment_rate : float
            Share of active loans that receive a partial repayment.
        settle_rate : float
            Share of active loans settled in full.
        today : date | None
            Business date (default: today).
        seed : int | None
            Random seed for reproducibility.
        config : LoanCoreConfig | None
            Allocation, alert and reminder settings.
        """
        self.num_banks = num_banks
        self.facilities_per_bank = facilities_per_bank
        self.loans_per_facility = loans_per_facility
        self.num_collateral = num_collateral
        self.payment_rate = payment_rate
        self.settle_rate = settle_rate
        self.today = today or date.today()
        self.seed = seed
        self.config = config or LoanCoreConfig(seed=seed)

        if seed is not None:
            random.seed(seed)

        self._bank_gen = BankGenerator(seed=seed)
        self._facility_gen = FacilityGenerator(seed=seed)
        self._loan_gen = LoanGenerator(seed=seed)
        self._collateral_gen = CollateralGenerator(seed=seed)

        self.organization_id = self._bank_gen.fake.uuid4()
        self.store = PortfolioStore(allocator=PaymentAllocator(self.config.allocation))

    def generate(self) -> PortfolioStore:
        """Generate all data for the scenario.

        Returns
        -------
        PortfolioStore
            Store containing all generated data.
        """
        logger.info(
            "Starting sample portfolio scenario: %d banks, organization %s",
            self.num_banks,
            self.organization_id,
        )

        for bank in self._bank_gen.generate_batch(self.num_banks):
            self.store.add_bank(bank)
            for _ in range(random.randint(*self.facilities_per_bank)):
                facility = self._facility_gen.generate(
                    bank.bank_id, self.organization_id, self.today
                )
                self.store.add_facility(facility)
                if random.random() < 0.3:
                    for line in self._facility_gen.generate_credit_lines(facility, 2):
                        self.store.add_credit_line(line)

        logger.info(
            "Generated %d facilities at %d banks",
            len(self.store.facilities),
            len(self.store.banks),
        )

        self._generate_loans()
        self._generate_repayments()
        self._generate_collateral()

        self.store.capture_snapshot(self.organization_id, self.today)
        return self.store

    def _generate_loans(self) -> None:
        sequence = 0
        for facility in list(self.store.facilities.values()):
            available = facility.credit_limit
            for _ in range(random.randint(*self.loans_per_facility)):
                if available < MIN_DRAWDOWN:
                    break
                sequence += 1
                loan = self._loan_gen.generate(
                    facility,
                    self.today,
                    reference_number=f"LN-{self.today.year}-{sequence:05d}",
                    max_amount=available,
                )
                self.store.create_loan(loan)
                available -= loan.amount

                if self.config.reminders.auto_apply:
                    self.store.plan_reminders(
                        loan.loan_id,
                        self.config.reminders.default_intervals,
                        self.today,
                        email_enabled=self.config.reminders.email_enabled,
                        calendar_enabled=self.config.reminders.calendar_enabled,
                    )

        logger.info(
            "Generated %d loans with %d reminders",
            len(self.store.loans),
            len(self.store.reminders),
        )

    def _generate_repayments(self) -> None:
        for loan in list(self.store.loans.values()):
            interest = accrued_interest(loan, self.today)
            if interest > 0:
                self.store.charge_interest(loan.loan_id, interest)

            roll = random.random()
            if roll < self.settle_rate:
                self.store.settle_loan(loan.loan_id, self.today)
            elif roll < self.settle_rate + self.payment_rate:
                balance = self.store.get_balance(loan.loan_id)
                share = Decimal(str(round(random.uniform(0.05, 0.5), 2)))
                amount = quantize(balance.total * share)
                if amount > 0:
                    self.store.record_payment(
                        loan.loan_id, amount, self.today, created_by="scenario"
                    )

        logger.info(
            "Recorded %d payments, %d loans settled",
            len(self.store.payments),
            len(self.store.get_loans(self.organization_id, LoanStatus.SETTLED)),
        )

    def _generate_collateral(self) -> None:
        facilities = list(self.store.facilities.values())
        for _ in range(self.num_collateral):
            asset = self._collateral_gen.generate(self.organization_id, self.today)
            self.store.add_collateral(asset)
            if facilities:
                target = random.choice(facilities)
                self.store.assign_collateral(
                    asset.collateral_id, AssignmentLevel.FACILITY, target.facility_id
                )

    def export(self, sinks: list[Any]) -> None:
        """Export generated data, derived views and notification events.

        Parameters
        ----------
        sinks : list[Any]
            Sink instances (ConsoleSink, JsonFileSink, KafkaSink).
        """
        org = self.organization_id
        loans = self.store.get_loans(org)
        alerts = generate_daily_alerts(
            loans,
            self.store.get_facilities(org),
            self.store.get_banks(org),
            self.store.get_collateral_assets(org),
            self.today,
            self.config.alerts,
            self.store.get_credit_lines(org),
        )
        notices = build_due_notices(loans, self.today, urgency=self.config.urgency)

        for sink in sinks:
            sink.write_batch("banks", list(self.store.banks.values()))
            sink.write_batch("facilities", self.store.get_facilities(org))
            sink.write_batch("credit_lines", self.store.get_credit_lines(org))
            sink.write_batch("loans", loans)
            sink.write_batch("payments", self.store.get_payments(org))
            sink.write_batch("collateral", self.store.get_collateral_assets(org))
            sink.write_batch("reminders", self.store.get_reminders(org))
            sink.write_batch("bank_exposures", self.store.bank_exposures(org))
            sink.write_batch("snapshots", self.store.get_snapshots(org))
            sink.write_batch("alerts", alerts)
            sink.write_batch("due_notices", notices)

        logger.info("Exported sample portfolio to %d sinks", len(sinks))

    def get_portfolio_summary(self) -> dict[str, Any]:
        """Get summary statistics for the generated portfolio.

        Returns
        -------
        dict[str, Any]
            Portfolio totals, loan status distribution and alert counts.
        """
        org = self.organization_id
        loans = self.store.get_loans(org)
        if not loans:
            return {}

        status_counts: dict[str, int] = {}
        for loan in loans:
            status_counts[loan.status.value] = status_counts.get(loan.status.value, 0) + 1

        alerts = generate_daily_alerts(
            loans,
            self.store.get_facilities(org),
            self.store.get_banks(org),
            self.store.get_collateral_assets(org),
            self.today,
            self.config.alerts,
            self.store.get_credit_lines(org),
        )

        summary = to_dict(self.store.portfolio_summary(org))
        summary.pop("bank_exposures", None)
        return {
            **summary,
            "total_loans": len(loans),
            "remaining_balance": str(self.store.outstanding_balance(org)),
            "loan_status_distribution": status_counts,
            "alerts_by_category": {
                category.value: count for category, count in count_by_category(alerts).items()
            },
            "entity_counts": self.store.summary(),
        }
