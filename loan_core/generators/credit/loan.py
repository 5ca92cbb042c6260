"""Loan drawdown generator."""

from __future__ import annotations

import random
from datetime import date, timedelta
from decimal import Decimal

from loan_core.generators.base import BaseGenerator
from loan_core.models.credit import Facility, InterestBasis, Loan

ROUNDING = Decimal("10000")


class LoanGenerator(BaseGenerator):
    """Generate SIBOR-priced drawdowns against a facility."""

    TENORS = [30, 60, 90, 180, 360]  # days
    TENOR_WEIGHTS = [0.25, 0.20, 0.30, 0.15, 0.10]

    def generate(
        self,
        facility: Facility,
        today: date,
        reference_number: str,
        max_amount: Decimal | None = None,
    ) -> Loan:
        """Generate a drawdown of at most ``max_amount`` (default: the limit).

        Amounts are whole multiples of SAR 10,000.
        """
        ceiling = max_amount if max_amount is not None else facility.credit_limit
        units = int(ceiling / ROUNDING)
        amount = Decimal(random.randint(max(1, units // 10), max(1, units // 2))) * ROUNDING

        tenor = random.choices(self.TENORS, weights=self.TENOR_WEIGHTS, k=1)[0]
        start_date = today - timedelta(days=random.randint(0, min(tenor + 14, 200)))

        return Loan(
            loan_id=self.fake.uuid4(),
            organization_id=facility.organization_id,
            facility_id=facility.facility_id,
            reference_number=reference_number,
            amount=amount,
            sibor_rate=Decimal(str(round(random.uniform(5.0, 6.25), 4))),
            margin=Decimal(str(round(random.uniform(0.75, 2.5), 2))),
            start_date=start_date,
            due_date=start_date + timedelta(days=tenor),
            interest_basis=random.choice(list(InterestBasis)),
        )
