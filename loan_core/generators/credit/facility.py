"""Facility and credit line generators."""

from __future__ import annotations

import random
from datetime import date, timedelta
from decimal import Decimal

from loan_core.generators.base import BaseGenerator
from loan_core.models.credit import CreditLine, Facility, FacilityType


class FacilityGenerator(BaseGenerator):
    """Generate bank facilities with SAR limits."""

    FACILITY_TYPES = list(FacilityType)
    FACILITY_WEIGHTS = [0.35, 0.25, 0.10, 0.05, 0.20, 0.05]

    # Credit limit ranges in millions of SAR
    LIMIT_RANGES = {
        FacilityType.REVOLVING: (10, 200),
        FacilityType.TERM: (20, 500),
        FacilityType.BULLET: (10, 100),
        FacilityType.BRIDGE: (5, 50),
        FacilityType.WORKING_CAPITAL: (5, 150),
        FacilityType.NON_CASH_GUARANTEE: (5, 100),
    }

    def generate(
        self,
        bank_id: str,
        organization_id: str,
        today: date,
        facility_type: FacilityType | None = None,
    ) -> Facility:
        """Generate a facility that is live on ``today``."""
        if facility_type is None:
            facility_type = random.choices(
                self.FACILITY_TYPES, weights=self.FACILITY_WEIGHTS, k=1
            )[0]

        low, high = self.LIMIT_RANGES[facility_type]
        credit_limit = Decimal(random.randint(low, high)) * Decimal("1000000")

        start_date = today - timedelta(days=random.randint(60, 720))
        expiry_date = start_date + timedelta(days=random.choice([365, 730, 1095]))
        if expiry_date <= today:
            expiry_date = today + timedelta(days=random.randint(3, 365))

        revolving = facility_type == FacilityType.REVOLVING

        return Facility(
            facility_id=self.fake.uuid4(),
            bank_id=bank_id,
            organization_id=organization_id,
            facility_type=facility_type,
            credit_limit=credit_limit,
            cost_of_funding=Decimal(str(round(random.uniform(5.5, 8.0), 2))),
            start_date=start_date,
            expiry_date=expiry_date,
            enable_revolving_tracking=revolving,
            max_revolving_period=360 if revolving else None,
        )

    def generate_credit_lines(self, facility: Facility, count: int) -> list[CreditLine]:
        """Split a facility limit into ``count`` sub-limits of equal size."""
        share = (facility.credit_limit / count).quantize(Decimal("1"))
        return [
            CreditLine(
                credit_line_id=self.fake.uuid4(),
                facility_id=facility.facility_id,
                organization_id=facility.organization_id,
                name=f"Credit Line {i + 1}",
                credit_limit=share,
                interest_rate=facility.cost_of_funding,
            )
            for i in range(count)
        ]
