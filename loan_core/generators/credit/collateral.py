"""Collateral asset generator."""

from __future__ import annotations

import random
from datetime import date, timedelta
from decimal import Decimal

from loan_core.generators.base import BaseGenerator
from loan_core.models.credit import CollateralAsset, CollateralType


class CollateralGenerator(BaseGenerator):
    """Generate pledged assets valued in SAR."""

    COLLATERAL_TYPES = list(CollateralType)
    TYPE_WEIGHTS = [0.55, 0.35, 0.10]

    # Value ranges in millions of SAR
    VALUE_RANGES = {
        CollateralType.REAL_ESTATE: (10, 300),
        CollateralType.LIQUID_STOCKS: (5, 150),
        CollateralType.OTHER: (1, 30),
    }

    CITIES = ["Riyadh", "Jeddah", "Dammam", "Khobar", "Makkah", "Madinah", "Abha", "Tabuk"]

    VALUATION_SOURCES = ["Independent valuer", "Tadawul close", "Internal estimate"]

    def generate(self, organization_id: str, today: date) -> CollateralAsset:
        collateral_type = random.choices(
            self.COLLATERAL_TYPES, weights=self.TYPE_WEIGHTS, k=1
        )[0]
        low, high = self.VALUE_RANGES[collateral_type]

        if collateral_type == CollateralType.REAL_ESTATE:
            name = f"{random.choice(self.CITIES)} plot {random.randint(100, 9999)}"
        elif collateral_type == CollateralType.LIQUID_STOCKS:
            name = f"Tadawul portfolio {random.randint(1000, 9999)}"
        else:
            name = f"Pledged receivables {random.randint(100, 999)}"

        return CollateralAsset(
            collateral_id=self.fake.uuid4(),
            organization_id=organization_id,
            collateral_type=collateral_type,
            name=name,
            current_value=Decimal(random.randint(low, high)) * Decimal("1000000"),
            valuation_date=today - timedelta(days=random.randint(0, 180)),
            valuation_source=random.choice(self.VALUATION_SOURCES),
        )
