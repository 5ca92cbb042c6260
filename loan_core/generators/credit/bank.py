"""Bank generator for the Saudi market."""

from __future__ import annotations

import random

from loan_core.generators.base import BaseGenerator
from loan_core.models.credit import Bank


class BankGenerator(BaseGenerator):
    """Pick lenders from the Saudi commercial banks."""

    SAUDI_BANKS = [
        ("SNB", "Saudi National Bank"),
        ("RJHI", "Al Rajhi Bank"),
        ("RIBL", "Riyad Bank"),
        ("SAB", "Saudi Awwal Bank"),
        ("BSF", "Banque Saudi Fransi"),
        ("ANB", "Arab National Bank"),
        ("ALINMA", "Alinma Bank"),
        ("ALBI", "Bank Albilad"),
        ("BJAZ", "Bank AlJazira"),
        ("SAIB", "Saudi Investment Bank"),
    ]

    def generate(self, code: str | None = None) -> Bank:
        """Generate one bank, by code or at random."""
        if code is None:
            code, name = random.choice(self.SAUDI_BANKS)
        else:
            name = dict(self.SAUDI_BANKS)[code]
        return Bank(bank_id=self.fake.uuid4(), name=name, code=code)

    def generate_batch(self, count: int) -> list[Bank]:
        """Generate ``count`` distinct banks.

        Raises
        ------
        ValueError
            If more banks are requested than exist.
        """
        if count > len(self.SAUDI_BANKS):
            raise ValueError(f"Only {len(self.SAUDI_BANKS)} banks available, requested {count}")
        picked = random.sample(self.SAUDI_BANKS, count)
        return [Bank(bank_id=self.fake.uuid4(), name=name, code=code) for code, name in picked]
