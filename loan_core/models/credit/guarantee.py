"""Guarantee model for credit domain."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from loan_core.models.credit.enums import GuaranteeStatus


@dataclass
class Guarantee:
    """Letter of guarantee issued by the bank under a facility."""

    guarantee_id: str
    organization_id: str
    facility_id: str
    reference_number: str
    beneficiary: str
    amount: Decimal
    issue_date: date
    expiry_date: date
    status: GuaranteeStatus = GuaranteeStatus.ACTIVE
    commission_rate: Decimal = Decimal("0")  # percent per annum
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == GuaranteeStatus.ACTIVE
