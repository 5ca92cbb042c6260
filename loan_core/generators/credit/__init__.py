"""Credit domain generators."""

from loan_core.generators.credit.bank import BankGenerator
from loan_core.generators.credit.collateral import CollateralGenerator
from loan_core.generators.credit.facility import FacilityGenerator
from loan_core.generators.credit.loan import LoanGenerator

__all__ = [
    "BankGenerator",
    "CollateralGenerator",
    "FacilityGenerator",
    "LoanGenerator",
]
