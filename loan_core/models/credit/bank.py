"""Bank model for credit domain."""

from dataclasses import dataclass


@dataclass
class Bank:
    """Lending bank (shared reference data across organizations)."""

    bank_id: str
    name: str
    code: str  # e.g. "SNB", "RJHI"
    is_active: bool = True
