"""Domain models for the loan portfolio core."""

from loan_core.models.base import Event

__all__ = ["Event"]
