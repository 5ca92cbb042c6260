"""In-memory store for credit portfolios."""

from loan_core.store.portfolio import PortfolioStore

__all__ = ["PortfolioStore"]
