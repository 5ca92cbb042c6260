"""Scenarios for generating realistic credit portfolios."""

from loan_core.scenarios.credit import SamplePortfolioScenario

__all__ = ["SamplePortfolioScenario"]
