"""Credit portfolio scenarios."""

from loan_core.scenarios.credit.sample_portfolio import SamplePortfolioScenario

__all__ = ["SamplePortfolioScenario"]
