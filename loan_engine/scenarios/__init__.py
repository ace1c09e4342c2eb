"""Sample data scenarios."""

from loan_engine.scenarios.portfolio import LoanPortfolioScenario

__all__ = ["LoanPortfolioScenario"]
