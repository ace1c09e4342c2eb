"""Sample data generators."""

from loan_engine.generators.customer import CustomerGenerator
from loan_engine.generators.loan import LoanGenerator

__all__ = ["CustomerGenerator", "LoanGenerator"]
