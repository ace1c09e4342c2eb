"""Amortization and top-up consolidation."""

from loan_engine.schedule.amortization import (
    ScheduleLine,
    amortize,
    monthly_installment,
    schedule,
)
from loan_engine.schedule.consolidator import (
    TopUpConsolidator,
    outstanding_as_of,
    validate_topup_sequence,
)

__all__ = [
    "ScheduleLine",
    "TopUpConsolidator",
    "amortize",
    "monthly_installment",
    "outstanding_as_of",
    "schedule",
    "validate_topup_sequence",
]
