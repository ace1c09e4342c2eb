"""Sample loan portfolio with top-ups and collection history."""

from __future__ import annotations

import logging
import random
from datetime import date, timedelta

from loan_engine.config import EngineConfig
from loan_engine.generators import CustomerGenerator, LoanGenerator
from loan_engine.models.enums import InstallmentStatus, LoanStatus
from loan_engine.store.ledger import LedgerStore

logger = logging.getLogger(__name__)


class LoanPortfolioScenario:
    """Generate customers and loans, then replay their servicing history.

    For each loan the scenario walks forward in time: installments falling
    due before a top-up are collected (or missed) first, the top-up is then
    applied through the store so the ledger is re-amortized the same way a
    live top-up would be, and finally every installment due before
    ``as_of`` is collected or flagged overdue.
    """

    def __init__(
        self,
        num_customers: int = 20,
        topup_rate: float = 0.4,
        max_topups: int = 2,
        on_time_rate: float = 0.9,
        as_of: date | None = None,
        seed: int | None = None,
        *,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize loan portfolio scenario.

        Parameters
        ----------
        num_customers : int
            Number of customers to generate; each gets one loan.
        topup_rate : float
            Share of loans that receive at least one top-up (0.0 to 1.0).
        max_topups : int
            Upper bound on top-ups per loan.
        on_time_rate : float
            Probability that a due installment is collected.
        as_of : date | None
            Servicing cut-off; defaults to today.
        seed : int | None
            Random seed for reproducibility. Overrides ``config.seed``.
        config : EngineConfig | None
            Engine configuration supplying a default seed.
        """
        if seed is None and config is not None:
            seed = config.seed

        self.num_customers = num_customers
        self.topup_rate = topup_rate
        self.max_topups = max_topups
        self.on_time_rate = on_time_rate
        self.as_of = as_of or date.today()
        self.seed = seed

        if seed is not None:
            random.seed(seed)

        self.store = LedgerStore()
        self._customer_gen = CustomerGenerator(seed=seed)
        self._loan_gen = LoanGenerator(seed=seed)

    def generate(self) -> LedgerStore:
        """Generate all data for the scenario.

        Returns
        -------
        LedgerStore
            Store containing customers, loans and serviced ledgers.
        """
        logger.info(
            "Starting loan portfolio scenario: %d customers, %.0f%% with top-ups, as of %s",
            self.num_customers,
            self.topup_rate * 100,
            self.as_of.isoformat(),
        )

        for customer in self._customer_gen.generate_batch(self.num_customers):
            self.store.add_customer(customer)
            disbursal = self.as_of - timedelta(days=random.randint(60, 720))
            loan = self._loan_gen.generate(customer.customer_id, disbursal_date=disbursal)
            self.store.add_loan(loan)

            topups = 0
            if random.random() < self.topup_rate:
                topups = random.randint(1, self.max_topups)
            for event in self._loan_gen.generate_topups(loan, topups):
                if event.topup_date >= self.as_of:
                    break
                self._collect(loan.loan_id, event.topup_date)
                if self.store.get_loan(loan.loan_id).status == LoanStatus.CLOSED:
                    break
                self.store.add_topup(loan.loan_id, event)

            self._collect(loan.loan_id, self.as_of)
            self.store.refresh_overdue(loan.loan_id, self.as_of)

        summary = self.store.summary()
        logger.info(
            "Generated %d loans with %d top-ups and %d installments (%d paid)",
            summary["loans"],
            summary["topups"],
            summary["installments"],
            summary["paid_installments"],
        )
        return self.store

    def _collect(self, loan_id: str, until: date) -> None:
        """Collect unpaid installments due before ``until``."""
        for inst in self.store.get_schedule(loan_id):
            if inst.due_date >= until:
                break
            if inst.status != InstallmentStatus.SCHEDULED:
                continue
            if random.random() < self.on_time_rate:
                paid_on = min(inst.due_date + timedelta(days=random.randint(0, 5)), until)
                self.store.record_payment(loan_id, inst.installment_number, paid_on)
