"""Loan and top-up generators."""

from __future__ import annotations

import random
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from loan_engine.generators.base import BaseGenerator
from loan_engine.models.loan import LoanAccount, TopUpEvent


class LoanGenerator(BaseGenerator):
    """Generate synthetic loans with an optional history of top-ups."""

    TENURES = [6, 12, 18, 24, 36, 48, 60]
    # Annual percentage rate range
    RATE_RANGE = (8.0, 24.0)
    # Principal in thousands
    PRINCIPAL_RANGE = (10, 500)

    def generate(
        self,
        customer_id: str,
        disbursal_date: date | None = None,
    ) -> LoanAccount:
        """Generate a loan.

        Parameters
        ----------
        customer_id : str
            Borrower of the loan.
        disbursal_date : date | None
            Defaults to a random date within the last two years.

        Returns
        -------
        LoanAccount
            Generated loan.
        """
        if disbursal_date is None:
            disbursal_date = self.fake.date_between(start_date="-2y", end_date="-30d")

        return LoanAccount(
            loan_id=f"L-{self.fake.unique.numerify('########')}",
            customer_id=customer_id,
            principal=Decimal(random.randint(*self.PRINCIPAL_RANGE) * 1000),
            annual_rate=self._rate(),
            tenure_months=random.choice(self.TENURES),
            disbursal_date=disbursal_date,
        )

    def generate_topups(self, loan: LoanAccount, count: int) -> list[TopUpEvent]:
        """Generate ``count`` top-ups for ``loan``.

        Events are spaced two to six months apart, starting after the
        loan's latest top-up (or its disbursal), so the sequence is always
        strictly chronological.
        """
        topup_date = loan.topup_history[-1].topup_date if loan.topup_history else loan.disbursal_date
        events = []
        for _ in range(count):
            topup_date = topup_date + relativedelta(months=random.randint(2, 6), days=random.randint(1, 20))
            events.append(self.generate_topup(topup_date))
        return events

    def generate_topup(self, topup_date: date) -> TopUpEvent:
        """Generate a single top-up on ``topup_date``."""
        return TopUpEvent(
            topup_id=f"T-{self.fake.unique.numerify('########')}",
            topup_date=topup_date,
            amount=Decimal(random.randint(5, 200) * 1000),
            annual_rate=self._rate(),
            tenure_months=random.choice(self.TENURES),
        )

    def _rate(self) -> Decimal:
        return Decimal(str(round(random.uniform(*self.RATE_RANGE), 2)))
