"""Fold a loan and its top-up history into one consolidated ledger."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Sequence

from loan_engine.exceptions import (
    InvalidEntityStateError,
    InvalidLoanTerms,
    InvalidTopupSequence,
)
from loan_engine.models.enums import InstallmentStatus
from loan_engine.models.loan import EmiInstallment, LoanAccount, TopUpEvent
from loan_engine.schedule.amortization import amortize, quantize_money, to_installments

logger = logging.getLogger(__name__)


def validate_topup_sequence(loan: LoanAccount) -> None:
    """Check that top-ups follow disbursal and each other strictly in order.

    The history is validated as given; it is never re-sorted.

    Raises
    ------
    InvalidTopupSequence
        On a pre-disbursal or out-of-order top-up date.
    InvalidLoanTerms
        On a negative or non-finite top-up amount.
    """
    previous: TopUpEvent | None = None
    for event in loan.topup_history:
        if event.topup_date < loan.disbursal_date:
            raise InvalidTopupSequence(
                f"Top-up {event.topup_id} dated {event.topup_date.isoformat()} precedes "
                f"disbursal of loan {loan.loan_id} on {loan.disbursal_date.isoformat()}",
                loan_id=loan.loan_id,
                topup_id=event.topup_id,
                topup_date=event.topup_date,
                boundary_date=loan.disbursal_date,
            )
        if previous is not None and event.topup_date <= previous.topup_date:
            raise InvalidTopupSequence(
                f"Top-up {event.topup_id} dated {event.topup_date.isoformat()} is not after "
                f"top-up {previous.topup_id} dated {previous.topup_date.isoformat()} "
                f"on loan {loan.loan_id}",
                loan_id=loan.loan_id,
                topup_id=event.topup_id,
                topup_date=event.topup_date,
                boundary_date=previous.topup_date,
            )
        if not event.amount.is_finite() or event.amount < 0:
            raise InvalidLoanTerms(
                f"Top-up {event.topup_id} amount must be a non-negative number, got {event.amount}",
                loan_id=loan.loan_id,
                topup_id=event.topup_id,
                field="amount",
                value=event.amount,
            )
        previous = event


def outstanding_as_of(ledger: Sequence[EmiInstallment], as_of: date) -> Decimal:
    """Principal still owed after every installment due on or before ``as_of``."""
    if not ledger:
        return Decimal("0.00")
    due = [inst for inst in ledger if inst.due_date <= as_of]
    if due:
        return due[-1].balance
    first = ledger[0]
    return first.balance + first.principal_amount


class TopUpConsolidator:
    """Merge re-amortization segments into a single installment sequence.

    Installments due on or before a top-up date are carried over unchanged,
    whatever their status; later ones are replaced by a new segment that
    amortizes the outstanding balance plus the top-up amount under the
    top-up's rate and tenure, starting from the top-up date.
    """

    def consolidate(
        self,
        loan: LoanAccount,
        previous: Sequence[EmiInstallment] | None = None,
    ) -> list[EmiInstallment]:
        """Compute the consolidated ledger of ``loan``.

        Parameters
        ----------
        loan : LoanAccount
            Loan snapshot including its top-up history.
        previous : Sequence[EmiInstallment] | None
            Ledger produced by an earlier run. Status and paid date are
            carried onto rows with the same number, due date and segment.

        Returns
        -------
        list[EmiInstallment]
            New ledger, numbered contiguously from 1.
        """
        validate_topup_sequence(loan)

        lines = amortize(
            loan.principal,
            loan.annual_rate,
            loan.tenure_months,
            loan.disbursal_date,
            loan_id=loan.loan_id,
        )
        rows = to_installments(lines, loan.principal, loan_id=loan.loan_id, segment=0)
        base = quantize_money(loan.principal)
        carried: list[EmiInstallment] = []

        for segment, event in enumerate(loan.topup_history, start=1):
            cut = sum(1 for row in rows if row.due_date <= event.topup_date)
            # Remaining principal components of the superseded rows
            outstanding = rows[cut - 1].balance if cut else base
            carried.extend(rows[:cut])

            base = outstanding + event.amount
            logger.debug(
                "Loan %s top-up %s on %s: kept %d, replaced %d, new base %s",
                loan.loan_id,
                event.topup_id,
                event.topup_date.isoformat(),
                cut,
                len(rows) - cut,
                base,
            )

            lines = amortize(
                base,
                event.annual_rate,
                event.tenure_months,
                event.topup_date,
                loan_id=loan.loan_id,
            )
            rows = to_installments(
                lines,
                base,
                loan_id=loan.loan_id,
                segment=segment,
                first_number=len(carried) + 1,
            )

        ledger = carried + rows
        if previous:
            ledger = self._carry_status(ledger, previous)

        logger.info(
            "Consolidated loan %s: %d installments across %d segments",
            loan.loan_id,
            len(ledger),
            len(loan.topup_history) + 1,
        )
        return ledger

    def _carry_status(
        self,
        ledger: list[EmiInstallment],
        previous: Sequence[EmiInstallment],
    ) -> list[EmiInstallment]:
        """Copy collection state from an earlier ledger.

        Only rows that survive unchanged (same number, due date and segment)
        inherit a status. Replacement rows of a new segment start scheduled.

        Raises
        ------
        InvalidEntityStateError
            If a paid installment of ``previous`` has no surviving row, which
            would lose a recorded collection.
        """
        by_key = {
            (inst.installment_number, inst.due_date, inst.segment): inst
            for inst in ledger
        }
        carried: dict[int, EmiInstallment] = {}
        for prior in previous:
            if prior.status == InstallmentStatus.SCHEDULED:
                continue
            row = by_key.get((prior.installment_number, prior.due_date, prior.segment))
            if row is None:
                if prior.is_paid:
                    raise InvalidEntityStateError(
                        f"Installment {prior.installment_number} of loan {prior.loan_id} "
                        f"was paid on {prior.paid_date.isoformat()} and would be replaced",
                        loan_id=prior.loan_id,
                        installment_number=prior.installment_number,
                        due_date=prior.due_date,
                        paid_date=prior.paid_date,
                    )
                continue
            carried[row.installment_number] = replace(
                row, status=prior.status, paid_date=prior.paid_date
            )
        return [carried.get(row.installment_number, row) for row in ledger]
