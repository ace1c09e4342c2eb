"""In-memory loan ledger store with referential integrity."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal

from loan_engine.documents.receipt import ReceiptFormatter
from loan_engine.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    ReferentialIntegrityError,
)
from loan_engine.models.customer import Customer
from loan_engine.models.enums import InstallmentStatus, LoanStatus
from loan_engine.models.loan import EmiInstallment, LoanAccount, TopUpEvent, to_date
from loan_engine.models.receipt import Receipt
from loan_engine.schedule.consolidator import TopUpConsolidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DueReportRow:
    """One line of the monthly collection report."""

    loan_id: str
    customer_id: str
    customer_name: str
    guarantor_name: str
    phone: str
    installment_number: int
    due_date: date
    emi_amount: Decimal
    status: InstallmentStatus


@dataclass
class LedgerStore:
    """Customers, loans and their consolidated ledgers.

    Every re-amortization or payment on a loan runs under that loan's lock
    and swaps in a complete new ledger, so readers always see one consistent
    snapshot. A failed re-amortization leaves the loan and its ledger as they
    were. Superseded ledgers are kept in ``ledger_history`` for audit.
    """

    customers: dict[str, Customer] = field(default_factory=dict)
    loans: dict[str, LoanAccount] = field(default_factory=dict)
    consolidator: TopUpConsolidator = field(default_factory=TopUpConsolidator)

    _ledgers: dict[str, tuple[EmiInstallment, ...]] = field(default_factory=dict)
    _history: dict[str, list[tuple[EmiInstallment, ...]]] = field(default_factory=dict)
    _customer_loans: dict[str, list[str]] = field(default_factory=dict)
    _locks: dict[str, threading.Lock] = field(default_factory=dict)
    _registry_lock: threading.Lock = field(default_factory=threading.Lock)

    def add_customer(self, customer: Customer) -> None:
        """Add a customer to the store."""
        with self._registry_lock:
            self.customers[customer.customer_id] = customer
            self._customer_loans.setdefault(customer.customer_id, [])

    def add_loan(self, loan: LoanAccount) -> tuple[EmiInstallment, ...]:
        """Register a loan and compute its first ledger.

        Raises
        ------
        ReferentialIntegrityError
            If the loan's customer is unknown.
        InvalidEntityStateError
            If a loan with the same ID is already registered.
        InvalidLoanTerms, InvalidTopupSequence
            If the loan cannot be amortized; nothing is stored.
        """
        if loan.customer_id not in self.customers:
            raise ReferentialIntegrityError(
                f"Customer {loan.customer_id} not found", customer_id=loan.customer_id
            )

        with self._lock_for(loan.loan_id):
            if loan.loan_id in self.loans:
                raise InvalidEntityStateError(
                    f"Loan {loan.loan_id} is already registered",
                    loan_id=loan.loan_id,
                    customer_id=loan.customer_id,
                )
            ledger = tuple(self.consolidator.consolidate(loan))
            with self._registry_lock:
                self.loans[loan.loan_id] = loan
                self._ledgers[loan.loan_id] = ledger
                self._history[loan.loan_id] = []
                self._customer_loans[loan.customer_id].append(loan.loan_id)

        logger.info("Added loan %s with %d installments", loan.loan_id, len(ledger))
        return ledger

    def add_topup(self, loan_id: str, event: TopUpEvent) -> tuple[EmiInstallment, ...]:
        """Append a top-up and re-amortize; atomic replace-or-keep."""
        with self._lock_for(loan_id):
            loan = self.get_loan(loan_id)
            if loan.status == LoanStatus.CLOSED:
                raise InvalidEntityStateError(
                    f"Loan {loan_id} is closed", loan_id=loan_id, topup_id=event.topup_id
                )
            current = self._ledgers[loan_id]
            candidate = loan.with_topup(event)

            ledger = tuple(self.consolidator.consolidate(candidate, previous=current))

            with self._registry_lock:
                self._history[loan_id].append(current)
                self.loans[loan_id] = candidate
                self._ledgers[loan_id] = ledger

        logger.info(
            "Applied top-up %s of %s to loan %s on %s",
            event.topup_id,
            event.amount,
            loan_id,
            event.topup_date.isoformat(),
        )
        return ledger

    def record_payment(
        self,
        loan_id: str,
        installment_number: int,
        paid_date: date | datetime,
    ) -> EmiInstallment:
        """Mark one installment as paid; the loan closes with its last payment.

        Raises
        ------
        InvalidEntityStateError
            If the installment was already paid.
        """
        with self._lock_for(loan_id):
            ledger = self.get_schedule(loan_id)
            current = self._find(loan_id, ledger, installment_number)
            paid = current.mark_paid(paid_date)
            updated = tuple(
                paid if inst.installment_number == installment_number else inst
                for inst in ledger
            )
            closed = all(inst.is_paid for inst in updated)
            with self._registry_lock:
                self._ledgers[loan_id] = updated
                if closed:
                    self.loans[loan_id] = replace(self.loans[loan_id], status=LoanStatus.CLOSED)
            if closed:
                logger.info("Loan %s fully repaid and closed", loan_id)

        logger.info(
            "Recorded payment of installment %d on loan %s (%s)",
            installment_number,
            loan_id,
            paid.amount,
        )
        return paid

    def refresh_overdue(self, loan_id: str, as_of: date | datetime) -> tuple[EmiInstallment, ...]:
        """Flag scheduled installments due before ``as_of`` as overdue."""
        as_of = to_date(as_of)
        with self._lock_for(loan_id):
            ledger = self.get_schedule(loan_id)
            refreshed = tuple(
                inst.mark_overdue()
                if inst.status == InstallmentStatus.SCHEDULED and inst.due_date < as_of
                else inst
                for inst in ledger
            )
            self._ledgers[loan_id] = refreshed

        overdue = sum(1 for inst in refreshed if inst.status == InstallmentStatus.OVERDUE)
        if overdue:
            logger.info("Loan %s has %d overdue installments as of %s", loan_id, overdue, as_of)
        return refreshed

    # Query methods
    def get_customer(self, customer_id: str) -> Customer:
        """Get a customer by ID."""
        try:
            return self.customers[customer_id]
        except KeyError:
            raise EntityNotFoundError(
                f"Customer {customer_id} not found", customer_id=customer_id
            ) from None

    def get_loan(self, loan_id: str) -> LoanAccount:
        """Get a loan by ID."""
        try:
            return self.loans[loan_id]
        except KeyError:
            raise EntityNotFoundError(f"Loan {loan_id} not found", loan_id=loan_id) from None

    def get_schedule(self, loan_id: str) -> tuple[EmiInstallment, ...]:
        """Current consolidated ledger, reflecting the latest top-up."""
        self.get_loan(loan_id)
        return self._ledgers[loan_id]

    def get_installment(self, loan_id: str, installment_number: int) -> EmiInstallment:
        """Get one installment of a loan's current ledger."""
        return self._find(loan_id, self.get_schedule(loan_id), installment_number)

    def get_receipt(self, loan_id: str, installment_number: int) -> Receipt:
        """Receipt for a paid installment.

        Raises
        ------
        InstallmentNotSettled
            If the installment is not paid.
        """
        loan = self.get_loan(loan_id)
        ledger = self.get_schedule(loan_id)
        installment = self._find(loan_id, ledger, installment_number)
        return ReceiptFormatter().format(
            installment, loan, self.get_customer(loan.customer_id), len(ledger)
        )

    def ledger_history(self, loan_id: str) -> list[tuple[EmiInstallment, ...]]:
        """Superseded ledgers of a loan, oldest first."""
        self.get_loan(loan_id)
        return list(self._history[loan_id])

    def get_customer_loans(self, customer_id: str) -> list[LoanAccount]:
        """Get all loans for a customer."""
        loan_ids = self._customer_loans.get(customer_id, [])
        return [self.loans[lid] for lid in loan_ids]

    def dues_for_month(self, year: int, month: int) -> list[DueReportRow]:
        """Installments falling due in a calendar month, by due date then loan."""
        rows = []
        for loan_id, ledger, loan, customer in self._snapshot():
            for inst in ledger:
                if inst.due_date.year == year and inst.due_date.month == month:
                    rows.append(
                        DueReportRow(
                            loan_id=loan_id,
                            customer_id=customer.customer_id,
                            customer_name=customer.name,
                            guarantor_name=customer.guarantor.name if customer.guarantor else "",
                            phone=customer.phone,
                            installment_number=inst.installment_number,
                            due_date=inst.due_date,
                            emi_amount=inst.amount,
                            status=inst.status,
                        )
                    )
        rows.sort(key=lambda row: (row.due_date, row.loan_id))
        return rows

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        with self._registry_lock:
            customers = len(self.customers)
        snapshot = self._snapshot()
        installments = [inst for _, ledger, _, _ in snapshot for inst in ledger]
        return {
            "customers": customers,
            "loans": len(snapshot),
            "topups": sum(len(loan.topup_history) for _, _, loan, _ in snapshot),
            "installments": len(installments),
            "paid_installments": sum(1 for inst in installments if inst.is_paid),
        }

    def _snapshot(self) -> list[tuple[str, tuple[EmiInstallment, ...], LoanAccount, Customer]]:
        # Loans registered while a report runs are either wholly in or out
        with self._registry_lock:
            return [
                (loan_id, ledger, self.loans[loan_id], self.customers[self.loans[loan_id].customer_id])
                for loan_id, ledger in self._ledgers.items()
            ]

    def _find(
        self,
        loan_id: str,
        ledger: tuple[EmiInstallment, ...],
        installment_number: int,
    ) -> EmiInstallment:
        # Numbering is contiguous from 1
        if 1 <= installment_number <= len(ledger):
            return ledger[installment_number - 1]
        raise EntityNotFoundError(
            f"Installment {installment_number} not found on loan {loan_id}",
            loan_id=loan_id,
            installment_number=installment_number,
        )

    def _lock_for(self, loan_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(loan_id, threading.Lock())
