"""Tests for LedgerStore."""

import threading
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from loan_engine.exceptions import (
    EntityNotFoundError,
    InstallmentNotSettled,
    InvalidEntityStateError,
    InvalidLoanTerms,
    InvalidTopupSequence,
    ReferentialIntegrityError,
)
from loan_engine.models import InstallmentStatus, LoanAccount, LoanStatus, TopUpEvent
from loan_engine.store import DueReportRow, LedgerStore


class TestAddLoan:
    """Tests for registering customers and loans."""

    def test_add_loan_computes_ledger(self, store, sample_loan_id) -> None:
        ledger = store.get_schedule(sample_loan_id)

        assert len(ledger) == 12
        assert ledger[-1].balance == Decimal("0.00")

    def test_unknown_customer(self, sample_loan) -> None:
        store = LedgerStore()

        with pytest.raises(ReferentialIntegrityError) as exc_info:
            store.add_loan(sample_loan)

        assert exc_info.value.context["customer_id"] == "C-1001"
        assert store.loans == {}

    def test_invalid_terms_store_nothing(self, sample_customer, sample_loan) -> None:
        store = LedgerStore()
        store.add_customer(sample_customer)

        with pytest.raises(InvalidLoanTerms):
            store.add_loan(replace(sample_loan, tenure_months=0))

        assert store.loans == {}
        assert store.get_customer_loans(sample_customer.customer_id) == []

    def test_customer_loans(self, store, sample_customer_id, sample_loan) -> None:
        second = replace(sample_loan, loan_id="L-2002")
        store.add_loan(second)

        loans = store.get_customer_loans(sample_customer_id)

        assert [loan.loan_id for loan in loans] == ["L-2001", "L-2002"]
        assert store.get_customer_loans("C-unknown") == []

    def test_duplicate_loan_rejected(self, store, sample_loan, sample_customer_id) -> None:
        """Test re-registering a loan ID keeps the existing ledger and payments."""
        store.record_payment(sample_loan.loan_id, 1, date(2024, 2, 15))
        ledger = store.get_schedule(sample_loan.loan_id)

        with pytest.raises(InvalidEntityStateError) as exc_info:
            store.add_loan(replace(sample_loan, principal=Decimal("90000")))

        assert exc_info.value.context["loan_id"] == "L-2001"
        assert store.get_schedule(sample_loan.loan_id) is ledger
        assert store.get_loan(sample_loan.loan_id).principal == Decimal("50000")
        assert store.get_installment(sample_loan.loan_id, 1).is_paid
        assert [loan.loan_id for loan in store.get_customer_loans(sample_customer_id)] == [
            "L-2001"
        ]


class TestAddTopup:
    """Tests for applying top-ups."""

    def test_reamortizes(self, store, sample_loan_id, sample_topup) -> None:
        ledger = store.add_topup(sample_loan_id, sample_topup)

        assert len(ledger) == 24
        assert store.get_schedule(sample_loan_id) == ledger
        assert store.get_loan(sample_loan_id).topup_history == (sample_topup,)

    def test_keeps_superseded_ledger(self, store, sample_loan_id, sample_topup) -> None:
        original = store.get_schedule(sample_loan_id)

        store.add_topup(sample_loan_id, sample_topup)

        assert store.ledger_history(sample_loan_id) == [original]

    def test_paid_status_survives_topup(self, store, sample_loan_id, sample_topup) -> None:
        store.record_payment(sample_loan_id, 1, date(2024, 2, 14))
        store.record_payment(sample_loan_id, 2, date(2024, 3, 15))

        ledger = store.add_topup(sample_loan_id, sample_topup)

        assert [inst.status for inst in ledger[:3]] == [
            InstallmentStatus.PAID,
            InstallmentStatus.PAID,
            InstallmentStatus.SCHEDULED,
        ]
        assert ledger[0].paid_date == date(2024, 2, 14)

    def test_rejected_topup_leaves_ledger_unchanged(self, store, sample_loan_id) -> None:
        """Test a top-up dated before disbursal changes nothing."""
        before = store.get_schedule(sample_loan_id)
        loan_before = store.get_loan(sample_loan_id)
        bad = TopUpEvent("T-9", date(2023, 12, 31), Decimal("1000"), Decimal("10"), 12)

        with pytest.raises(InvalidTopupSequence):
            store.add_topup(sample_loan_id, bad)

        assert store.get_schedule(sample_loan_id) is before
        assert store.get_loan(sample_loan_id) is loan_before
        assert store.ledger_history(sample_loan_id) == []

    def test_topup_superseding_paid_installment_rejected(self, store, sample_loan_id) -> None:
        """Test a top-up cannot replace an installment that was paid in advance.

        Installments 1-7 are paid on 1 Jul 2024; a top-up on 15 Jul keeps
        1-6 but would re-amortize installment 7, due 15 Aug.
        """
        for number in range(1, 8):
            store.record_payment(sample_loan_id, number, date(2024, 7, 1))
        before = store.get_schedule(sample_loan_id)
        loan_before = store.get_loan(sample_loan_id)
        receipt_before = store.get_receipt(sample_loan_id, 7)
        event = TopUpEvent("T-1", date(2024, 7, 15), Decimal("10000"), Decimal("10"), 12)

        with pytest.raises(InvalidEntityStateError) as exc_info:
            store.add_topup(sample_loan_id, event)

        assert exc_info.value.context["installment_number"] == 7
        assert store.get_schedule(sample_loan_id) is before
        assert store.get_loan(sample_loan_id) is loan_before
        assert store.ledger_history(sample_loan_id) == []
        assert store.get_receipt(sample_loan_id, 7).amount == receipt_before.amount

    def test_out_of_order_topup_rejected(self, store, sample_loan_id, sample_topup) -> None:
        store.add_topup(sample_loan_id, sample_topup)
        earlier = TopUpEvent("T-9", date(2024, 5, 1), Decimal("1000"), Decimal("10"), 12)

        with pytest.raises(InvalidTopupSequence):
            store.add_topup(sample_loan_id, earlier)

        assert len(store.get_schedule(sample_loan_id)) == 24

    def test_topup_on_closed_loan(self, store, sample_loan_id, sample_topup) -> None:
        for number in range(1, 13):
            store.record_payment(sample_loan_id, number, date(2025, 1, 15))

        with pytest.raises(InvalidEntityStateError) as exc_info:
            store.add_topup(sample_loan_id, sample_topup)

        assert exc_info.value.context["topup_id"] == "T-3001"

    def test_unknown_loan(self, store, sample_topup) -> None:
        with pytest.raises(EntityNotFoundError):
            store.add_topup("L-missing", sample_topup)

    def test_concurrent_topups_serialize(self, store, sample_loan_id) -> None:
        """Test racing top-ups each land on a complete ledger."""
        events = [
            TopUpEvent(f"T-{n}", date(2024, 2 + n, 1), Decimal("1000"), Decimal("10"), 12)
            for n in range(4)
        ]
        errors: list[Exception] = []

        def apply(event: TopUpEvent) -> None:
            try:
                store.add_topup(sample_loan_id, event)
            except InvalidTopupSequence as e:
                errors.append(e)

        threads = [threading.Thread(target=apply, args=(event,)) for event in events]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        loan = store.get_loan(sample_loan_id)
        ledger = store.get_schedule(sample_loan_id)
        assert len(loan.topup_history) + len(errors) == 4
        assert len(store.ledger_history(sample_loan_id)) == len(loan.topup_history)
        assert ledger[-1].balance == Decimal("0.00")
        assert [inst.installment_number for inst in ledger] == list(range(1, len(ledger) + 1))


class TestConcurrentUpdates:
    """Tests for top-ups racing payments on the same loan."""

    PAYMENTS = [(1, date(2024, 2, 15)), (2, date(2024, 3, 14)), (3, date(2024, 4, 15))]

    def _race(self, store: LedgerStore, loan_id: str, event: TopUpEvent) -> list[Exception]:
        barrier = threading.Barrier(len(self.PAYMENTS) + 1)
        errors: list[Exception] = []

        def topup() -> None:
            barrier.wait()
            try:
                store.add_topup(loan_id, event)
            except InvalidTopupSequence as e:
                errors.append(e)

        def pay(number: int, paid_on: date) -> None:
            barrier.wait()
            store.record_payment(loan_id, number, paid_on)

        threads = [threading.Thread(target=topup)] + [
            threading.Thread(target=pay, args=payment) for payment in self.PAYMENTS
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return errors

    def test_topup_and_payments_match_serial_replay(
        self, store, sample_customer, sample_loan, sample_topup
    ) -> None:
        """Test no payment is lost whichever side wins the loan lock."""
        errors = self._race(store, sample_loan.loan_id, sample_topup)

        replay = LedgerStore()
        replay.add_customer(sample_customer)
        replay.add_loan(sample_loan)
        replay.add_topup(sample_loan.loan_id, sample_topup)
        for number, paid_on in self.PAYMENTS:
            replay.record_payment(sample_loan.loan_id, number, paid_on)

        assert errors == []
        assert store.get_schedule(sample_loan.loan_id) == replay.get_schedule(sample_loan.loan_id)
        assert store.get_loan(sample_loan.loan_id) == replay.get_loan(sample_loan.loan_id)
        assert len(store.ledger_history(sample_loan.loan_id)) == 1

    def test_rejected_topup_keeps_racing_payments(self, store, sample_loan_id) -> None:
        bad = TopUpEvent("T-9", date(2023, 12, 31), Decimal("1000"), Decimal("10"), 12)

        errors = self._race(store, sample_loan_id, bad)

        ledger = store.get_schedule(sample_loan_id)
        assert len(errors) == 1
        assert len(ledger) == 12
        assert [inst.paid_date for inst in ledger[:3]] == [paid_on for _, paid_on in self.PAYMENTS]
        assert all(inst.status == InstallmentStatus.SCHEDULED for inst in ledger[3:])
        assert store.ledger_history(sample_loan_id) == []

    def test_reports_see_whole_loans(self, store, sample_loan) -> None:
        """Test reports taken while loans are registered count each loan fully."""
        added = threading.Event()

        def register() -> None:
            for n in range(50):
                store.add_loan(replace(sample_loan, loan_id=f"L-3{n:03d}"))
            added.set()

        thread = threading.Thread(target=register)
        thread.start()
        snapshots = []
        while not added.is_set():
            snapshots.append((store.summary(), len(store.dues_for_month(2024, 3))))
        thread.join()
        snapshots.append((store.summary(), len(store.dues_for_month(2024, 3))))

        for summary, dues in snapshots:
            assert summary["installments"] == 12 * summary["loans"]
            assert dues <= 51
        assert snapshots[-1][0]["loans"] == 51
        assert snapshots[-1][1] == 51


class TestPayments:
    """Tests for recording payments."""

    def test_record_payment(self, store, sample_loan_id) -> None:
        paid = store.record_payment(sample_loan_id, 3, date(2024, 4, 16))

        assert paid.status == InstallmentStatus.PAID
        assert paid.paid_date == date(2024, 4, 16)
        assert store.get_installment(sample_loan_id, 3) == paid

    def test_double_payment(self, store, sample_loan_id) -> None:
        store.record_payment(sample_loan_id, 1, date(2024, 2, 15))

        with pytest.raises(InvalidEntityStateError):
            store.record_payment(sample_loan_id, 1, date(2024, 2, 16))

        assert store.get_installment(sample_loan_id, 1).paid_date == date(2024, 2, 15)

    def test_unknown_installment(self, store, sample_loan_id) -> None:
        with pytest.raises(EntityNotFoundError) as exc_info:
            store.record_payment(sample_loan_id, 13, date(2024, 2, 15))

        assert exc_info.value.context["installment_number"] == 13

    def test_last_payment_closes_loan(self, store, sample_loan_id) -> None:
        for number in range(1, 12):
            store.record_payment(sample_loan_id, number, date(2024, 12, 1))
        assert store.get_loan(sample_loan_id).status == LoanStatus.ACTIVE

        store.record_payment(sample_loan_id, 12, date(2025, 1, 15))

        assert store.get_loan(sample_loan_id).status == LoanStatus.CLOSED

    def test_overdue_installment_can_be_paid(self, store, sample_loan_id) -> None:
        store.refresh_overdue(sample_loan_id, date(2024, 4, 1))

        paid = store.record_payment(sample_loan_id, 1, date(2024, 4, 2))

        assert paid.status == InstallmentStatus.PAID


class TestRefreshOverdue:
    """Tests for overdue marking."""

    def test_marks_past_due_rows(self, store, sample_loan_id) -> None:
        store.record_payment(sample_loan_id, 1, date(2024, 2, 15))

        ledger = store.refresh_overdue(sample_loan_id, date(2024, 4, 20))

        assert [inst.status for inst in ledger[:4]] == [
            InstallmentStatus.PAID,
            InstallmentStatus.OVERDUE,
            InstallmentStatus.OVERDUE,
            InstallmentStatus.SCHEDULED,
        ]

    def test_due_today_is_not_overdue(self, store, sample_loan_id) -> None:
        ledger = store.refresh_overdue(sample_loan_id, date(2024, 2, 15))

        assert ledger[0].status == InstallmentStatus.SCHEDULED


class TestQueries:
    """Tests for lookups, receipts and reports."""

    def test_get_customer_not_found(self, store) -> None:
        with pytest.raises(EntityNotFoundError) as exc_info:
            store.get_customer("C-missing")

        assert exc_info.value.context["customer_id"] == "C-missing"

    def test_get_loan_not_found(self, store) -> None:
        with pytest.raises(EntityNotFoundError):
            store.get_loan("L-missing")

    def test_get_schedule_not_found(self, store) -> None:
        with pytest.raises(EntityNotFoundError):
            store.get_schedule("L-missing")

    def test_get_installment_zero(self, store, sample_loan_id) -> None:
        with pytest.raises(EntityNotFoundError):
            store.get_installment(sample_loan_id, 0)

    def test_get_receipt(self, store, sample_loan_id) -> None:
        paid = store.record_payment(sample_loan_id, 2, date(2024, 3, 14))

        receipt = store.get_receipt(sample_loan_id, 2)

        assert receipt.receipt_number == "RCPT-L-2001-2"
        assert receipt.customer_name == "Asha Rao"
        assert receipt.total_installments == 12
        assert receipt.amount == paid.amount
        assert receipt.balance_after == paid.balance

    def test_get_receipt_unpaid(self, store, sample_loan_id) -> None:
        with pytest.raises(InstallmentNotSettled):
            store.get_receipt(sample_loan_id, 1)

    def test_dues_for_month(self, store, sample_loan, sample_customer) -> None:
        store.add_loan(
            LoanAccount(
                loan_id="L-1999",
                customer_id=sample_customer.customer_id,
                principal=Decimal("10000"),
                annual_rate=Decimal("10"),
                tenure_months=6,
                disbursal_date=date(2024, 2, 15),
            )
        )

        rows = store.dues_for_month(2024, 3)

        assert [(row.loan_id, row.due_date) for row in rows] == [
            ("L-1999", date(2024, 3, 15)),
            ("L-2001", date(2024, 3, 15)),
        ]
        first = rows[1]
        assert isinstance(first, DueReportRow)
        assert first.installment_number == 2
        assert first.customer_name == "Asha Rao"
        assert first.guarantor_name == "Vikram Rao"
        assert first.phone == "+919800000001"
        assert first.emi_amount == store.get_installment("L-2001", 2).amount

    def test_dues_for_month_without_guarantor(self, sample_customer, sample_loan) -> None:
        store = LedgerStore()
        store.add_customer(replace(sample_customer, guarantor=None))
        store.add_loan(sample_loan)

        rows = store.dues_for_month(2024, 2)

        assert rows[0].guarantor_name == ""

    def test_dues_for_empty_month(self, store) -> None:
        assert store.dues_for_month(2030, 1) == []

    def test_summary(self, store, sample_loan_id, sample_topup) -> None:
        store.record_payment(sample_loan_id, 1, date(2024, 2, 15))
        store.add_topup(sample_loan_id, sample_topup)

        assert store.summary() == {
            "customers": 1,
            "loans": 1,
            "topups": 1,
            "installments": 24,
            "paid_installments": 1,
        }
