"""Assemble the content tree of an agreement, loan card or receipt."""

from __future__ import annotations

import logging
from decimal import Decimal

from loan_engine.config import BrandingConfig
from loan_engine.documents.blocks import (
    Block,
    Column,
    DetailBlock,
    HeaderBlock,
    SignatureBlock,
    TableBlock,
    TextBlock,
    format_date,
    format_money,
    format_rate,
)
from loan_engine.exceptions import InstallmentNotSettled, MissingRequiredAsset
from loan_engine.models.customer import Customer
from loan_engine.models.document import DocumentSpec
from loan_engine.models.enums import DocumentKind
from loan_engine.models.loan import EmiInstallment, LoanAccount
from loan_engine.models.receipt import Receipt
from loan_engine.schedule.amortization import monthly_installment

logger = logging.getLogger(__name__)

SCHEDULE_COLUMNS = (
    Column("No.", 0.5, "right"),
    Column("Due Date", 1.1),
    Column("EMI", 1.0, "right"),
    Column("Principal", 1.0, "right"),
    Column("Interest", 1.0, "right"),
    Column("Balance", 1.1, "right"),
    Column("Status", 0.9),
)
# EMI, Principal and Interest carry running totals
SCHEDULE_TOTALS = (2, 3, 4)

TOPUP_COLUMNS = (
    Column("Top-up", 1.2),
    Column("Date", 1.1),
    Column("Amount", 1.1, "right"),
    Column("New Rate", 1.0, "right"),
    Column("New Tenure", 0.9, "right"),
    Column("Fee", 0.9, "right"),
)


class DocumentModelBuilder:
    """Turn a ``DocumentSpec`` into an ordered tuple of content blocks.

    Parameters
    ----------
    branding : BrandingConfig | None
        Lender name, currency label and agreement terms.
    processing_fee_rate : Decimal
        Fee rate used when a loan or top-up carries no explicit fee.
    """

    def __init__(
        self,
        branding: BrandingConfig | None = None,
        processing_fee_rate: Decimal = Decimal("0.05"),
    ) -> None:
        self.branding = branding or BrandingConfig()
        self.processing_fee_rate = processing_fee_rate

    def build(self, spec: DocumentSpec) -> tuple[Block, ...]:
        """Build the content tree.

        Raises
        ------
        MissingRequiredAsset
            If the document kind needs the customer photo and none was resolved.
        InstallmentNotSettled
            If a receipt is requested without a settled installment.
        """
        self._check_assets(spec)

        blocks: list[Block] = [
            HeaderBlock(self.branding.company_name.upper(), spec.kind.display_name),
            self._customer_block(spec.customer, spec.assets.customer_photo),
            self._loan_summary_block(spec.loan, spec.installments),
        ]
        if spec.loan.topup_history:
            blocks.append(self._topup_block(spec.loan))

        if spec.kind == DocumentKind.RECEIPT:
            blocks.append(self._payment_block(spec.receipt))
            blocks.append(self._schedule_block("Payment", [self._receipt_row(spec.receipt)]))
        else:
            blocks.append(
                self._schedule_block(
                    "EMI Schedule",
                    [self._installment_row(inst) for inst in spec.installments],
                )
            )

        if spec.kind == DocumentKind.AGREEMENT:
            if spec.customer.guarantor is not None:
                blocks.append(self._guarantor_block(spec.customer))
            blocks.append(TextBlock("Terms and Conditions", tuple(self.branding.rendered_terms())))

        blocks.append(
            SignatureBlock(
                (
                    ("Customer Signature",),
                    ("Authorized Signatory", f"({self.branding.company_name})"),
                )
            )
        )
        logger.debug("Built %d blocks for %s of loan %s", len(blocks), spec.kind.value, spec.loan.loan_id)
        return tuple(blocks)

    def _check_assets(self, spec: DocumentSpec) -> None:
        if spec.kind.requires_photo and not spec.assets.customer_photo:
            raise MissingRequiredAsset(
                f"Customer photo is required for the {spec.kind.display_name.lower()} "
                f"of loan {spec.loan.loan_id}",
                asset="customer_photo",
                kind=spec.kind.value,
                loan_id=spec.loan.loan_id,
                customer_id=spec.customer.customer_id,
            )
        if spec.kind == DocumentKind.RECEIPT and spec.receipt is None:
            raise InstallmentNotSettled(
                f"Receipt for loan {spec.loan.loan_id} requested without a settled installment",
                loan_id=spec.loan.loan_id,
            )

    def _money(self, value: Decimal) -> str:
        return f"{self.branding.currency_label} {format_money(value)}"

    def _customer_block(self, customer: Customer, photo: bytes | None) -> DetailBlock:
        rows = [
            ("Customer Name", customer.name),
            ("Customer ID", customer.customer_id),
            ("Phone Number", customer.phone),
        ]
        if customer.email:
            rows.append(("Email", customer.email))
        if customer.address is not None:
            rows.append(("Address", customer.address.one_line()))
        return DetailBlock("Customer Details", tuple(rows), image=photo)

    def _loan_summary_block(
        self, loan: LoanAccount, installments: tuple[EmiInstallment, ...]
    ) -> DetailBlock:
        rows = [
            ("Loan ID", loan.loan_id),
            ("Loan Amount", self._money(loan.principal)),
            ("Interest Rate", format_rate(loan.annual_rate)),
            ("Tenure", f"{loan.tenure_months} months"),
            ("Disbursal Date", format_date(loan.disbursal_date)),
            ("Processing Fee", self._money(loan.effective_processing_fee(self.processing_fee_rate))),
        ]
        if loan.topup_history:
            rows.extend(
                [
                    ("Total Top-ups", self._money(loan.total_topups)),
                    ("Current Rate", format_rate(loan.current_rate)),
                    ("Current Tenure", f"{loan.current_tenure} months"),
                ]
            )
        rows.append(("Monthly EMI", self._money(self._current_emi(loan, installments))))
        if installments:
            rows.append(("Installments", str(len(installments))))
        return DetailBlock("Loan Details", tuple(rows))

    def _current_emi(self, loan: LoanAccount, installments: tuple[EmiInstallment, ...]) -> Decimal:
        """Installment of the segment currently in force."""
        if installments:
            latest = max(inst.segment for inst in installments)
            return next(inst.amount for inst in installments if inst.segment == latest)
        return monthly_installment(loan.principal, loan.annual_rate, loan.tenure_months)

    def _topup_block(self, loan: LoanAccount) -> TableBlock:
        rows = tuple(
            (
                event.topup_id,
                event.topup_date,
                event.amount,
                format_rate(event.annual_rate),
                f"{event.tenure_months} m",
                event.processing_fee
                if event.processing_fee is not None
                else (event.amount * self.processing_fee_rate).quantize(Decimal("0.01")),
            )
            for event in loan.topup_history
        )
        return TableBlock("Top-up History", TOPUP_COLUMNS, rows)

    def _payment_block(self, receipt: Receipt) -> DetailBlock:
        rows = (
            ("Receipt No.", receipt.receipt_number),
            ("Installment", f"{receipt.installment_number} of {receipt.total_installments}"),
            ("Due Date", format_date(receipt.due_date)),
            ("Paid On", format_date(receipt.paid_date)),
            ("Amount Paid", self._money(receipt.amount)),
            ("Principal", self._money(receipt.principal_amount)),
            ("Interest", self._money(receipt.interest_amount)),
            ("Balance Outstanding", self._money(receipt.balance_after)),
        )
        return DetailBlock("Payment Details", rows)

    def _guarantor_block(self, customer: Customer) -> DetailBlock:
        guarantor = customer.guarantor
        rows = [("Name", guarantor.name), ("Phone", guarantor.phone)]
        if guarantor.address is not None:
            rows.append(("Address", guarantor.address.one_line()))
        return DetailBlock("Guarantor Details", tuple(rows))

    def _schedule_block(self, title: str, rows: list[tuple]) -> TableBlock:
        return TableBlock(title, SCHEDULE_COLUMNS, tuple(rows), total_columns=SCHEDULE_TOTALS)

    @staticmethod
    def _installment_row(inst: EmiInstallment) -> tuple:
        return (
            inst.installment_number,
            inst.due_date,
            inst.amount,
            inst.principal_amount,
            inst.interest_amount,
            inst.balance,
            inst.status.value.title(),
        )

    @staticmethod
    def _receipt_row(receipt: Receipt) -> tuple:
        return (
            receipt.installment_number,
            receipt.due_date,
            receipt.amount,
            receipt.principal_amount,
            receipt.interest_amount,
            receipt.balance_after,
            "Paid",
        )
