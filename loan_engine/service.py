"""Document generation pipeline over a ledger store."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Protocol

from loan_engine.config import EngineConfig
from loan_engine.documents.builder import DocumentModelBuilder
from loan_engine.documents.layout import PaginatedRenderer
from loan_engine.documents.pdf import PdfWriter
from loan_engine.documents.watermark import WatermarkOverlay
from loan_engine.exceptions import InstallmentNotSettled
from loan_engine.models.document import DocumentSpec, RenderedDocument, ResolvedAssets
from loan_engine.models.enums import DocumentKind
from loan_engine.models.loan import EmiInstallment
from loan_engine.models.receipt import Receipt
from loan_engine.store.ledger import LedgerStore

logger = logging.getLogger(__name__)


class DocumentSink(Protocol):
    def write_document(self, document: RenderedDocument) -> None: ...

    def close(self) -> None: ...


def document_filename(kind: DocumentKind, loan_id: str, installment_number: int | None = None) -> str:
    """File name of a rendered document."""
    if kind == DocumentKind.RECEIPT:
        return f"{kind.value}_{loan_id}_{installment_number}.pdf"
    return f"{kind.value}_{loan_id}.pdf"


class DocumentService:
    """Build, paginate, watermark and write loan documents.

    Parameters
    ----------
    store : LedgerStore
        Source of customers, loans and consolidated ledgers.
    config : EngineConfig | None
        Layout, watermark and branding settings.
    sink : DocumentSink | None
        Receives every generated document when set.
    """

    def __init__(
        self,
        store: LedgerStore,
        config: EngineConfig | None = None,
        sink: DocumentSink | None = None,
    ) -> None:
        self.store = store
        self.config = config or EngineConfig()
        self.sink = sink
        self.builder = DocumentModelBuilder(self.config.branding, self.config.processing_fee_rate)
        self.overlay = WatermarkOverlay(self.config.watermark)
        self.writer = PdfWriter(author=self.config.branding.company_name)

    def schedule(self, loan_id: str) -> tuple[EmiInstallment, ...]:
        """Consolidated schedule of a loan."""
        return self.store.get_schedule(loan_id)

    def receipt(self, loan_id: str, installment_number: int) -> Receipt:
        """Receipt of a paid installment."""
        return self.store.get_receipt(loan_id, installment_number)

    def build_spec(
        self,
        kind: DocumentKind | str,
        loan_id: str,
        assets: ResolvedAssets | None = None,
        installment_number: int | None = None,
    ) -> DocumentSpec:
        """Collect everything the builder needs for one document."""
        kind = DocumentKind(kind)
        loan = self.store.get_loan(loan_id)
        customer = self.store.get_customer(loan.customer_id)

        receipt = None
        if kind == DocumentKind.RECEIPT:
            if installment_number is None:
                raise InstallmentNotSettled(
                    f"Receipt for loan {loan_id} requested without an installment number",
                    loan_id=loan_id,
                )
            receipt = self.receipt(loan_id, installment_number)

        return DocumentSpec(
            kind=kind,
            customer=customer,
            loan=loan,
            installments=self.schedule(loan_id),
            receipt=receipt,
            assets=assets or ResolvedAssets(),
            layout=self.config.layout,
        )

    def render(self, spec: DocumentSpec) -> RenderedDocument:
        """Run a prepared spec through the pipeline without writing it."""
        blocks = self.builder.build(spec)
        # Each spec carries its own geometry
        pages = self.overlay.apply_to(PaginatedRenderer(spec.layout).render(blocks))

        installment_number = spec.receipt.installment_number if spec.receipt else None
        title = f"{spec.kind.display_name} {spec.loan.loan_id}"
        document = RenderedDocument(
            kind=spec.kind,
            loan_id=spec.loan.loan_id,
            customer_id=spec.customer.customer_id,
            filename=document_filename(spec.kind, spec.loan.loan_id, installment_number),
            pages=tuple(pages),
            content=self.writer.write(pages, title=title),
            installment_number=installment_number,
        )
        logger.info(
            "Generated %s (%d pages, %d bytes)",
            document.filename,
            document.page_count,
            document.size_bytes,
            extra={
                "extra": {
                    "loan_id": document.loan_id,
                    "kind": document.kind.value,
                    "pages": document.page_count,
                }
            },
        )
        return document

    def generate(
        self,
        kind: DocumentKind | str,
        loan_id: str,
        assets: ResolvedAssets | None = None,
        installment_number: int | None = None,
    ) -> RenderedDocument:
        """Generate one document and hand it to the sink.

        Parameters
        ----------
        kind : DocumentKind | str
            ``agreement``, ``loan-card`` or ``receipt``.
        loan_id : str
            Loan to document.
        assets : ResolvedAssets | None
            Pre-fetched customer photo; required for agreements and loan cards.
        installment_number : int | None
            Paid installment, for receipts only.

        Returns
        -------
        RenderedDocument
            The watermarked PDF with its pages.

        Raises
        ------
        EntityNotFoundError
            If the loan or installment does not exist.
        InstallmentNotSettled
            If a receipt is requested for an unpaid installment.
        MissingRequiredAsset
            If the customer photo is missing where it is required.
        """
        document = self.render(self.build_spec(kind, loan_id, assets, installment_number))
        if self.sink is not None:
            self.sink.write_document(document)
        return document

    def generate_all(
        self, loan_id: str, assets: ResolvedAssets | None = None
    ) -> list[RenderedDocument]:
        """Agreement, loan card and a receipt for every paid installment."""
        documents = [
            self.generate(DocumentKind.AGREEMENT, loan_id, assets),
            self.generate(DocumentKind.LOAN_CARD, loan_id, assets),
        ]
        for inst in self.schedule(loan_id):
            if inst.is_paid:
                documents.append(
                    self.generate(DocumentKind.RECEIPT, loan_id, assets, inst.installment_number)
                )
        return documents

    def with_layout(self, **changes) -> DocumentService:
        """Copy of this service with layout settings overridden."""
        config = replace(self.config, layout=replace(self.config.layout, **changes))
        return DocumentService(self.store, config, self.sink)
