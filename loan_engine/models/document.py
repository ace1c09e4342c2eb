"""Document request and result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from loan_engine.config import LayoutConfig
from loan_engine.models.customer import Customer
from loan_engine.models.enums import DocumentKind
from loan_engine.models.loan import EmiInstallment, LoanAccount
from loan_engine.models.receipt import Receipt

if TYPE_CHECKING:
    from loan_engine.documents.primitives import Page


@dataclass(frozen=True)
class ResolvedAssets:
    """Binary assets fetched by the caller before a document is built."""

    customer_photo: bytes | None = None

    @classmethod
    def from_path(cls, photo_path: str | Path | None) -> ResolvedAssets:
        """Load the customer photo from disk, if a path is given."""
        if photo_path is None:
            return cls()
        return cls(customer_photo=Path(photo_path).read_bytes())


@dataclass(frozen=True)
class DocumentSpec:
    """Everything needed to build one document."""

    kind: DocumentKind
    customer: Customer
    loan: LoanAccount
    installments: tuple[EmiInstallment, ...] = ()
    receipt: Receipt | None = None
    assets: ResolvedAssets = field(default_factory=ResolvedAssets)
    layout: LayoutConfig = field(default_factory=LayoutConfig)


@dataclass(frozen=True)
class RenderedDocument:
    """Finished, watermarked artifact handed to a document sink."""

    kind: DocumentKind
    loan_id: str
    customer_id: str
    filename: str
    pages: tuple[Page, ...]
    content: bytes
    installment_number: int | None = None

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def size_bytes(self) -> int:
        return len(self.content)
