"""Loan-servicing domain models."""

from loan_engine.models.base import Address, Guarantor
from loan_engine.models.customer import Customer
from loan_engine.models.document import DocumentSpec, RenderedDocument, ResolvedAssets
from loan_engine.models.enums import DocumentKind, InstallmentStatus, LoanStatus
from loan_engine.models.loan import EmiInstallment, LoanAccount, TopUpEvent
from loan_engine.models.receipt import Receipt

__all__ = [
    "Address",
    "Customer",
    "DocumentKind",
    "DocumentSpec",
    "EmiInstallment",
    "Guarantor",
    "InstallmentStatus",
    "LoanAccount",
    "LoanStatus",
    "Receipt",
    "RenderedDocument",
    "ResolvedAssets",
    "TopUpEvent",
]
