"""Enumeration types for loan-servicing entities."""

from enum import Enum


class LoanStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class InstallmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    PAID = "paid"
    OVERDUE = "overdue"


class DocumentKind(str, Enum):
    AGREEMENT = "agreement"
    LOAN_CARD = "loan-card"
    RECEIPT = "receipt"

    @property
    def display_name(self) -> str:
        """Human readable document title."""
        return {
            DocumentKind.AGREEMENT: "Loan Agreement",
            DocumentKind.LOAN_CARD: "Loan Card",
            DocumentKind.RECEIPT: "Payment Receipt",
        }[self]

    @property
    def requires_photo(self) -> bool:
        """Whether the customer photo must be resolved before building."""
        return self in (DocumentKind.AGREEMENT, DocumentKind.LOAN_CARD)
