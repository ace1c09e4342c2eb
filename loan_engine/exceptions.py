"""Custom exception hierarchy for loan-engine."""

from typing import Any


class LoanEngineError(Exception):
    """Base exception for all loan-engine errors.

    Extra keyword arguments are kept in ``context`` so callers can build a
    user-facing message (loan id, offending date or value).
    """

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = context


class InvalidLoanTerms(LoanEngineError):
    """Raised when principal, rate or tenure are outside their valid range."""


class InvalidTopupSequence(LoanEngineError):
    """Raised when a top-up predates disbursal or breaks chronological order."""


class InstallmentNotSettled(LoanEngineError):
    """Raised when a receipt is requested for an installment that is not paid."""


class MissingRequiredAsset(LoanEngineError):
    """Raised when a document kind needs an asset that was not resolved."""


class EntityNotFoundError(LoanEngineError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(LoanEngineError):
    """Raised when an entity is in an invalid state for the operation."""


class ConfigurationError(LoanEngineError):
    """Raised when configuration is invalid or missing."""


class SinkError(LoanEngineError):
    """Raised when a sink operation fails."""
