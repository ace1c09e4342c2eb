"""Data stores for loan servicing."""

from loan_engine.store.ledger import DueReportRow, LedgerStore

__all__ = ["DueReportRow", "LedgerStore"]
