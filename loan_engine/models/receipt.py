"""Payment receipt projection."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class Receipt:
    """Read-only view of one settled installment.

    Regenerated on demand from the ledger; never the source of truth.
    """

    receipt_number: str
    loan_id: str
    customer_id: str
    customer_name: str
    customer_phone: str
    installment_number: int
    total_installments: int
    due_date: date
    paid_date: date
    amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    balance_after: Decimal
