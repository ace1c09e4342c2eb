"""Customer model."""

from dataclasses import dataclass

from loan_engine.models.base import Address, Guarantor


@dataclass(frozen=True)
class Customer:
    """Borrower entity as supplied by the external data layer."""

    customer_id: str
    name: str
    phone: str
    email: str = ""
    address: Address | None = None
    photo_ref: str | None = None  # Path or URL, resolved outside the engine
    guarantor: Guarantor | None = None
