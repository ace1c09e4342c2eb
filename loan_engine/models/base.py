"""Base models shared across entities."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Address:
    """Postal address of a customer or guarantor."""

    street: str
    city: str
    state: str
    postal_code: str
    country: str = "IN"

    def one_line(self) -> str:
        """Address on a single line, skipping empty parts."""
        parts = [self.street, self.city, f"{self.state} {self.postal_code}".strip(), self.country]
        return ", ".join(part for part in parts if part)


@dataclass(frozen=True)
class Guarantor:
    """Person standing surety for a customer's loan."""

    name: str
    phone: str
    address: Address | None = None
