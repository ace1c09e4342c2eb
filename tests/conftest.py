"""Pytest configuration and fixtures."""

import io
from datetime import date
from decimal import Decimal

import pytest
from PIL import Image

from loan_engine.models import (
    Address,
    Customer,
    Guarantor,
    LoanAccount,
    ResolvedAssets,
    TopUpEvent,
)
from loan_engine.store import LedgerStore


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def sample_customer_id() -> str:
    """Sample customer ID."""
    return "C-1001"


@pytest.fixture
def sample_loan_id() -> str:
    """Sample loan ID."""
    return "L-2001"


@pytest.fixture
def sample_address() -> Address:
    """Sample postal address."""
    return Address(
        street="12 MG Road",
        city="Anytown",
        state="Karnataka",
        postal_code="560001",
    )


@pytest.fixture
def sample_customer(sample_customer_id: str, sample_address: Address) -> Customer:
    """Customer with a guarantor."""
    return Customer(
        customer_id=sample_customer_id,
        name="Asha Rao",
        phone="+919800000001",
        email="asha@example.com",
        address=sample_address,
        photo_ref="photos/C-1001.png",
        guarantor=Guarantor(name="Vikram Rao", phone="+919800000002", address=sample_address),
    )


@pytest.fixture
def sample_loan(sample_loan_id: str, sample_customer_id: str) -> LoanAccount:
    """50,000 at 12.5% over 12 months, disbursed 15 Jan 2024."""
    return LoanAccount(
        loan_id=sample_loan_id,
        customer_id=sample_customer_id,
        principal=Decimal("50000"),
        annual_rate=Decimal("12.5"),
        tenure_months=12,
        disbursal_date=date(2024, 1, 15),
    )


@pytest.fixture
def sample_topup() -> TopUpEvent:
    """Top-up of 20,000 on the due date of the sixth installment."""
    return TopUpEvent(
        topup_id="T-3001",
        topup_date=date(2024, 7, 15),
        amount=Decimal("20000"),
        annual_rate=Decimal("11"),
        tenure_months=18,
    )


@pytest.fixture
def photo_bytes() -> bytes:
    """Small PNG standing in for a customer photo."""
    buffer = io.BytesIO()
    Image.new("RGB", (48, 48), (30, 64, 175)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def assets(photo_bytes: bytes) -> ResolvedAssets:
    """Resolved assets carrying the customer photo."""
    return ResolvedAssets(customer_photo=photo_bytes)


@pytest.fixture
def store(sample_customer: Customer, sample_loan: LoanAccount) -> LedgerStore:
    """Store holding the sample customer and loan."""
    store = LedgerStore()
    store.add_customer(sample_customer)
    store.add_loan(sample_loan)
    return store
