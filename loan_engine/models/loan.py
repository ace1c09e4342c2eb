"""Loan, top-up and installment models."""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal

from loan_engine.exceptions import InvalidEntityStateError
from loan_engine.models.enums import InstallmentStatus, LoanStatus


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a numeric input to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_date(value: date | datetime) -> date:
    """Drop the time of day; schedules are anchored on calendar dates."""
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class TopUpEvent:
    """Mid-life re-amortization checkpoint.

    From ``topup_date`` forward the outstanding balance plus ``amount`` is
    re-amortized at ``annual_rate`` over ``tenure_months``.
    """

    topup_id: str
    topup_date: date
    amount: Decimal
    annual_rate: Decimal  # Percent per annum (e.g. 10 for 10%)
    tenure_months: int
    processing_fee: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "topup_date", to_date(self.topup_date))
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "annual_rate", to_decimal(self.annual_rate))
        if self.processing_fee is not None:
            object.__setattr__(self, "processing_fee", to_decimal(self.processing_fee))


@dataclass(frozen=True)
class LoanAccount:
    """Disbursed loan contract."""

    loan_id: str
    customer_id: str
    principal: Decimal
    annual_rate: Decimal  # Percent per annum
    tenure_months: int
    disbursal_date: date
    processing_fee: Decimal | None = None
    topup_history: tuple[TopUpEvent, ...] = ()
    status: LoanStatus = LoanStatus.ACTIVE

    def __post_init__(self) -> None:
        object.__setattr__(self, "principal", to_decimal(self.principal))
        object.__setattr__(self, "annual_rate", to_decimal(self.annual_rate))
        object.__setattr__(self, "disbursal_date", to_date(self.disbursal_date))
        object.__setattr__(self, "topup_history", tuple(self.topup_history))
        if self.processing_fee is not None:
            object.__setattr__(self, "processing_fee", to_decimal(self.processing_fee))

    def effective_processing_fee(self, rate: Decimal = Decimal("0.05")) -> Decimal:
        """Explicit processing fee, or ``principal * rate`` when none was set."""
        if self.processing_fee is not None:
            return self.processing_fee
        return (self.principal * rate).quantize(Decimal("0.01"))

    def with_topup(self, event: TopUpEvent) -> "LoanAccount":
        """Return a copy with ``event`` appended to the top-up history."""
        return replace(self, topup_history=self.topup_history + (event,))

    @property
    def current_rate(self) -> Decimal:
        """Rate in force after the latest top-up."""
        if self.topup_history:
            return self.topup_history[-1].annual_rate
        return self.annual_rate

    @property
    def current_tenure(self) -> int:
        """Tenure of the latest amortization segment."""
        if self.topup_history:
            return self.topup_history[-1].tenure_months
        return self.tenure_months

    @property
    def total_topups(self) -> Decimal:
        """Sum of all top-up amounts."""
        return sum((event.amount for event in self.topup_history), Decimal("0"))


@dataclass(frozen=True)
class EmiInstallment:
    """One row of the consolidated repayment ledger."""

    installment_id: str
    loan_id: str
    installment_number: int  # 1, 2, 3, ... contiguous across segments
    due_date: date
    amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    balance: Decimal  # Outstanding principal after this installment
    status: InstallmentStatus = InstallmentStatus.SCHEDULED
    paid_date: date | None = None
    segment: int = 0  # 0 for the base schedule, k for the k-th top-up

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID

    def mark_paid(self, paid_date: date | datetime) -> "EmiInstallment":
        """Return a settled copy; an installment is settled exactly once."""
        if self.is_paid:
            raise InvalidEntityStateError(
                f"Installment {self.installment_number} of loan {self.loan_id} is already paid",
                loan_id=self.loan_id,
                installment_number=self.installment_number,
                paid_date=self.paid_date,
            )
        return replace(self, status=InstallmentStatus.PAID, paid_date=to_date(paid_date))

    def mark_overdue(self) -> "EmiInstallment":
        """Return an overdue copy of an unpaid installment."""
        if self.is_paid:
            raise InvalidEntityStateError(
                f"Installment {self.installment_number} of loan {self.loan_id} is paid",
                loan_id=self.loan_id,
                installment_number=self.installment_number,
            )
        return replace(self, status=InstallmentStatus.OVERDUE)
