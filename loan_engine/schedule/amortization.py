"""Fixed-installment (EMI) amortization schedules.

Balances are carried at full ``Decimal`` precision while the schedule is
computed; only the values written to ``EmiInstallment`` are rounded to cents.
The last installment closes the balance exactly, so rounded principal
components always add up to the rounded principal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from dateutil.relativedelta import relativedelta

from loan_engine.exceptions import InvalidLoanTerms
from loan_engine.models.loan import EmiInstallment, to_date, to_decimal

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")
MONTHS_PER_YEAR = Decimal("12")
HUNDRED = Decimal("100")


def quantize_money(value: Decimal) -> Decimal:
    """Round a monetary value to cents, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def installment_id(loan_id: str, number: int) -> str:
    """Stable identifier of an installment within a loan's ledger."""
    return f"EMI-{loan_id}-{number}"


@dataclass(frozen=True)
class ScheduleLine:
    """Full-precision amortization row."""

    number: int  # 1-based within the segment
    due_date: date
    payment: Decimal
    principal: Decimal
    interest: Decimal
    opening_balance: Decimal
    closing_balance: Decimal


def validate_terms(
    principal: Decimal | int | float | str,
    annual_rate: Decimal | int | float | str,
    tenure_months: int,
    *,
    loan_id: str = "",
) -> tuple[Decimal, Decimal]:
    """Check loan terms and return principal and rate as Decimals.

    Raises
    ------
    InvalidLoanTerms
        If principal <= 0, rate < 0 or tenure is not an integer >= 1.
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)

    if not principal.is_finite() or principal <= 0:
        raise InvalidLoanTerms(
            f"Principal must be greater than zero, got {principal}",
            loan_id=loan_id,
            field="principal",
            value=principal,
        )
    if not annual_rate.is_finite() or annual_rate < 0:
        raise InvalidLoanTerms(
            f"Interest rate cannot be negative, got {annual_rate}",
            loan_id=loan_id,
            field="annual_rate",
            value=annual_rate,
        )
    if isinstance(tenure_months, bool) or not isinstance(tenure_months, int) or tenure_months < 1:
        raise InvalidLoanTerms(
            f"Tenure must be a whole number of months >= 1, got {tenure_months!r}",
            loan_id=loan_id,
            field="tenure_months",
            value=tenure_months,
        )
    return principal, annual_rate


def monthly_rate(annual_rate: Decimal) -> Decimal:
    """Convert an annual percentage rate to a monthly fraction."""
    return annual_rate / MONTHS_PER_YEAR / HUNDRED


def monthly_installment(
    principal: Decimal | int | float | str,
    annual_rate: Decimal | int | float | str,
    tenure_months: int,
) -> Decimal:
    """Quote the fixed monthly installment, rounded to cents.

    Uses ``P * r * (1 + r)^n / ((1 + r)^n - 1)``; a zero rate splits the
    principal evenly.
    """
    principal, annual_rate = validate_terms(principal, annual_rate, tenure_months)
    return quantize_money(_emi(principal, monthly_rate(annual_rate), tenure_months))


def _emi(principal: Decimal, rate: Decimal, tenure_months: int) -> Decimal:
    if rate == 0:
        return principal / tenure_months
    growth = (1 + rate) ** tenure_months
    return principal * rate * growth / (growth - 1)


def due_date_for(start_date: date, offset: int) -> date:
    """Date ``offset`` calendar months after ``start_date``.

    Month-end overflow is clipped to the last day of the target month
    (Jan 31 + 1 month is Feb 28/29), never rolled into the next month.
    """
    return start_date + relativedelta(months=offset)


def amortize(
    principal: Decimal | int | float | str,
    annual_rate: Decimal | int | float | str,
    tenure_months: int,
    start_date: date | datetime,
    *,
    loan_id: str = "",
) -> list[ScheduleLine]:
    """Compute full-precision amortization lines."""
    principal, annual_rate = validate_terms(
        principal, annual_rate, tenure_months, loan_id=loan_id
    )
    start = to_date(start_date)
    rate = monthly_rate(annual_rate)

    if rate == 0:
        # Flat split; the last line absorbs the rounding remainder
        payment = quantize_money(principal / tenure_months)
    else:
        payment = _emi(principal, rate, tenure_months)

    lines: list[ScheduleLine] = []
    balance = principal
    for number in range(1, tenure_months + 1):
        interest = balance * rate
        if number < tenure_months:
            principal_part = payment - interest
        else:
            principal_part = balance
        closing = balance - principal_part
        lines.append(
            ScheduleLine(
                number=number,
                due_date=due_date_for(start, number),
                payment=principal_part + interest,
                principal=principal_part,
                interest=interest,
                opening_balance=balance,
                closing_balance=closing,
            )
        )
        balance = closing

    return lines


def to_installments(
    lines: list[ScheduleLine],
    principal: Decimal,
    *,
    loan_id: str = "",
    segment: int = 0,
    first_number: int = 1,
) -> list[EmiInstallment]:
    """Round full-precision lines into ledger rows.

    Every row satisfies ``amount == principal_amount + interest_amount`` and
    the displayed balance falls by exactly the displayed principal, ending
    at 0.00.
    """
    remaining = quantize_money(to_decimal(principal))
    installments: list[EmiInstallment] = []

    for index, line in enumerate(lines):
        interest = quantize_money(line.interest)
        if index < len(lines) - 1:
            amount = quantize_money(line.payment)
            principal_part = amount - interest
        else:
            principal_part = remaining
            amount = principal_part + interest
        remaining -= principal_part

        number = first_number + index
        installments.append(
            EmiInstallment(
                installment_id=installment_id(loan_id, number),
                loan_id=loan_id,
                installment_number=number,
                due_date=line.due_date,
                amount=amount,
                principal_amount=principal_part,
                interest_amount=interest,
                balance=remaining,
                segment=segment,
            )
        )

    return installments


def schedule(
    principal: Decimal | int | float | str,
    annual_rate: Decimal | int | float | str,
    tenure_months: int,
    start_date: date | datetime,
    *,
    loan_id: str = "",
    segment: int = 0,
    first_number: int = 1,
) -> list[EmiInstallment]:
    """Build a fixed-installment schedule of ``tenure_months`` rows.

    Parameters
    ----------
    principal : Decimal | int | float | str
        Amount to amortize, > 0.
    annual_rate : Decimal | int | float | str
        Annual interest rate in percent, >= 0.
    tenure_months : int
        Number of monthly installments, >= 1.
    start_date : date | datetime
        Anchor date; installment *i* falls due *i* months later.
    loan_id : str
        Loan the rows belong to.
    segment : int
        Amortization segment (0 for the base loan, k for the k-th top-up).
    first_number : int
        Number given to the first row.

    Returns
    -------
    list[EmiInstallment]
        Installments ordered by due date.

    Raises
    ------
    InvalidLoanTerms
        If the terms are invalid; nothing is produced.
    """
    lines = amortize(principal, annual_rate, tenure_months, start_date, loan_id=loan_id)
    installments = to_installments(
        lines,
        lines[0].opening_balance,
        loan_id=loan_id,
        segment=segment,
        first_number=first_number,
    )
    logger.debug(
        "Scheduled %d installments for loan %s (segment %d)",
        len(installments),
        loan_id or "-",
        segment,
    )
    return installments
