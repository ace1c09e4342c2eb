"""Project a settled installment into a payment receipt."""

from loan_engine.exceptions import InstallmentNotSettled, ReferentialIntegrityError
from loan_engine.models.customer import Customer
from loan_engine.models.loan import EmiInstallment, LoanAccount
from loan_engine.models.receipt import Receipt


def receipt_number(loan_id: str, installment_number: int) -> str:
    """Receipt reference printed on the document."""
    return f"RCPT-{loan_id}-{installment_number}"


class ReceiptFormatter:
    """Build ``Receipt`` records from paid installments."""

    def format(
        self,
        installment: EmiInstallment,
        loan: LoanAccount,
        customer: Customer,
        total_installments: int | None = None,
    ) -> Receipt:
        """Return the receipt for ``installment``.

        Raises
        ------
        InstallmentNotSettled
            If the installment is not paid.
        ReferentialIntegrityError
            If the installment, loan and customer do not belong together.
        """
        if installment.loan_id != loan.loan_id:
            raise ReferentialIntegrityError(
                f"Installment {installment.installment_id} does not belong to loan {loan.loan_id}",
                loan_id=loan.loan_id,
                installment_number=installment.installment_number,
            )
        if loan.customer_id != customer.customer_id:
            raise ReferentialIntegrityError(
                f"Loan {loan.loan_id} does not belong to customer {customer.customer_id}",
                loan_id=loan.loan_id,
                customer_id=customer.customer_id,
            )
        if not installment.is_paid or installment.paid_date is None:
            raise InstallmentNotSettled(
                f"Installment {installment.installment_number} of loan {loan.loan_id} "
                f"is {installment.status.value}, not paid",
                loan_id=loan.loan_id,
                installment_number=installment.installment_number,
                status=installment.status,
            )

        return Receipt(
            receipt_number=receipt_number(loan.loan_id, installment.installment_number),
            loan_id=loan.loan_id,
            customer_id=customer.customer_id,
            customer_name=customer.name,
            customer_phone=customer.phone,
            installment_number=installment.installment_number,
            total_installments=total_installments or installment.installment_number,
            due_date=installment.due_date,
            paid_date=installment.paid_date,
            amount=installment.amount,
            principal_amount=installment.principal_amount,
            interest_amount=installment.interest_amount,
            balance_after=installment.balance,
        )
