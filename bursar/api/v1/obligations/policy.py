"""
Status derivation and installment rules for fee obligations.

Installments are two halves: the first installment is half the total, the second
is whatever balance remains. Obligations without installments take one full payment.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from fastapi import status

from bursar.core.enums import ObligationStatus, PaymentOption
from bursar.core.exceptions import ServiceError
from bursar.core.models import FeeObligation
from bursar.core.split import MINOR_UNIT

INSTALLMENT_NUMBERS = {
    PaymentOption.FULL: None,
    PaymentOption.FIRST_INSTALLMENT: 1,
    PaymentOption.SECOND_INSTALLMENT: 2,
}


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def derive_status(total_amount: Decimal, amount_paid: Decimal) -> ObligationStatus:
    total = _to_decimal(total_amount)
    paid = _to_decimal(amount_paid)
    if total - paid <= 0:
        return ObligationStatus.paid
    if paid > 0:
        return ObligationStatus.partial
    return ObligationStatus.pending


def derive_balance(total_amount: Decimal, amount_paid: Decimal) -> Decimal:
    return max(Decimal("0"), _to_decimal(total_amount) - _to_decimal(amount_paid))


def first_installment_amount(total_amount: Decimal) -> Decimal:
    return (_to_decimal(total_amount) / 2).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def payment_options(obligation: FeeObligation) -> List[PaymentOption]:
    """Options a payer may pick for this obligation, in display order."""
    current = ObligationStatus(obligation.status)
    if current == ObligationStatus.paid:
        return []
    if current == ObligationStatus.partial:
        if obligation.allow_installments:
            return [PaymentOption.SECOND_INSTALLMENT]
        return [PaymentOption.FULL]
    if obligation.allow_installments:
        return [PaymentOption.FULL, PaymentOption.FIRST_INSTALLMENT]
    return [PaymentOption.FULL]


def amount_for_option(obligation: FeeObligation, option: PaymentOption) -> Decimal:
    if option not in payment_options(obligation):
        raise ServiceError(
            f"Payment option '{option.value}' is not available for this fee",
            status.HTTP_400_BAD_REQUEST,
        )
    if option == PaymentOption.FIRST_INSTALLMENT:
        return first_installment_amount(obligation.total_amount)
    return _to_decimal(obligation.balance)


def validate_installment(
    obligation: FeeObligation,
    installment_number: Optional[int],
    amount: Decimal,
) -> None:
    """Installment gating: which installment may be paid now, and for how much."""
    amount = _to_decimal(amount)
    balance = _to_decimal(obligation.balance)
    current = ObligationStatus(obligation.status)

    if installment_number is None:
        if not obligation.allow_installments and amount != balance:
            raise ServiceError("This fee must be paid in full", status.HTTP_400_BAD_REQUEST)
        return
    if not obligation.allow_installments:
        raise ServiceError("Installment payments are not allowed for this fee", status.HTTP_400_BAD_REQUEST)
    if installment_number == 1 and current != ObligationStatus.pending:
        raise ServiceError("First installment has already been paid", status.HTTP_400_BAD_REQUEST)
    if installment_number == 2 and current != ObligationStatus.partial:
        raise ServiceError("Second installment requires a paid first installment", status.HTTP_400_BAD_REQUEST)
    if installment_number == 2 and amount != balance:
        raise ServiceError("Second installment must settle the remaining balance", status.HTTP_400_BAD_REQUEST)


def validate_payment(
    obligation: FeeObligation,
    amount: Decimal,
    installment_number: Optional[int],
) -> None:
    """Reject a payment the obligation's rules do not allow. Raises ServiceError (400)."""
    amount = _to_decimal(amount)
    if ObligationStatus(obligation.status) == ObligationStatus.paid:
        raise ServiceError("This fee has already been paid in full", status.HTTP_400_BAD_REQUEST)
    if amount <= 0:
        raise ServiceError("Payment amount must be greater than zero", status.HTTP_400_BAD_REQUEST)
    if amount > _to_decimal(obligation.balance):
        raise ServiceError("Payment amount cannot exceed remaining balance", status.HTTP_400_BAD_REQUEST)
    validate_installment(obligation, installment_number, amount)
