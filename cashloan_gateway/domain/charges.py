"""Charge rules: which installment a payment settles and how the loan status follows"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from cashloan_gateway.domain.exceptions import (
    InstallmentAlreadyPaid,
    InstallmentNotFound,
    InvalidPaymentAmount,
    InvalidStatusOverride,
    NoPendingInstallments,
)
from cashloan_gateway.domain.models import InstallmentStatus, LoanStatus, OPEN_INSTALLMENT_STATUSES


def resolve_installment(installments: Iterable[Any], installment_id: Optional[Any] = None) -> Any:
    """
    Pick the installment a charge applies to.

    Works on anything exposing id, sequence, due_date and status (ORM rows or
    ScheduledInstallment-like objects).

    - With an explicit id: that installment, which must exist and be unpaid.
    - Without: the earliest-due open installment, ties broken by sequence.
    """
    installments = list(installments)

    if installment_id is not None:
        match = next((inst for inst in installments if str(inst.id) == str(installment_id)), None)
        if match is None:
            raise InstallmentNotFound("Installment not found")
        if match.status == InstallmentStatus.PAID:
            raise InstallmentAlreadyPaid("Installment already paid")
        return match

    candidates = [inst for inst in installments if inst.status in OPEN_INSTALLMENT_STATUSES]
    if not candidates:
        raise NoPendingInstallments("No pending installments")

    return min(candidates, key=lambda inst: (inst.due_date, inst.sequence))


def validate_payment_amount(amount: Any) -> Decimal:
    """Coerce to Decimal and reject zero, negative or non-numeric amounts"""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise InvalidPaymentAmount(f"Invalid payment amount: {amount}") from e

    if not value.is_finite() or value <= 0:
        raise InvalidPaymentAmount("Payment amount must be positive")
    return value


def derive_loan_status(current: LoanStatus, installment_statuses: Iterable[InstallmentStatus]) -> LoanStatus:
    """PAID once every installment is paid; otherwise the status is left as it was"""
    statuses = list(installment_statuses)
    if statuses and all(status == InstallmentStatus.PAID for status in statuses):
        return LoanStatus.PAID
    return current


def stopped_status(current: LoanStatus) -> LoanStatus:
    """Stopping keeps a paid loan paid and moves everything else to REMINDED"""
    return LoanStatus.PAID if current == LoanStatus.PAID else LoanStatus.REMINDED


def check_status_override(requested: LoanStatus, installment_statuses: Iterable[InstallmentStatus]) -> None:
    """A loan may only be marked PAID by hand when nothing is left to pay"""
    if requested != LoanStatus.PAID:
        return
    if any(status != InstallmentStatus.PAID for status in installment_statuses):
        raise InvalidStatusOverride("Loan cannot be marked PAID while installments are unpaid")
