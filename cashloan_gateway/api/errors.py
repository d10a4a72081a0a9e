"""Mapping of domain exceptions to HTTP responses"""

from fastapi import HTTPException

from cashloan_gateway.domain.exceptions import (
    DomainException,
    InstallmentAlreadyPaid,
    InstallmentNotFound,
    InvalidLoanTerms,
    InvalidPaymentAmount,
    InvalidStatusOverride,
    LoanNotFound,
    NoPendingInstallments,
    ReceiptServiceError,
)

ERROR_STATUS_CODES = {
    InvalidLoanTerms: 422,
    InvalidPaymentAmount: 422,
    InvalidStatusOverride: 422,
    LoanNotFound: 404,
    InstallmentNotFound: 404,
    InstallmentAlreadyPaid: 400,
    NoPendingInstallments: 400,
    ReceiptServiceError: 503,
}


def to_http_exception(exc: DomainException) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(type(exc), 400)
    if isinstance(exc, ReceiptServiceError):
        return HTTPException(status_code=status_code, detail="Receipt service unavailable")
    return HTTPException(status_code=status_code, detail=str(exc))
