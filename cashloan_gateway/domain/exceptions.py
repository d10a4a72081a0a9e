"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidLoanTerms(DomainException):
    """Loan terms cannot produce a schedule"""

    pass


class InvalidPaymentAmount(DomainException):
    """Payment amount must be strictly positive"""

    pass


class InvalidStatusOverride(DomainException):
    """Requested loan status contradicts the installment states"""

    pass


class LoanNotFound(DomainException):
    """Loan does not exist within the caller's organisation"""

    pass


class InstallmentNotFound(DomainException):
    """Installment does not belong to the loan"""

    pass


class InstallmentAlreadyPaid(DomainException):
    """Installment was already settled by an earlier charge"""

    pass


class NoPendingInstallments(DomainException):
    """Every installment of the loan is already paid"""

    pass


class ReceiptServiceError(DomainException):
    """Receipt service returned an error or is unavailable"""

    pass
