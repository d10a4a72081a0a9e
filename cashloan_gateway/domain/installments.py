"""Installment schedule generation for cash loans"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from cashloan_gateway.domain.exceptions import InvalidLoanTerms
from cashloan_gateway.domain.models import Frequency, LoanTerms, ScheduledInstallment
from cashloan_gateway.utils.date_utils import add_periods

CENTS = Decimal("0.01")


def calculate_first_due_date(issued_at: datetime, frequency: Frequency) -> date:
    """First due date is one period after the issue day (time of day dropped)"""
    return add_periods(issued_at.date(), frequency, 1)


def calculate_installment_amount(principal: Decimal, interest_rate: Decimal, count: int) -> Decimal:
    """Total with flat interest, split evenly and rounded to cents"""
    total = principal * (1 + interest_rate / Decimal(100))
    return (total / count).quantize(CENTS, rounding=ROUND_HALF_UP)


def generate_installment_schedule(terms: LoanTerms) -> List[ScheduledInstallment]:
    """
    Generate the repayment schedule for a new loan.

    Requirements:
    - total = principal * (1 + interest_rate / 100)
    - Every installment carries the same amount, rounded to 2 decimals.
      The rounding remainder is not reconciled, so the sum may drift from the
      total by up to one cent per installment.
    - First due date is one period after the issue day; installment i is
      due i periods after that.

    Raises:
        InvalidLoanTerms: count <= 0, principal <= 0, rate < 0 or unknown frequency

    Example:
        1000 at 20% in 4 weekly installments issued 2024-01-01
        → 4 x 300.00 due 2024-01-08, 01-15, 01-22, 01-29
    """
    count = terms.number_of_installments
    principal = Decimal(terms.principal)
    interest_rate = Decimal(terms.interest_rate)

    if count <= 0:
        raise InvalidLoanTerms("Number of installments must be positive")
    if principal <= 0:
        raise InvalidLoanTerms("Principal must be positive")
    if interest_rate < 0:
        raise InvalidLoanTerms("Interest rate cannot be negative")

    try:
        frequency = Frequency(terms.frequency)
    except ValueError as e:
        raise InvalidLoanTerms(f"Unsupported frequency: {terms.frequency}") from e

    amount = calculate_installment_amount(principal, interest_rate, count)
    first_due = calculate_first_due_date(terms.issued_at, frequency)

    return [
        ScheduledInstallment(
            sequence=i + 1,
            due_date=add_periods(first_due, frequency, i),
            amount=amount,
        )
        for i in range(count)
    ]
