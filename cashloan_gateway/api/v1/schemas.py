"""Pydantic schemas for API request/response validation"""

import uuid
from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from cashloan_gateway.domain.models import Frequency, InstallmentStatus, LoanStatus

# Column limits: Numeric(14, 2) for money, Numeric(6, 2) for rates
MAX_AMOUNT = Decimal("999999999999.99")
MAX_INTEREST_RATE = Decimal("9999.99")


class CreateLoanRequest(BaseModel):
    """Request body for POST /v1/loans"""

    borrower_name: str = Field(..., min_length=1)
    borrower_phone: Optional[str] = None
    borrower_national_id: str = Field(..., min_length=1, description="Borrower national identity number")
    external_id: Optional[str] = None
    principal: Decimal = Field(..., gt=0, le=MAX_AMOUNT)
    interest_rate: Decimal = Field(..., ge=0, le=MAX_INTEREST_RATE, description="Flat interest in percent")
    number_of_installments: int = Field(..., gt=0)
    frequency: Frequency


class UpdateLoanRequest(BaseModel):
    """Request body for PATCH /v1/loans/{loan_id}"""

    borrower_name: Optional[str] = Field(None, min_length=1)
    borrower_phone: Optional[str] = None
    borrower_national_id: Optional[str] = Field(None, min_length=1)
    status: Optional[LoanStatus] = None
    interest_rate: Optional[Decimal] = Field(None, ge=0, le=MAX_INTEREST_RATE)
    maturity_date: Optional[date] = None


class ChargeRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/charge"""

    installment_id: Optional[uuid.UUID] = None
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT)
    method: Optional[str] = None


class StopLoanRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/stop"""

    reason: Optional[str] = None


class PaymentReceivedRequest(BaseModel):
    """Request body for the payment-received webhook (the workflow sends camelCase keys)"""

    model_config = ConfigDict(populate_by_name=True)

    loan_id: uuid.UUID = Field(..., alias="loanId")
    installment_id: Optional[uuid.UUID] = Field(None, alias="installmentId")
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT)
    method: Optional[str] = None


class InstallmentSchema(BaseModel):
    """Single installment in a loan schedule"""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sequence: int
    due_date: date
    amount: Decimal
    status: InstallmentStatus
    paid_at: Optional[datetime] = None


class PaymentSchema(BaseModel):
    """Payment recorded against a loan"""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    loan_id: uuid.UUID
    installment_id: Optional[uuid.UUID] = None
    org_id: str
    amount: Decimal
    paid_at: datetime
    method: Optional[str] = None


class LoanResponse(BaseModel):
    """Loan with its installment schedule"""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    org_id: str
    borrower_name: str
    borrower_phone: Optional[str] = None
    borrower_national_id: str
    external_id: Optional[str] = None
    principal: Decimal
    interest_rate: Decimal
    issued_at: datetime
    maturity_date: Optional[date] = None
    status: LoanStatus
    is_stopped: bool
    installments: List[InstallmentSchema]


class LoanDetailResponse(LoanResponse):
    """Loan with schedule and payments (newest first)"""

    payments: List[PaymentSchema]


class ChargeResponse(BaseModel):
    """Response for POST /v1/loans/{loan_id}/charge"""

    payment_id: str
    receipt_url: str


class DeleteResponse(BaseModel):
    deleted: bool


class ActivitySchema(BaseModel):
    """Single audit trail entry"""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    loan_id: Optional[uuid.UUID] = None
    actor_id: str
    action: str
    diff: Dict[str, Any]
    day_hash: str
    created_at: datetime


class PaymentListItem(BaseModel):
    """Payment as listed for the organisation; amount as a plain number"""

    id: str
    loan_id: str
    installment_id: Optional[str] = None
    org_id: str
    amount: float
    paid_at: str
    method: Optional[str] = None


class CashSummaryResponse(BaseModel):
    """Response for GET /v1/summary"""

    total_collected: float
    pending_installments: int
    overdue_installments: int


class OrgUserSchema(BaseModel):
    """Member of the caller's organisation"""

    id: str
    email: str
    role: str
