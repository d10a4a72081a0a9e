"""/v1/loans - loan lifecycle endpoints"""

import uuid
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from cashloan_gateway.api.v1.schemas import (
    ActivitySchema,
    ChargeRequest,
    ChargeResponse,
    CreateLoanRequest,
    DeleteResponse,
    LoanDetailResponse,
    LoanResponse,
    StopLoanRequest,
    UpdateLoanRequest,
)
from cashloan_gateway.api.dependencies import ALL_ROLES, get_receipt_client, get_request_id, require_roles
from cashloan_gateway.api.errors import to_http_exception
from cashloan_gateway.domain.exceptions import DomainException, ReceiptServiceError
from cashloan_gateway.domain.models import RequestContext, Role
from cashloan_gateway.infrastructure.clients.receipts import ReceiptClient
from cashloan_gateway.infrastructure.database.session import get_db
from cashloan_gateway.infrastructure.observability.metrics import charge_counter
from cashloan_gateway.services.activity import ActivityService
from cashloan_gateway.services.loans import LoanService

router = APIRouter()


@router.post("/loans", response_model=LoanResponse, status_code=201)
def create_loan(
    request_body: CreateLoanRequest,
    request: Request,
    ctx: RequestContext = Depends(require_roles(Role.OWNER, Role.SUPERVISOR)),
    db: Session = Depends(get_db),
    receipt_client: ReceiptClient = Depends(get_receipt_client),
):
    """Create a loan and generate its installment schedule"""
    request_id = get_request_id(request)

    try:
        loan = LoanService(db, receipt_client).create(ctx, **request_body.model_dump())
        db.commit()
    except DomainException as e:
        db.rollback()
        logging.warning(f"Loan rejected: {e}", extra={"request_id": request_id, "org_id": ctx.org_id})
        raise to_http_exception(e)

    return LoanResponse.model_validate(loan)


@router.get("/loans", response_model=List[LoanResponse])
def list_loans(
    ctx: RequestContext = Depends(require_roles(*ALL_ROLES)),
    db: Session = Depends(get_db),
    receipt_client: ReceiptClient = Depends(get_receipt_client),
):
    loans = LoanService(db, receipt_client).find_all(ctx)
    return [LoanResponse.model_validate(loan) for loan in loans]


@router.get("/loans/{loan_id}", response_model=LoanDetailResponse)
def get_loan(
    loan_id: uuid.UUID,
    ctx: RequestContext = Depends(require_roles(*ALL_ROLES)),
    db: Session = Depends(get_db),
    receipt_client: ReceiptClient = Depends(get_receipt_client),
):
    """Loan with installment schedule and payment history"""
    try:
        loan = LoanService(db, receipt_client).find_one(ctx, loan_id)
    except DomainException as e:
        raise to_http_exception(e)

    return LoanDetailResponse.model_validate(loan)


@router.patch("/loans/{loan_id}", response_model=LoanResponse)
def update_loan(
    loan_id: uuid.UUID,
    request_body: UpdateLoanRequest,
    request: Request,
    ctx: RequestContext = Depends(require_roles(Role.OWNER, Role.SUPERVISOR)),
    db: Session = Depends(get_db),
    receipt_client: ReceiptClient = Depends(get_receipt_client),
):
    """Edit borrower details, rate, maturity or status (installments are not repriced)"""
    request_id = get_request_id(request)

    try:
        loan = LoanService(db, receipt_client).update(ctx, loan_id, request_body.model_dump(exclude_unset=True))
        db.commit()
    except DomainException as e:
        db.rollback()
        logging.warning(f"Loan update rejected: {e}", extra={"request_id": request_id, "loan_id": str(loan_id)})
        raise to_http_exception(e)

    return LoanResponse.model_validate(loan)


@router.delete("/loans/{loan_id}", response_model=DeleteResponse)
def delete_loan(
    loan_id: uuid.UUID,
    ctx: RequestContext = Depends(require_roles(Role.OWNER)),
    db: Session = Depends(get_db),
    receipt_client: ReceiptClient = Depends(get_receipt_client),
):
    try:
        deleted = LoanService(db, receipt_client).remove(ctx, loan_id)
        db.commit()
    except DomainException as e:
        db.rollback()
        raise to_http_exception(e)

    return DeleteResponse(deleted=deleted)


@router.post("/loans/{loan_id}/charge", response_model=ChargeResponse)
async def charge_installment(
    loan_id: uuid.UUID,
    request_body: ChargeRequest,
    request: Request,
    ctx: RequestContext = Depends(require_roles(Role.OWNER, Role.SUPERVISOR, Role.CASHIER)),
    db: Session = Depends(get_db),
    receipt_client: ReceiptClient = Depends(get_receipt_client),
):
    """
    Record a cash payment against an installment.

    Flow:
    1. Resolve the installment (explicit id or earliest pending)
    2. Settle it, append the payment, re-derive loan status
    3. Issue and store the receipt
    4. Commit everything, or roll everything back on failure
    """
    return await run_charge(db, receipt_client, ctx, loan_id, request_body, get_request_id(request))


async def run_charge(
    db: Session,
    receipt_client: ReceiptClient,
    ctx: RequestContext,
    loan_id: uuid.UUID,
    request_body,
    request_id: str,
) -> ChargeResponse:
    """Charge as one transaction; shared by the cashier endpoint and the payment webhook"""
    try:
        result = await LoanService(db, receipt_client).charge(
            ctx,
            loan_id,
            amount=request_body.amount,
            installment_id=request_body.installment_id,
            method=request_body.method,
        )
        db.commit()

    except ReceiptServiceError as e:
        charge_counter.labels(outcome="receipt_failed").inc()
        db.rollback()
        logging.error(f"Receipt service error: {e}", extra={"request_id": request_id, "loan_id": str(loan_id)})
        raise to_http_exception(e)

    except DomainException as e:
        charge_counter.labels(outcome="rejected").inc()
        db.rollback()
        logging.warning(f"Charge rejected: {e}", extra={"request_id": request_id, "loan_id": str(loan_id)})
        raise to_http_exception(e)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id, "loan_id": str(loan_id)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ChargeResponse(payment_id=result.payment_id, receipt_url=result.receipt_url)


@router.post("/loans/{loan_id}/stop", response_model=LoanResponse)
def stop_loan(
    loan_id: uuid.UUID,
    request_body: StopLoanRequest,
    ctx: RequestContext = Depends(require_roles(Role.OWNER, Role.SUPERVISOR)),
    db: Session = Depends(get_db),
    receipt_client: ReceiptClient = Depends(get_receipt_client),
):
    """Stop pursuing a loan without touching its payment history"""
    try:
        loan = LoanService(db, receipt_client).stop(ctx, loan_id, request_body.reason)
        db.commit()
    except DomainException as e:
        db.rollback()
        raise to_http_exception(e)

    return LoanResponse.model_validate(loan)


@router.get("/loans/{loan_id}/activity", response_model=List[ActivitySchema])
def get_loan_activity(
    loan_id: uuid.UUID,
    ctx: RequestContext = Depends(require_roles(*ALL_ROLES)),
    db: Session = Depends(get_db),
):
    """Audit trail of a loan, newest first (still available after deletion)"""
    entries = ActivityService(db).list_for_loan(ctx, loan_id)
    return [ActivitySchema.model_validate(entry) for entry in entries]
