"""Organisation-wide read endpoints: payments, cash summary and members"""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cashloan_gateway.api.v1.schemas import CashSummaryResponse, OrgUserSchema, PaymentListItem
from cashloan_gateway.api.dependencies import ALL_ROLES, require_roles
from cashloan_gateway.domain.models import RequestContext, Role
from cashloan_gateway.infrastructure.database.session import get_db
from cashloan_gateway.services.reporting import cash_summary, list_members, list_payments

router = APIRouter()


@router.get("/payments", response_model=List[PaymentListItem])
def get_payments(
    ctx: RequestContext = Depends(require_roles(*ALL_ROLES)),
    db: Session = Depends(get_db),
):
    """All payments of the organisation, newest first"""
    return [
        PaymentListItem(
            id=str(p.id),
            loan_id=str(p.loan_id),
            installment_id=str(p.installment_id) if p.installment_id else None,
            org_id=p.org_id,
            amount=float(p.amount),
            paid_at=p.paid_at.isoformat(),
            method=p.method,
        )
        for p in list_payments(db, ctx)
    ]


@router.get("/summary", response_model=CashSummaryResponse)
def get_cash_summary(
    ctx: RequestContext = Depends(require_roles(*ALL_ROLES)),
    db: Session = Depends(get_db),
):
    """
    Cash position of the organisation.

    Returns:
        Total collected, collectable installments and the overdue subset
    """
    summary = cash_summary(db, ctx)
    return CashSummaryResponse(
        total_collected=float(summary.total_collected),
        pending_installments=summary.pending_installments,
        overdue_installments=summary.overdue_installments,
    )


@router.get("/users", response_model=List[OrgUserSchema])
def get_users(
    ctx: RequestContext = Depends(require_roles(Role.OWNER, Role.SUPERVISOR)),
    db: Session = Depends(get_db),
):
    return [
        OrgUserSchema(id=m.user_id, email=m.user.email if m.user else "", role=m.role)
        for m in list_members(db, ctx)
    ]
