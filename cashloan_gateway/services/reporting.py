"""Read-only organisation views: cash summary, payment list and members"""

from typing import List
from sqlalchemy.orm import Session

from cashloan_gateway.domain.models import CashSummary, InstallmentStatus, OPEN_INSTALLMENT_STATUSES, RequestContext
from cashloan_gateway.infrastructure.database.models import Payment, UserOrganisation
from cashloan_gateway.infrastructure.database.repositories import (
    InstallmentRepository,
    PaymentRepository,
    UserRepository,
)


def cash_summary(db: Session, ctx: RequestContext) -> CashSummary:
    """
    Aggregate cash position of the organisation.

    pending_installments counts everything still collectable (PENDING and
    OVERDUE); overdue_installments is the OVERDUE subset.
    """
    installments = InstallmentRepository(db)
    return CashSummary(
        total_collected=PaymentRepository(db).total_collected(ctx.org_id),
        pending_installments=installments.count_by_status(ctx.org_id, OPEN_INSTALLMENT_STATUSES),
        overdue_installments=installments.count_by_status(ctx.org_id, [InstallmentStatus.OVERDUE]),
    )


def list_payments(db: Session, ctx: RequestContext) -> List[Payment]:
    return PaymentRepository(db).list_payments(ctx.org_id)


def list_members(db: Session, ctx: RequestContext) -> List[UserOrganisation]:
    return UserRepository(db).list_members(ctx.org_id)
