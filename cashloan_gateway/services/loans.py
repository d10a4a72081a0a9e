"""Loan lifecycle service: creation, charges, updates, stop and removal"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.orm import Session

from cashloan_gateway.domain.charges import (
    check_status_override,
    derive_loan_status,
    resolve_installment,
    stopped_status,
    validate_payment_amount,
)
from cashloan_gateway.domain.exceptions import InstallmentAlreadyPaid, LoanNotFound, NoPendingInstallments
from cashloan_gateway.domain.installments import generate_installment_schedule
from cashloan_gateway.domain.models import ChargeResult, Frequency, LoanStatus, LoanTerms, RequestContext
from cashloan_gateway.infrastructure.clients.receipts import ReceiptClient
from cashloan_gateway.infrastructure.database.models import Installment, Loan
from cashloan_gateway.infrastructure.database.repositories import (
    InstallmentRepository,
    LoanRepository,
    PaymentRepository,
    ReceiptRepository,
)
from cashloan_gateway.infrastructure.observability.logging import log_charge
from cashloan_gateway.infrastructure.observability.metrics import loans_created_counter, record_charge
from cashloan_gateway.services.activity import ActivityService, snapshot_loan

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "borrower_name",
    "borrower_phone",
    "borrower_national_id",
    "interest_rate",
    "maturity_date",
    "status",
)

NULLABLE_FIELDS = ("borrower_phone", "maturity_date")


class LoanService:
    """
    Loan operations for one request.

    The caller's RequestContext is passed to every method; all reads and writes
    are scoped to ctx.org_id. Methods flush but never commit: the endpoint owns
    the transaction and commits or rolls back the whole unit of work.
    """

    def __init__(
        self,
        db: Session,
        receipt_client: ReceiptClient,
        clock: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.receipt_client = receipt_client
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.loans = LoanRepository(db)
        self.installments = InstallmentRepository(db)
        self.payments = PaymentRepository(db)
        self.receipts = ReceiptRepository(db)
        self.activity = ActivityService(db, clock=self.clock)

    def create(
        self,
        ctx: RequestContext,
        borrower_name: str,
        borrower_national_id: str,
        principal: Decimal,
        interest_rate: Decimal,
        number_of_installments: int,
        frequency: Frequency,
        borrower_phone: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> Loan:
        """Create a loan and its full installment schedule"""
        issued_at = self.clock()
        schedule = generate_installment_schedule(
            LoanTerms(
                principal=Decimal(principal),
                interest_rate=Decimal(interest_rate),
                number_of_installments=number_of_installments,
                frequency=frequency,
                issued_at=issued_at,
            )
        )

        loan = self.loans.create_loan(
            org_id=ctx.org_id,
            borrower_name=borrower_name,
            borrower_national_id=borrower_national_id,
            borrower_phone=borrower_phone,
            external_id=external_id,
            principal=Decimal(principal),
            interest_rate=Decimal(interest_rate),
            issued_at=issued_at,
            schedule=schedule,
        )

        self.activity.log(ctx, loan.id, "loan.created", None, snapshot_loan(loan))
        loans_created_counter.labels(frequency=Frequency(frequency).value).inc()
        logger.info("Loan created", extra={"org_id": ctx.org_id, "loan_id": str(loan.id)})
        return loan

    def find_all(self, ctx: RequestContext) -> List[Loan]:
        return self.loans.list_loans(ctx.org_id)

    def find_one(self, ctx: RequestContext, loan_id: uuid.UUID) -> Loan:
        loan = self.loans.get_loan(ctx.org_id, loan_id)
        if loan is None:
            raise LoanNotFound("Loan not found")
        return loan

    def update(self, ctx: RequestContext, loan_id: uuid.UUID, changes: Dict[str, Any]) -> Loan:
        """
        Edit borrower details, rate, maturity or status.

        Only keys present in changes are applied; an explicit None clears a
        nullable field and is ignored for the others. Installments are never
        repriced when the rate changes. A status override is re-derived
        afterwards, so a fully paid loan stays PAID.
        """
        loan = self.find_one(ctx, loan_id)
        before = snapshot_loan(loan)
        statuses = [inst.status for inst in loan.installments]

        for field in UPDATABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if value is None and field not in NULLABLE_FIELDS:
                continue
            if field == "status":
                value = LoanStatus(value)
                check_status_override(value, statuses)
            setattr(loan, field, value)

        loan.status = derive_loan_status(loan.status, statuses)
        self.db.flush()

        self.activity.log(ctx, loan.id, "loan.updated", before, snapshot_loan(loan))
        return loan

    def remove(self, ctx: RequestContext, loan_id: uuid.UUID) -> bool:
        if not self.loans.delete_loan(ctx.org_id, loan_id):
            raise LoanNotFound("Loan not found")

        self.activity.log(ctx, loan_id, "loan.deleted", None, None)
        return True

    def stop(self, ctx: RequestContext, loan_id: uuid.UUID, reason: Optional[str] = None) -> Loan:
        """Stop pursuing a loan; the reason lives only in the activity log"""
        loan = self.find_one(ctx, loan_id)
        before = snapshot_loan(loan)

        loan.is_stopped = True
        loan.status = stopped_status(loan.status)
        self.db.flush()

        self.activity.log(ctx, loan.id, "loan.stopped", before, {**snapshot_loan(loan), "stop_reason": reason})
        return loan

    async def charge(
        self,
        ctx: RequestContext,
        loan_id: uuid.UUID,
        amount: Any,
        installment_id: Optional[uuid.UUID] = None,
        method: Optional[str] = None,
    ) -> ChargeResult:
        """
        Record a payment against an installment.

        Flow:
        1. Validate amount and load the loan within the organisation
        2. Resolve and atomically settle the installment
        3. Append the payment and re-derive loan status
        4. Issue the receipt and store it
        5. Log activity

        A receipt failure propagates; since nothing is committed here the
        caller's rollback discards the payment as well.
        """
        value = validate_payment_amount(amount)
        loan = self.find_one(ctx, loan_id)
        paid_at = self.clock()

        installment = self._settle_installment(ctx, loan, installment_id, paid_at)

        payment = self.payments.create_payment(
            org_id=ctx.org_id,
            loan=loan,
            installment_id=installment.id,
            amount=value,
            paid_at=paid_at,
            method=method,
        )

        loan.status = derive_loan_status(loan.status, [inst.status for inst in loan.installments])
        self.db.flush()

        receipt = await self.receipt_client.generate_receipt(
            org_id=ctx.org_id,
            loan_id=str(loan.id),
            borrower_name=loan.borrower_name,
            borrower_phone=loan.borrower_phone,
            payment_id=str(payment.id),
            amount=value,
            paid_at=paid_at,
            method=method,
        )
        self.receipts.create_receipt(ctx.org_id, loan, payment, receipt)

        self.activity.log(
            ctx,
            loan.id,
            "loan.installment_paid",
            None,
            {"installment_id": installment.id, "amount": value, "payment_id": payment.id},
        )

        record_charge(value, loan.status == LoanStatus.PAID)
        log_charge(
            org_id=ctx.org_id,
            loan_id=str(loan.id),
            installment_id=str(installment.id),
            payment_id=str(payment.id),
            amount=str(value),
            loan_status=loan.status.value,
        )

        return ChargeResult(payment_id=str(payment.id), receipt_url=receipt.signed_url)

    def _settle_installment(
        self,
        ctx: RequestContext,
        loan: Loan,
        installment_id: Optional[uuid.UUID],
        paid_at: datetime,
    ) -> Installment:
        """Resolve the target and flip it to PAID, re-resolving if a racing charge got there first"""
        for _ in range(len(loan.installments)):
            installment = resolve_installment(loan.installments, installment_id)
            if self.installments.mark_paid_if_open(ctx.org_id, loan.id, installment.id, paid_at):
                return installment

            if installment_id is not None:
                raise InstallmentAlreadyPaid("Installment already paid")
            self.db.refresh(installment)

        raise NoPendingInstallments("No pending installments")
