"""Data access layer for loan-servicing entities.

Every lookup and mutation takes the organisation id alongside the entity id so
that rows of one tenant can never be read or written through another.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from cashloan_gateway.infrastructure.database.models import (
    ActivityLog,
    Installment,
    Loan,
    Payment,
    Receipt,
    User,
    UserOrganisation,
)
from cashloan_gateway.domain.models import (
    InstallmentStatus,
    LoanStatus,
    OPEN_INSTALLMENT_STATUSES,
    ReceiptRef,
    ScheduledInstallment,
)


class LoanRepository:
    """Repository for loans and their installment schedules"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(
        self,
        org_id: str,
        borrower_name: str,
        borrower_national_id: str,
        principal: Decimal,
        interest_rate: Decimal,
        issued_at: datetime,
        schedule: List[ScheduledInstallment],
        borrower_phone: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> Loan:
        """Persist loan together with its installments"""
        db_loan = Loan(
            org_id=org_id,
            borrower_name=borrower_name,
            borrower_phone=borrower_phone,
            borrower_national_id=borrower_national_id,
            external_id=external_id,
            principal=principal,
            interest_rate=interest_rate,
            issued_at=issued_at,
            status=LoanStatus.PENDING,
            is_stopped=False,
        )
        for inst in schedule:
            db_loan.installments.append(
                Installment(
                    org_id=org_id,
                    sequence=inst.sequence,
                    due_date=inst.due_date,
                    amount=inst.amount,
                    status=inst.status,
                )
            )

        self.db.add(db_loan)
        self.db.flush()  # Get IDs without committing
        return db_loan

    def get_loan(self, org_id: str, loan_id: uuid.UUID) -> Optional[Loan]:
        """Fetch loan with installments and payments"""
        return (
            self.db.query(Loan)
            .options(joinedload(Loan.installments), joinedload(Loan.payments))
            .filter(Loan.id == loan_id, Loan.org_id == org_id)
            .first()
        )

    def list_loans(self, org_id: str) -> List[Loan]:
        return (
            self.db.query(Loan)
            .options(joinedload(Loan.installments))
            .filter(Loan.org_id == org_id)
            .order_by(Loan.issued_at.desc())
            .all()
        )

    def delete_loan(self, org_id: str, loan_id: uuid.UUID) -> bool:
        """Delete loan and everything hanging off it; False when nothing matched"""
        db_loan = self.db.query(Loan).filter(Loan.id == loan_id, Loan.org_id == org_id).first()
        if db_loan is None:
            return False

        self.db.delete(db_loan)
        self.db.flush()
        return True


class InstallmentRepository:
    """Repository for installments"""

    def __init__(self, db: Session):
        self.db = db

    def mark_paid_if_open(
        self,
        org_id: str,
        loan_id: uuid.UUID,
        installment_id: uuid.UUID,
        paid_at: datetime,
    ) -> bool:
        """
        Compare-and-set an installment from PENDING/OVERDUE to PAID.

        Returns False when another charge settled it first. On PostgreSQL the
        updated row stays locked until commit, so a racing charge re-reads the
        status after the winner commits and matches zero rows.
        """
        updated = (
            self.db.query(Installment)
            .filter(
                Installment.id == installment_id,
                Installment.loan_id == loan_id,
                Installment.org_id == org_id,
                Installment.status.in_(OPEN_INSTALLMENT_STATUSES),
            )
            .update(
                {Installment.status: InstallmentStatus.PAID, Installment.paid_at: paid_at},
                synchronize_session="fetch",
            )
        )
        return updated == 1

    def count_by_status(self, org_id: str, statuses: Iterable[InstallmentStatus]) -> int:
        """Count organisation installments whose status is in the given set"""
        return (
            self.db.query(func.count(Installment.id))
            .filter(Installment.org_id == org_id, Installment.status.in_(list(statuses)))
            .scalar()
        )


class PaymentRepository:
    """Repository for payments"""

    def __init__(self, db: Session):
        self.db = db

    def create_payment(
        self,
        org_id: str,
        loan: Loan,
        installment_id: Optional[uuid.UUID],
        amount: Decimal,
        paid_at: datetime,
        method: Optional[str] = None,
    ) -> Payment:
        """Append a payment to the loan"""
        db_payment = Payment(
            loan=loan,
            org_id=org_id,
            installment_id=installment_id,
            amount=amount,
            paid_at=paid_at,
            method=method,
            metadata_json={},
        )
        self.db.add(db_payment)
        self.db.flush()
        return db_payment

    def list_payments(self, org_id: str) -> List[Payment]:
        """All organisation payments, newest first"""
        return (
            self.db.query(Payment)
            .filter(Payment.org_id == org_id)
            .order_by(Payment.paid_at.desc())
            .all()
        )

    def total_collected(self, org_id: str) -> Decimal:
        total = self.db.query(func.sum(Payment.amount)).filter(Payment.org_id == org_id).scalar()
        return Decimal(total or 0)


class ReceiptRepository:
    """Repository for stored receipts"""

    def __init__(self, db: Session):
        self.db = db

    def create_receipt(self, org_id: str, loan: Loan, payment: Payment, receipt: ReceiptRef) -> Receipt:
        db_receipt = Receipt(
            loan=loan,
            payment=payment,
            org_id=org_id,
            storage_path=receipt.storage_path,
            signed_url=receipt.signed_url,
            expires_at=receipt.expires_at,
        )
        self.db.add(db_receipt)
        self.db.flush()
        return db_receipt


class ActivityRepository:
    """Repository for the activity audit trail"""

    def __init__(self, db: Session):
        self.db = db

    def create_entry(
        self,
        org_id: str,
        loan_id: Optional[uuid.UUID],
        actor_id: str,
        action: str,
        diff: Dict[str, Any],
        day_hash: str,
        created_at: datetime,
    ) -> ActivityLog:
        entry = ActivityLog(
            org_id=org_id,
            loan_id=loan_id,
            actor_id=actor_id,
            action=action,
            diff=diff,
            day_hash=day_hash,
            created_at=created_at,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_for_loan(self, org_id: str, loan_id: uuid.UUID) -> List[ActivityLog]:
        """Activity of one loan, newest first"""
        return (
            self.db.query(ActivityLog)
            .filter(ActivityLog.loan_id == loan_id, ActivityLog.org_id == org_id)
            .order_by(ActivityLog.created_at.desc())
            .all()
        )


class UserRepository:
    """Repository for organisation memberships"""

    def __init__(self, db: Session):
        self.db = db

    def list_members(self, org_id: str) -> List[UserOrganisation]:
        """Memberships of the organisation ordered by user email"""
        return (
            self.db.query(UserOrganisation)
            .join(User, UserOrganisation.user_id == User.id)
            .options(joinedload(UserOrganisation.user))
            .filter(UserOrganisation.organisation_id == org_id)
            .order_by(User.email.asc())
            .all()
        )

    def get_membership_role(self, user_id: str, org_id: str) -> Optional[str]:
        """Role of the user inside the organisation, or None when not a member"""
        membership = (
            self.db.query(UserOrganisation)
            .filter(UserOrganisation.user_id == user_id, UserOrganisation.organisation_id == org_id)
            .first()
        )
        return membership.role if membership else None
