"""SQLAlchemy ORM models for the loan-servicing schema"""

import uuid
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from cashloan_gateway.domain.models import InstallmentStatus, LoanStatus

Base = declarative_base()


class Organisation(Base):
    """Tenant account; every other row is partitioned by its id"""

    __tablename__ = "organisation"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    timezone = Column(Text, nullable=False, default="UTC")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    memberships = relationship("UserOrganisation", back_populates="organisation", cascade="all, delete-orphan")


class User(Base):
    __tablename__ = "app_user"

    id = Column(Text, primary_key=True)
    email = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    memberships = relationship("UserOrganisation", back_populates="user", cascade="all, delete-orphan")


class UserOrganisation(Base):
    """Membership of a user in an organisation with a role"""

    __tablename__ = "user_organisation"

    user_id = Column(Text, ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True)
    organisation_id = Column(Text, ForeignKey("organisation.id", ondelete="CASCADE"), primary_key=True)
    role = Column(Text, nullable=False, default="readonly")

    user = relationship("User", back_populates="memberships")
    organisation = relationship("Organisation", back_populates="memberships")


class Loan(Base):
    """Installment loan issued to a borrower"""

    __tablename__ = "loan"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Text, ForeignKey("organisation.id", ondelete="CASCADE"), nullable=False, index=True)
    borrower_name = Column(Text, nullable=False)
    borrower_phone = Column(Text, nullable=True)
    borrower_national_id = Column(Text, nullable=False)
    external_id = Column(Text, nullable=True)
    principal = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(6, 2), nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    maturity_date = Column(Date, nullable=True)
    status = Column(Enum(LoanStatus, name="loan_status", native_enum=False), nullable=False, default=LoanStatus.PENDING)
    is_stopped = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    installments = relationship(
        "Installment",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="Installment.sequence",
    )
    payments = relationship(
        "Payment",
        back_populates="loan",
        cascade="all, delete",
        order_by="Payment.paid_at.desc()",
    )
    receipts = relationship("Receipt", back_populates="loan", cascade="all, delete")


class Installment(Base):
    """Scheduled repayment unit of a loan"""

    __tablename__ = "installment"
    __table_args__ = (UniqueConstraint("loan_id", "sequence", name="uq_installment_loan_sequence"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loan.id", ondelete="CASCADE"), nullable=False, index=True)
    org_id = Column(Text, nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    status = Column(
        Enum(InstallmentStatus, name="installment_status", native_enum=False),
        nullable=False,
        default=InstallmentStatus.PENDING,
    )
    paid_at = Column(DateTime(timezone=True), nullable=True)

    loan = relationship("Loan", back_populates="installments")


class Payment(Base):
    """Append-only cash payment record"""

    __tablename__ = "payment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loan.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_id = Column(Uuid(as_uuid=True), ForeignKey("installment.id", ondelete="SET NULL"), nullable=True)
    org_id = Column(Text, nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=False)
    method = Column(Text, nullable=True)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)

    loan = relationship("Loan", back_populates="payments")
    receipt = relationship("Receipt", back_populates="payment", uselist=False, cascade="all, delete")


class Receipt(Base):
    """Stored receipt document for a payment"""

    __tablename__ = "receipt"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loan.id", ondelete="CASCADE"), nullable=False)
    payment_id = Column(Uuid(as_uuid=True), ForeignKey("payment.id", ondelete="CASCADE"), nullable=False, unique=True)
    org_id = Column(Text, nullable=False, index=True)
    storage_path = Column(Text, nullable=False)
    signed_url = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("Loan", back_populates="receipts")
    payment = relationship("Payment", back_populates="receipt")


class ActivityLog(Base):
    """Audit trail entry; loan_id is not a foreign key so entries outlive deleted loans"""

    __tablename__ = "activity_log"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Text, nullable=False, index=True)
    loan_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    actor_id = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    diff = Column(JSON, nullable=False, default=dict)
    day_hash = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
