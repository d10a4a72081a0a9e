"""Domain models - pure Python dataclasses and enums representing business entities"""

import enum
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


class LoanStatus(str, enum.Enum):
    PENDING = "PENDING"
    REMINDED = "REMINDED"
    OVERDUE = "OVERDUE"
    PAID = "PAID"


class InstallmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    PAID = "PAID"


# Installments a charge may still consume
OPEN_INSTALLMENT_STATUSES = (InstallmentStatus.PENDING, InstallmentStatus.OVERDUE)


class Frequency(str, enum.Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class Role(str, enum.Enum):
    OWNER = "owner"
    SUPERVISOR = "supervisor"
    CASHIER = "caja"
    READONLY = "readonly"


@dataclass(frozen=True)
class RequestContext:
    """Caller identity, resolved once per request and passed to every service call"""

    org_id: str
    user_id: str
    role: str
    email: Optional[str] = None


@dataclass
class LoanTerms:
    """Inputs to schedule generation"""

    principal: Decimal
    interest_rate: Decimal  # percent
    number_of_installments: int
    frequency: Frequency
    issued_at: datetime


@dataclass
class ScheduledInstallment:
    """Single payment in a repayment schedule"""

    sequence: int
    due_date: date
    amount: Decimal
    status: InstallmentStatus = InstallmentStatus.PENDING


@dataclass
class ReceiptRef:
    """Stored receipt returned by the receipt service"""

    storage_path: str
    signed_url: str
    expires_at: datetime


@dataclass
class ChargeResult:
    """Outcome of a successful charge"""

    payment_id: str
    receipt_url: str


@dataclass
class CashSummary:
    """Aggregate cash figures for an organisation"""

    total_collected: Decimal
    pending_installments: int
    overdue_installments: int
