"""Activity audit trail for loan changes"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.orm import Session

from cashloan_gateway.domain.models import RequestContext
from cashloan_gateway.infrastructure.database.models import ActivityLog, Loan
from cashloan_gateway.infrastructure.database.repositories import ActivityRepository
from cashloan_gateway.utils.audit_utils import day_hash, diff_objects

LOAN_SNAPSHOT_FIELDS = (
    "id",
    "org_id",
    "borrower_name",
    "borrower_phone",
    "borrower_national_id",
    "external_id",
    "principal",
    "interest_rate",
    "issued_at",
    "maturity_date",
    "status",
    "is_stopped",
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def snapshot_loan(loan: Loan) -> Dict[str, Any]:
    """JSON-safe view of the loan's own columns"""
    return {field: _jsonable(getattr(loan, field)) for field in LOAN_SNAPSHOT_FIELDS}


class ActivityService:
    """Records who changed what on which loan"""

    def __init__(self, db: Session, clock: Callable[[], datetime] | None = None):
        self.repo = ActivityRepository(db)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def log(
        self,
        ctx: RequestContext,
        loan_id: Optional[uuid.UUID],
        action: str,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
    ) -> ActivityLog:
        timestamp = self.clock()
        before = {k: _jsonable(v) for k, v in before.items()} if before else None
        after = {k: _jsonable(v) for k, v in after.items()} if after else None

        return self.repo.create_entry(
            org_id=ctx.org_id,
            loan_id=loan_id,
            actor_id=ctx.user_id,
            action=action,
            diff=diff_objects(before, after),
            day_hash=day_hash(ctx.org_id, timestamp),
            created_at=timestamp,
        )

    def list_for_loan(self, ctx: RequestContext, loan_id: uuid.UUID) -> List[ActivityLog]:
        return self.repo.list_for_loan(ctx.org_id, loan_id)
