"""POST /v1/webhooks/n8n/payment-received - payments reported by the automation workflow"""

import hmac
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from cashloan_gateway.api.v1.loans import run_charge
from cashloan_gateway.api.v1.schemas import ChargeResponse, PaymentReceivedRequest
from cashloan_gateway.api.dependencies import get_receipt_client, get_request_id
from cashloan_gateway.config import settings
from cashloan_gateway.domain.models import RequestContext, Role
from cashloan_gateway.infrastructure.clients.receipts import ReceiptClient
from cashloan_gateway.infrastructure.database.session import get_db

router = APIRouter()

WEBHOOK_USER_ID = "n8n-webhook"


@router.post("/webhooks/n8n/payment-received", response_model=ChargeResponse)
async def payment_received(
    request_body: PaymentReceivedRequest,
    request: Request,
    x_org_id: Optional[str] = Header(None),
    x_webhook_secret: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    receipt_client: ReceiptClient = Depends(get_receipt_client),
):
    """
    Charge a loan on behalf of the external workflow.

    Unauthenticated by JWT; guarded by the shared webhook secret, and refused
    outright while no secret is configured. Runs with owner rights inside the
    organisation named by x-org-id.
    """
    expected_secret = settings.webhook_secret
    if not expected_secret:
        raise HTTPException(status_code=403, detail="Webhook disabled")
    if not hmac.compare_digest(x_webhook_secret or "", expected_secret):
        raise HTTPException(status_code=403, detail="Invalid webhook secret")

    if not x_org_id:
        raise HTTPException(status_code=400, detail="Missing organisation header")

    ctx = RequestContext(org_id=x_org_id, user_id=WEBHOOK_USER_ID, role=Role.OWNER.value)
    request_id = get_request_id(request)
    logging.info(
        "Payment webhook received",
        extra={"request_id": request_id, "org_id": x_org_id, "loan_id": str(request_body.loan_id)},
    )

    return await run_charge(db, receipt_client, ctx, request_body.loan_id, request_body, request_id)
