"""Receipt service HTTP client for issuing payment receipts"""

import httpx
from datetime import datetime
from decimal import Decimal
from typing import Optional
from cashloan_gateway.domain.models import ReceiptRef
from cashloan_gateway.domain.exceptions import ReceiptServiceError
from cashloan_gateway.config import settings
from cashloan_gateway.infrastructure.observability.metrics import receipt_latency_histogram, receipt_failure_counter


class ReceiptClient:
    """Client for the external receipt rendering and storage service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.receipt_service_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def generate_receipt(
        self,
        org_id: str,
        loan_id: str,
        borrower_name: str,
        payment_id: str,
        amount: Decimal,
        paid_at: datetime,
        borrower_phone: Optional[str] = None,
        method: Optional[str] = None,
    ) -> ReceiptRef:
        """
        Render and store the receipt for a payment, returning a signed URL.

        Raises:
            ReceiptServiceError: On timeout, HTTP errors, or invalid response
        """
        loan = {"id": loan_id, "borrowerName": borrower_name}
        if borrower_phone:
            loan["borrowerPhone"] = borrower_phone

        payment = {
            "id": payment_id,
            "amount": f"{Decimal(amount):.2f}",
            "paidAt": paid_at.isoformat(),
        }
        if method:
            payment["method"] = method

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with receipt_latency_histogram.time():
                    response = await client.post(
                        f"{self.base_url}/receipts",
                        json={"orgId": org_id, "loan": loan, "payment": payment},
                    )
                    response.raise_for_status()
                data = response.json()

                return ReceiptRef(
                    storage_path=data["storagePath"],
                    signed_url=data["signedUrl"],
                    expires_at=datetime.fromisoformat(data["expiresAt"]),
                )

            except httpx.TimeoutException as e:
                receipt_failure_counter.inc()
                raise ReceiptServiceError(f"Receipt service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                receipt_failure_counter.inc()
                raise ReceiptServiceError(f"Receipt service error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                receipt_failure_counter.inc()
                raise ReceiptServiceError(f"Receipt service unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                receipt_failure_counter.inc()
                raise ReceiptServiceError(f"Invalid receipt data from service: {e}") from e
