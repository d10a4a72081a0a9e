"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger.json import JsonFormatter

from cashloan_gateway.config import settings


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_charge(
    org_id: str,
    loan_id: str,
    installment_id: str,
    payment_id: str,
    amount: str,
    loan_status: str,
) -> None:
    """Log structured charge outcome for cash reconciliation"""
    logging.info(
        "Installment charged",
        extra={
            "org_id": org_id,
            "loan_id": loan_id,
            "installment_id": installment_id,
            "payment_id": payment_id,
            "step": "charge_complete",
            "amount": amount,
            "loan_status": loan_status,
        },
    )
