"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from kot_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
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


def log_settlement(
    action: str,
    amount: int,
    customer_id: Optional[str] = None,
    expense_id: Optional[str] = None,
    reference_id: Optional[str] = None,
    **fields: Any,
) -> None:
    """Log a committed settlement for later analysis"""
    logging.info(
        "Settlement recorded",
        extra={
            "step": action,
            "customer_id": customer_id,
            "expense_id": expense_id,
            "reference_id": reference_id,
            "amount": amount,
            **fields,
        },
    )


def log_validation_failure(request_id: str, error: Dict[str, Any]) -> None:
    logging.warning(
        f"Validation failed: {error.get('message')}",
        extra={"request_id": request_id, "step": "validation", **{f"error_{k}": v for k, v in error.items()}},
    )


def log_reconciliation(step: str, count: int, **fields: Any) -> None:
    logging.info(
        "Reconciliation step completed",
        extra={"step": step, "count": count, **fields},
    )
