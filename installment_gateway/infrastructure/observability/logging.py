"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from installment_gateway.config import settings


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


def log_plan_created(
    request_id: str,
    plan_id: str,
    customer_id: str,
    duration: int,
    total_payments: int,
    funded: bool,
    duration_ms: float,
    processor_result: Optional[str] = None,
) -> None:
    """Log structured plan origination outcome for analysis"""
    logging.info(
        "Payment plan created",
        extra={
            "request_id": request_id,
            "plan_id": plan_id,
            "customer_id": customer_id,
            "step": "plan_created",
            "plan_duration": duration,
            "total_payments": total_payments,
            "first_payment_outcome": "accepted" if funded else "failed",
            "processor_result": processor_result,
            "duration_ms": duration_ms,
        },
    )


def log_payment_outcome(
    request_id: str,
    plan_id: str,
    sequence_number: int,
    status: str,
    retry_count: int,
    plan_status: str,
    failure_reason: Optional[str] = None,
) -> None:
    """Log one scheduled payment state change"""
    logging.info(
        "Scheduled payment updated",
        extra={
            "request_id": request_id,
            "plan_id": plan_id,
            "sequence_number": sequence_number,
            "step": "payment_outcome",
            "payment_status": status,
            "retry_count": retry_count,
            "plan_status": plan_status,
            "failure_reason": failure_reason,
        },
    )
