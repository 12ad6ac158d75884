"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict
from pythonjsonlogger import jsonlogger

if TYPE_CHECKING:
    from mortgage_engine.domain.models import MortgageApplication

SERVICE_NAME = "mortgage-engine"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_NAME


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_application_event(event: str, application: "MortgageApplication") -> None:
    """Log a lifecycle step (submitted, approved, rejected...) for auditing"""
    logging.info(
        "Mortgage application %s",
        event,
        extra={
            "step": f"application_{event}",
            "application_id": application.id,
            "application_no": application.application_no,
            "user_id": application.user_id,
            "bank_id": application.bank_id,
            "status": application.status.value,
            "loan_amount": str(application.loan_amount),
        },
    )


def log_calculation(
    request_id: str,
    loan_amount: Any,
    term_months: int,
    duration_ms: float,
    rates_compared: int | None = None,
) -> None:
    """Log calculator / comparison requests"""
    logging.info(
        "Mortgage calculation completed",
        extra={
            "request_id": request_id,
            "step": "comparison_complete" if rates_compared is not None else "calculation_complete",
            "loan_amount": str(loan_amount),
            "term_months": term_months,
            "rates_compared": rates_compared,
            "duration_ms": duration_ms,
        },
    )
