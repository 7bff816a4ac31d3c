"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from finpulse_gateway.config import settings


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

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_assessment(
    request_id: str,
    user_id: str,
    outcome: str,
    duration_ms: float,
    report_id: str | None = None,
    credit_score: int | None = None,
) -> None:
    """Log structured pipeline outcome for analysis"""
    logging.getLogger("finpulse_gateway.assessment").info(
        "Assessment completed" if outcome == "committed" else "Assessment failed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "assessment_complete",
            "outcome": outcome,
            "report_id": report_id,
            "credit_score": credit_score,
            "duration_ms": duration_ms,
        },
    )


def log_retry(attempt: int, max_attempts: int, kind: str, wait_ms: float, error: BaseException) -> None:
    """Log a reasoning-service retry with the computed wait"""
    logging.getLogger("finpulse_gateway.retry").warning(
        f"Reasoning call failed ({kind}): {error}. Retrying in {round(wait_ms)}ms",
        extra={
            "step": "reasoning_retry",
            "attempt": attempt,
            "max_attempts": max_attempts,
            "error_kind": kind,
            "wait_ms": round(wait_ms),
        },
    )
