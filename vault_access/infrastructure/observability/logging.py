"""
Structured logging setup for the vault access service.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _redact_secrets,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


REDACTED_FIELDS = frozenset({"password", "password_hash", "access_token", "token"})


def _redact_secrets(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Drop credential values that slipped into a log call."""
    for field in REDACTED_FIELDS & event_dict.keys():
        event_dict[field] = "[redacted]"
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def preview(value: str | None, length: int = 12) -> str:
    """Shorten bearer identifiers before they reach a log line."""
    if not value:
        return ""
    return value[:length] + "..."


def log_job_run(job: str, metrics: dict[str, Any], error_count: int = 0):
    """Log a finished batch job with consistent fields."""
    logger = get_logger("jobs")

    log_data = {
        "job_run": job,
        "event_type": "job_completed",
        **metrics,
    }

    if error_count:
        logger.warning("Background job completed with errors", **log_data)
    else:
        logger.info("Background job completed", **log_data)
