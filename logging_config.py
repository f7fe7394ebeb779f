# logging_config.py

import logging
import structlog
import sys
from typing import Any, Dict, Optional
from flask import has_request_context, request, g


def add_request_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the current Flask request to log entries"""
    if has_request_context():
        event_dict["request_id"] = getattr(g, 'request_id', None)
        event_dict["account_id"] = getattr(g, 'account_id', None)
        event_dict["remote_addr"] = request.remote_addr
        event_dict["method"] = request.method
        event_dict["path"] = request.path
    return event_dict


PHONE_FIELDS = ("phone", "from_number", "to_number", "phone_number", "twilio_phone_number")


def mask_phone_numbers(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the last 4 digits of client and account phone numbers"""
    for key in PHONE_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > 4:
            event_dict[key] = "*" * (len(value) - 4) + value[-4:]
    return event_dict


def setup_logging(app_name: str = "clientdesk", log_level: str = "INFO") -> None:
    """
    Configure structured JSON logging.

    Args:
        app_name: Application name for log identification
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_request_context,
            mask_phone_numbers,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard library loggers (repositories, third-party packages)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    logging.getLogger(app_name).setLevel(level)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a structured logger instance

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog instance
    """
    return structlog.get_logger(name or __name__)


class SecurityLogger:
    """Security relevant events: logins and webhook signature checks"""

    def __init__(self):
        self.logger = get_logger("security")

    def log_authentication_attempt(self, email: str, success: bool, ip_address: Optional[str]):
        self.logger.info(
            "Authentication attempt",
            email=email,
            success=success,
            ip_address=ip_address,
            event_type="auth_attempt"
        )

    def log_webhook_signature_rejected(self, provider: str, reason: str, ip_address: Optional[str] = None):
        """Log a webhook that failed signature verification"""
        self.logger.warning(
            "Webhook signature rejected",
            provider=provider,
            reason=reason,
            ip_address=ip_address,
            event_type="webhook_signature_rejected"
        )


class PerformanceLogger:
    """Timing of calls to external services"""

    def __init__(self):
        self.logger = get_logger("performance")

    def log_api_call(self, service: str, endpoint: str, duration_ms: float, status_code: Optional[int]):
        self.logger.info(
            "External API call",
            service=service,
            endpoint=endpoint,
            duration_ms=duration_ms,
            status_code=status_code,
            event_type="api_call"
        )


security_logger = SecurityLogger()
performance_logger = PerformanceLogger()
