"""
Centralized structured logging.

Sets up structlog on top of stdlib logging with:
- JSON output in production, pretty console output in development
- Redaction of secrets, OTP codes and session tokens
- IP and email hashing so personal data never lands in logs verbatim

Call ``setup_logging()`` once at startup (``create_app`` does this).
"""

from __future__ import annotations

import hashlib
import logging
import sys
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor

# Substrings that mark a field as sensitive
_SENSITIVE_MARKERS = ("otp", "code", "token", "secret", "pepper", "cookie", "password")

# Structural keys never redacted
_PRESERVED_KEYS = {"level", "event", "timestamp", "logger", "status_code", "error_code"}

_hash_personal_data = False


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("otp_challenge_issued", endorsement_id="abc")
    """
    return structlog.get_logger(name)


def _short_hash(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def hash_ip(ip_address: Optional[str]) -> Optional[str]:
    """Hash an IP address in production; return it unchanged in development."""
    if ip_address is None:
        return None
    if _hash_personal_data and ip_address:
        return _short_hash(ip_address)
    return ip_address


def hash_email(email: Optional[str]) -> Optional[str]:
    """Always hash emails; they identify endorsers."""
    if not email:
        return email
    return _short_hash(email)


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _PRESERVED_KEYS:
            continue
        lowered = key.lower()
        if any(marker in lowered for marker in _SENSITIVE_MARKERS):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(log_format: str) -> None:
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True, pad_event=15, sort_keys=False
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging(log_level: str) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Reduce noise from third-party libraries
    for noisy in ("pymongo", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def setup_logging(
    log_level: str = "INFO", log_format: str = "console", production: bool = False
) -> None:
    """Initialize logging for the application."""
    global _hash_personal_data
    _hash_personal_data = production

    configure_stdlib_logging(log_level)
    configure_structlog(log_format)

    get_logger(__name__).info(
        "logging_initialized",
        log_level=log_level,
        log_format=log_format,
        production=production,
    )
