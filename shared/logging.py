"""
Logger factory and log-safe helpers.

Provides:
- get_logger(): Get a configured logger instance
- mask_phone(): Keep phone numbers out of production logs
"""

from __future__ import annotations

import hashlib
import os
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger

from shared.logging_config import setup_logging

__all__ = ["get_logger", "mask_phone", "setup_logging"]


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("otp_issued", phone=mask_phone(phone))
    """
    return structlog.get_logger(name)


def mask_phone(phone: Optional[str]) -> Optional[str]:
    """
    Make a phone number safe to log.

    In production: first 16 hex chars of its SHA-256, so events for one
    phone still correlate. In development: all but the last four digits
    replaced with ``*``.
    """
    if not phone:
        return phone
    if os.getenv("ENV", "development") == "production":
        return hashlib.sha256(phone.encode()).hexdigest()[:16]
    if len(phone) <= 4:
        return phone
    return "*" * (len(phone) - 4) + phone[-4:]
