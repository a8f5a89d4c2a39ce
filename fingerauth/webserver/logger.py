"""
Webserver Logging System
Provides structured logging to separate files with automatic rotation.

Log Files:
- access.log: HTTP requests (IP, endpoint, status, duration)
- biometric.log: Verification outcomes (subject, result, scores)
- error.log: Application errors and exceptions

Fingerprint images are never logged.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Dict, Any

from .config import (
    LOG_DIR, LOG_ACCESS, LOG_BIOMETRIC, LOG_ERROR,
    LOG_MAX_BYTES, LOG_BACKUP_COUNT, VERBOSE
)


# Ensure log directory exists
LOG_DIR.mkdir(parents=True, exist_ok=True)


# Log formats
DETAILED_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def _create_rotating_handler(
    log_file: Path,
    max_bytes: int = LOG_MAX_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
    formatter_string: Optional[str] = None
) -> RotatingFileHandler:
    """
    Create a rotating file handler.

    Args:
        log_file: Path to the log file
        max_bytes: Max file size before rotation
        backup_count: Number of backup files to keep
        formatter_string: Log format string (default DETAILED_FORMAT)

    Returns:
        Configured RotatingFileHandler
    """
    handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )

    formatter = logging.Formatter(formatter_string or DETAILED_FORMAT)
    handler.setFormatter(formatter)

    return handler


def _get_logger(name: str, log_file: Path, level: int = logging.INFO) -> logging.Logger:
    """
    Get or create a logger with rotating file handler.

    Args:
        name: Logger name
        log_file: Path to log file
        level: Logging level (default INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)
    logger.propagate = False  # Don't propagate to root logger

    logger.addHandler(_create_rotating_handler(log_file))

    if VERBOSE:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(DETAILED_FORMAT))
        logger.addHandler(console)

    return logger


# Create specialized loggers
access_logger = _get_logger("webserver.access", LOG_ACCESS)
biometric_logger = _get_logger("webserver.biometric", LOG_BIOMETRIC)
error_logger = _get_logger("webserver.error", LOG_ERROR, level=logging.ERROR)


def attach_core_logging(level: int = logging.INFO) -> logging.Logger:
    """Route the ``fingerauth`` core loggers to biometric.log and error.log."""
    core = logging.getLogger("fingerauth")
    if core.handlers:
        return core

    core.setLevel(level)
    core.propagate = False
    core.addHandler(_create_rotating_handler(LOG_BIOMETRIC))

    errors = _create_rotating_handler(LOG_ERROR)
    errors.setLevel(logging.ERROR)
    core.addHandler(errors)

    return core


# Convenience functions

def log_access(
    ip: str,
    method: str,
    endpoint: str,
    status_code: int,
    duration_ms: float
):
    """
    Log HTTP access.

    Args:
        ip: Client IP address
        method: HTTP method (GET, POST, etc.)
        endpoint: Request endpoint
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
    """
    access_logger.info(
        f"{ip} - {method} {endpoint} - {status_code} - {duration_ms:.2f}ms"
    )


def log_biometric(
    operation: str,
    subject_id: Optional[str],
    result: str,
    details: Optional[Dict[str, Any]] = None
):
    """
    Log biometric operation.

    Args:
        operation: Operation type (VERIFY)
        subject_id: Claimed subject id, None if the request could not be parsed
        result: ACCEPTED or the failure kind (BelowThresholdError, ...)
        details: Additional details dict (scores, average, ...)
    """
    detail_str = ""
    if details:
        detail_parts = [f"{k}={v}" for k, v in details.items()]
        detail_str = f" - {', '.join(detail_parts)}"

    biometric_logger.info(
        f"{operation} {result} - subject_id={subject_id}{detail_str}"
    )


def log_error(
    error: BaseException,
    context: Optional[str] = None,
    ip: Optional[str] = None
):
    """
    Log application error.

    Args:
        error: Exception object
        context: Context where error occurred (endpoint, function name, etc.)
        ip: Client IP address (optional)
    """
    context_info = f" in {context}" if context else ""
    ip_info = f" ip={ip}" if ip else ""

    error_logger.error(
        f"{type(error).__name__}: {str(error)}{context_info}{ip_info}",
        exc_info=error
    )


def log_startup(info: Dict[str, Any]):
    """
    Log server startup information.

    Args:
        info: Startup info dict (host, port, record store, ...)
    """
    access_logger.info("=" * 70)
    access_logger.info("WEBSERVER STARTING")
    access_logger.info("=" * 70)

    for key, value in info.items():
        access_logger.info(f"{key}: {value}")

    access_logger.info("=" * 70)


def log_shutdown():
    """Log server shutdown."""
    access_logger.info("=" * 70)
    access_logger.info("WEBSERVER SHUTTING DOWN")
    access_logger.info("=" * 70)


def get_logger(name: str) -> logging.Logger:
    """
    Get a custom logger (writes to error.log).

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return _get_logger(f"webserver.{name}", LOG_ERROR)
