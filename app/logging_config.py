"""Centralized logging configuration for the Userdesk backend."""

import logging
import sys
from typing import Optional

from fastapi import Request

from app.config import get_settings

LOGGER_NAME = "userdesk"


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)

    if logger.handlers:
        return logger

    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Prevent duplicate logs
    logger.propagate = False

    return logger


def get_logger() -> logging.Logger:
    """Get the application logger instance."""
    return logging.getLogger(LOGGER_NAME)


def _client_ip(request: Request) -> str:
    return getattr(request.client, "host", "unknown") if request.client else "unknown"


def log_request(
    request: Request, session_id: Optional[str] = None, extra_data: Optional[dict] = None
) -> None:
    """Log incoming HTTP request details.

    Args:
        request: FastAPI request object
        session_id: Optional session ID the request belongs to
        extra_data: Optional additional data to log
    """
    logger = get_logger()

    log_data = {
        "method": request.method,
        "path": request.url.path,
        "client_ip": _client_ip(request),
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    if session_id:
        # Session ids are bearer secrets, only log a prefix
        log_data["session_id"] = f"{session_id[:8]}..."

    if extra_data:
        log_data.update(extra_data)

    logger.info(f"Request: {log_data}")


def log_csrf_event(event_type: str, context: dict, level: int = logging.INFO) -> None:
    """Log a CSRF guard decision.

    Args:
        event_type: Event name (csrf.accepted, csrf.rejected, ...)
        context: Flattened request context
        level: Logging level for the record
    """
    logger = get_logger()
    logger.log(level, f"CSRF event {event_type}: {context}")


def log_error(
    error: Exception,
    request: Request,
    context: Optional[str] = None,
) -> None:
    """Log application errors.

    Args:
        error: Exception that occurred
        request: FastAPI request object
        context: Optional context description
    """
    logger = get_logger()

    log_data = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "path": request.url.path,
        "method": request.method,
        "client_ip": _client_ip(request),
    }

    if context:
        log_data["context"] = context

    logger.error(f"Application error: {log_data}", exc_info=True)


def log_database_event(
    operation: str,
    table: str,
    record_id: Optional[str] = None,
    extra_data: Optional[dict] = None,
) -> None:
    """Log database operations.

    Args:
        operation: Database operation (create, update, delete)
        table: Database table name
        record_id: Optional record ID
        extra_data: Optional additional data to log
    """
    logger = get_logger()

    log_data = {
        "operation": operation,
        "table": table,
    }

    if record_id:
        log_data["record_id"] = record_id

    if extra_data:
        log_data.update(extra_data)

    logger.info(f"Database event: {log_data}")


# Initialize logging on import
setup_logging(get_settings().log_level)
