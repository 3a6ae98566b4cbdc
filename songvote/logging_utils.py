import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import Request

from .logging_config import is_sensitive_field


def _sanitize(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: "[REDACTED]" if is_sensitive_field(key) else value
        for key, value in data.items()
    }


def log_user_action(
    action: str, user_id: int, logger_name: str = "user_actions", **kwargs: Any
) -> None:
    """Log user actions with consistent structure.

    Args:
        action: The action being performed (e.g., 'vote', 'veto', 'add_song')
        user_id: Id of the user performing the action
        logger_name: Name of the logger to use
        **kwargs: Additional context data
    """
    logger = logging.getLogger(logger_name)

    log_data = {
        "action": action,
        "user_id": user_id,
        "timestamp": datetime.now(UTC).isoformat(),
        **_sanitize(kwargs),
    }

    logger.info(f"User action: {action} by user {user_id}", extra=log_data)


def log_api_request(
    request: Request,
    response_status: int,
    process_time_ms: float | None = None,
    logger_name: str = "api",
) -> None:
    """Log API requests with consistent format.

    Args:
        request: FastAPI request object
        response_status: HTTP response status code
        process_time_ms: Request processing time in milliseconds
        logger_name: Name of the logger to use
    """
    logger = logging.getLogger(logger_name)

    log_data = {
        "method": request.method,
        "path": request.url.path,
        "status_code": response_status,
        "client_ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent", "Unknown")[:100],
    }

    if process_time_ms is not None:
        log_data["process_time_ms"] = str(round(process_time_ms, 2))

    if response_status >= 500:
        log_level = logging.ERROR
    elif response_status >= 400:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    message = f"{request.method} {request.url.path} - {response_status}"
    if process_time_ms is not None:
        message += f" ({process_time_ms:.1f}ms)"

    logger.log(log_level, message, extra=log_data)


def log_database_operation(
    operation: str,
    table: str,
    success: bool = True,
    logger_name: str = "database",
    **kwargs: Any,
) -> None:
    """Log database operations.

    Args:
        operation: Database operation (create, update, delete, soft_delete)
        table: Table name being operated on
        success: Whether the operation was successful
        logger_name: Name of the logger to use
        **kwargs: Additional context data
    """
    logger = logging.getLogger(logger_name)

    log_data = {
        "operation": operation,
        "table": table,
        "success": success,
        **_sanitize(kwargs),
    }

    level = logging.INFO if success else logging.ERROR
    status = "succeeded" if success else "failed"

    logger.log(level, f"Database {operation} on {table} {status}", extra=log_data)


def log_system_info(
    hostname: str, ip_address: str, debug_mode: bool, database_url: str
) -> None:
    """Log system startup information."""
    logger = logging.getLogger("system")

    logger.info(
        "Application startup",
        extra={
            "hostname": hostname,
            "ip_address": ip_address,
            "debug_mode": debug_mode,
            "database_url": database_url,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )
