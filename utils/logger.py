"""
Logging helpers shared by routers and services.
"""

import logging
from typing import Any, Dict, Optional


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Usage:
        from utils.logger import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


SENSITIVE_FIELDS = {
    'password', 'token', 'secret', 'api_key', 'access_token',
    'refresh_token', 'cookie', 'authorization'
}


def sanitize_log_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of data that is safe to log.

    Passwords and secrets are fully redacted; tokens keep their first 8
    characters so two log lines can still be matched against each other.
    Nested dictionaries are sanitized recursively.
    """
    sanitized = data.copy()

    for key, value in sanitized.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
            if isinstance(value, str):
                if 'token' in key.lower() and len(value) > 8:
                    sanitized[key] = f"{value[:8]}..."
                else:
                    sanitized[key] = "***REDACTED***"

        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)

    return sanitized


def log_request(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None
):
    """
    Log one HTTP request. 5xx logs as ERROR, 4xx as WARNING, the rest as INFO.

    Usage:
        log_request(logger, "POST", "/api/v1/users/login", 200, 45.2)
    """
    log_data = {
        "http_method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }

    if client_ip:
        log_data["client_ip"] = client_ip

    if extra:
        log_data.update(sanitize_log_data(extra))

    message = f'{client_ip or "unknown"} - "{method} {path}" {status_code}'
    if status_code >= 500:
        logger.error(message, extra=log_data)
    elif status_code >= 400:
        logger.warning(message, extra=log_data)
    else:
        logger.info(message, extra=log_data)


def log_database_query(
    logger: logging.Logger,
    query_type: str,
    table: str,
    duration_ms: float,
    rows_affected: Optional[int] = None
):
    """
    Log a database read or write at DEBUG, or at WARNING when it took longer
    than a second.

    Usage:
        log_database_query(logger, "AGGREGATE", "videos", 12.5, rows_affected=10)
    """
    log_data = {
        "query_type": query_type,
        "table": table,
        "duration_ms": round(duration_ms, 2)
    }

    if rows_affected is not None:
        log_data["rows_affected"] = rows_affected

    if duration_ms > 1000:
        logger.warning(f"Slow {query_type} query on {table}", extra=log_data)
    else:
        logger.debug(f"{query_type} query on {table}", extra=log_data)
