"""
Logging configuration and helpers for the Medi Portal health analysis API.

Logs are emitted as JSON lines in production (one object per record, easy to
ship to a log collector) and as plain text while developing locally.
Request-scoped context such as ``user_id`` and ``request_id`` travels with
the record through ``get_request_logger``.
"""

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Record attributes that are copied verbatim into structured output
CONTEXT_FIELDS = ("user_id", "request_id", "endpoint")


class StructuredFormatter(logging.Formatter):
    """
    Formats each record as a single JSON object.

    Extra data passed as ``extra={'extra_fields': {...}}`` is merged into the
    top level of the object.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_data["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_data.update(extra_fields)

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Plain console output for local development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(
    log_level: Optional[str] = None,
    structured: Optional[bool] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
                   Defaults to the LOG_LEVEL env var, then INFO.
        structured: Emit JSON lines. Defaults to True only when
                    ENVIRONMENT is "production".
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")
    log_level = log_level.upper()

    environment = os.getenv("ENVIRONMENT", "development").lower()
    if structured is None:
        structured = environment == "production"

    level = getattr(logging, log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        StructuredFormatter() if structured else HumanReadableFormatter()
    )
    root_logger.addHandler(console_handler)

    # botocore is very chatty at DEBUG
    logging.getLogger("botocore").setLevel(max(level, logging.WARNING))

    root_logger.info(
        f"Logging configured: level={log_level}, "
        f"environment={environment}, structured={structured}"
    )


def get_logger(name: str) -> logging.Logger:
    """Return the module logger, e.g. ``get_logger(__name__)``."""
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that attaches request context to every record it emits.

    Keys passed explicitly through ``extra=`` win over the adapter context.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.setdefault("extra", {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)
        return msg, kwargs


def get_request_logger(
    name: str,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
    endpoint: Optional[str] = None,
) -> LoggerAdapter:
    """
    Get a logger bound to a single request.

    Example:
        >>> logger = get_request_logger(__name__, user_id="u-1", endpoint="/health-analysis")
        >>> logger.info("Analyzing symptoms")
    """
    context = {}
    if user_id:
        context["user_id"] = user_id
    if request_id:
        context["request_id"] = request_id
    if endpoint:
        context["endpoint"] = endpoint

    return LoggerAdapter(get_logger(name), context)


def log_error(
    logger: logging.Logger,
    error: Exception,
    message: str,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log ``error`` at ERROR level with its traceback and extra context.

    Example:
        >>> try:
        ...     store.delete_search(search_id, user_id)
        ... except StorageError as e:
        ...     log_error(logger, e, "Failed to delete search", {"search_id": search_id})
    """
    log_data = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if extra:
        log_data.update(extra)

    logger.error(
        f"{message}: {error}",
        exc_info=error,
        extra={"extra_fields": log_data},
    )


def log_service_call(
    logger: logging.Logger,
    service: str,
    operation: str,
    success: bool,
    duration_ms: Optional[float] = None,
    error: Optional[Exception] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log one outbound call to a dependency (AI gateway, DynamoDB).

    Args:
        service: Dependency name, e.g. "ai_gateway" or "dynamodb"
        operation: Operation name, e.g. "chat_completions" or "put_item"
        success: Whether the call succeeded
        duration_ms: Wall time of the call
        error: Exception raised by the call, if any
        extra: Additional context
    """
    log_data = {
        "service": service,
        "operation": operation,
        "success": success,
    }
    if duration_ms is not None:
        log_data["duration_ms"] = duration_ms
    if error:
        log_data["error_type"] = type(error).__name__
        log_data["error_message"] = str(error)
    if extra:
        log_data.update(extra)

    message = f"{service}.{operation}: {'success' if success else 'failed'}"
    if duration_ms is not None:
        message += f" ({duration_ms:.2f}ms)"

    logger.log(
        logging.INFO if success else logging.ERROR,
        message,
        extra={"extra_fields": log_data},
        exc_info=error if error else None,
    )


def log_request_start(
    logger: logging.Logger,
    endpoint: str,
    user_id: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """Log the start of an inbound HTTP request."""
    log_data = {"endpoint": endpoint, "event": "request_start"}
    if user_id:
        log_data["user_id"] = user_id
    if extra:
        log_data.update(extra)

    logger.info(f"Request started: {endpoint}", extra={"extra_fields": log_data})


def log_request_end(
    logger: logging.Logger,
    endpoint: str,
    status_code: int,
    duration_ms: float,
    user_id: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """Log the end of an inbound HTTP request; 4xx warn, 5xx error."""
    log_data = {
        "endpoint": endpoint,
        "status_code": status_code,
        "duration_ms": duration_ms,
        "event": "request_end",
    }
    if user_id:
        log_data["user_id"] = user_id
    if extra:
        log_data.update(extra)

    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger.log(
        level,
        f"Request completed: {endpoint} - {status_code} ({duration_ms:.2f}ms)",
        extra={"extra_fields": log_data},
    )
