"""Structured logging configuration for caseflow.

Provides JSON-formatted logs for production and human-readable
logs for development.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import get_settings

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed with extra={...}
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.funcName:
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable log formatter for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging() -> None:
    """Configure logging based on settings."""
    settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)

    if settings.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = get_logger(__name__)
    logger.info(
        "Logging initialized",
        extra={
            "environment": settings.environment,
            "log_level": settings.log_level,
            "log_format": settings.log_format,
        },
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds context to all log messages."""

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        """Process the logging message and add extra context."""
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def get_context_logger(name: str, **context: Any) -> LoggerAdapter:
    """Get a logger with additional context.

    Args:
        name: Logger name
        **context: Context fields to add to all log messages

    Returns:
        Logger adapter with context

    Usage:
        logger = get_context_logger(__name__, request_id="abc123", workflow="resolve")
        logger.info("Writing request status")  # Includes request_id and workflow
    """
    return LoggerAdapter(get_logger(name), context)


# =========================
# Convenience functions
# =========================


def log_status_transition(
    case_id: str, from_status: str, to_status: str, actor_id: str | None = None
) -> None:
    """Log a committed case status transition."""
    logger = get_logger("caseflow.cases")
    logger.info(
        f"Case {case_id}: {from_status} -> {to_status}",
        extra={
            "case_id": case_id,
            "from_status": from_status,
            "to_status": to_status,
            "actor_id": actor_id,
            "event": "status_transition",
        },
    )


def log_workflow_step(workflow: str, step: str, **context: Any) -> None:
    """Log completion of one write in a multi-step workflow.

    Args:
        workflow: Workflow name (resolve_request, schedule_hearing)
        step: Step that just committed
        **context: Ids involved in the step
    """
    logger = get_logger("caseflow.workflow")
    logger.debug(
        f"{workflow}: step '{step}' committed",
        extra={"workflow": workflow, "step": step, "event": "workflow_step", **context},
    )


def log_partial_failure(
    workflow: str,
    completed_steps: list[str],
    failed_step: str,
    error: str,
    **context: Any,
) -> None:
    """Log a multi-step workflow that stopped after some writes committed."""
    logger = get_logger("caseflow.workflow")
    logger.error(
        f"{workflow}: step '{failed_step}' failed after {completed_steps}: {error}",
        extra={
            "workflow": workflow,
            "completed_steps": completed_steps,
            "failed_step": failed_step,
            "error": error,
            "event": "workflow_partial_failure",
            **context,
        },
    )


def log_date_dropped(collection: str, record_id: str, field: str, value: Any) -> None:
    """Log a date field dropped from an update because it could not be parsed."""
    logger = get_logger("caseflow.cases")
    logger.warning(
        f"{field} conversion failed for {collection}/{record_id}; field will not be updated",
        extra={
            "collection": collection,
            "record_id": record_id,
            "field": field,
            "value": repr(value),
            "event": "date_dropped",
        },
    )


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    request_id: str | None = None,
) -> None:
    """Log an API request.

    Args:
        method: HTTP method
        path: Request path
        status_code: Response status code
        duration_ms: Request duration in milliseconds
        request_id: Request correlation ID
    """
    logger = get_logger("caseflow.api")
    logger.info(
        f"{method} {path} - {status_code}",
        extra={
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "request_id": request_id,
            "event": "api_request",
        },
    )
