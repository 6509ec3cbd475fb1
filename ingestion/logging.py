"""
Structured logging configuration using structlog.

Standardized log format:
{
    "ts": "2026-10-16T04:30:00.123456Z",
    "level": "info",
    "service": "ingestion-service",
    "correlation_id": "uuid-v4",
    "event": "publish.retrying",
    "module": "ingestion.services.publisher",
    "function": "publish",
    "line": 42,
    ...additional context...
}
"""
import structlog
import logging
from functools import partial
from typing import Any

SERVICE_NAME = "ingestion-service"


def add_service_name(
    logger: Any, method_name: str, event_dict: dict, service_name: str = SERVICE_NAME
) -> dict:
    """Add service name to all log entries."""
    event_dict["service"] = service_name
    return event_dict


def setup_logging(json_output: bool = True, service_name: str = SERVICE_NAME):
    """
    Configure structured logging with standardized fields.

    Args:
        json_output: If True, output JSON logs. If False, use console format.
        service_name: Name of the service (for multi-service deployments).
    """
    shared_processors = [
        # Includes correlation_id bound by the middleware
        structlog.contextvars.merge_contextvars,
        partial(add_service_name, service_name=service_name),
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.add_log_level,
        # module/function/line of the call site
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors = shared_processors + [structlog.processors.JSONRenderer()]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=logging.INFO,
    )

    # Silence uvicorn's default logging to avoid duplicate logs
    logging.getLogger("uvicorn.error").handlers = []
    logging.getLogger("uvicorn.access").handlers = []


def get_logger():
    """Get a configured structlog logger."""
    return structlog.get_logger()
