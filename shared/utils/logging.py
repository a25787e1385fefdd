"""
Structured logging setup for the reports cache services.

Provides consistent logging configuration across services
with structured output and scope identifiers.
"""

import logging
import sys
import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    service_name: str,
    log_level: str = "info",
    format_type: str = "json"
) -> None:
    """
    Setup structured logging for the service.

    Args:
        service_name: Name of the service
        log_level: Logging level (debug, info, warning, error)
        format_type: Output format (json, console)
    """
    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper())
    )

    # Configure structlog
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format_type == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Every event carries the service name
    structlog.contextvars.bind_contextvars(service=service_name)


def bind_scope(
    logger: structlog.BoundLogger,
    app_id: str,
    partner_id: str,
    period: str,
) -> structlog.BoundLogger:
    """Add the (app, partner, period) scope to logger context."""
    return logger.bind(app_id=app_id, partner_id=partner_id, period=period)


def bind_cycle(logger: structlog.BoundLogger, cycle_id: str) -> structlog.BoundLogger:
    """Add cycle ID to logger context."""
    return logger.bind(cycle_id=cycle_id)
