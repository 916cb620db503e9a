"""Structured logging: structlog on top of the stdlib logging tree.

Every entry carries the service name, the request's correlation id and,
inside authenticated requests, the organization and actor bound by
``bind_request_context``. Production renders JSON lines; debug renders the
colored console format.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

# Chatty third-party loggers held at WARNING regardless of the root level
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "asyncio")


def add_correlation_id(logger, method, event_dict):
    """Inject correlation_id from asgi-correlation-id context into every log entry."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def _service_name(service: str):
    def add_service(logger, method, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    return add_service


def bind_request_context(organization_id: str, actor_id: str) -> None:
    """Attach tenant fields to every log entry emitted for the current request."""
    structlog.contextvars.bind_contextvars(organization_id=organization_id, actor_id=actor_id)


def configure_structlog(log_level: str = "INFO", json_logs: bool = True, service: str = "journeyboard") -> None:
    """Configure structlog and route stdlib loggers through the same renderer.

    Call this BEFORE any other package imports; structlog caches the
    processor chain on first use.

    Args:
        log_level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
        json_logs: True for JSON lines (production), False for ConsoleRenderer (dev)
        service: Value of the ``service`` field on every entry
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _service_name(service),
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        final_processors = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final_processors = [structlog.dev.ConsoleRenderer()]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    *final_processors,
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["default"], "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
