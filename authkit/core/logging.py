from __future__ import annotations

import logging
import sys

import structlog
from structlog.typing import EventDict, Processor


def add_service_context(service: str, environment: str | None = None) -> Processor:
    """Stamp every event with the service name and deployment environment."""

    def processor(logger: object, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        if environment is not None:
            event_dict.setdefault("environment", environment)
        return event_dict

    return processor


def setup_logging(
    log_level: str = "INFO",
    debug: bool = False,
    service: str = "authkit",
    environment: str | None = None,
) -> None:
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_service_context(service, environment),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(method: str, path: str, client_ip: str | None) -> None:
    """Attach request fields to every log line emitted while serving the request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(method=method, path=path, client_ip=client_ip)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
