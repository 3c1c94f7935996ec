# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Logs are rendered as colored console output in development and as JSON
elsewhere. Application modules keep using ``logging.getLogger(__name__)``;
structlog only owns formatting and request-scoped context.

Example:
    >>> from src.utils.logging import setup_logging, bind_context
    >>> from src.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> bind_context(user_id="123", tenant_id="school-1")
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from src.core.config.settings import Settings

# Loggers that are too chatty at DEBUG for a request-scoped service
_QUIET_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "sqlalchemy",
    "sqlalchemy.engine",
    "asyncio",
    "httpx",
)


def _renderer(settings: "Settings") -> Processor:
    if settings.is_development or settings.debug:
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def setup_logging(settings: "Settings") -> None:
    """Configure structured logging for the application.

    Stdlib log records (the ones our modules emit) are routed through a
    structlog ProcessorFormatter so that both structlog and stdlib loggers
    share processors, contextvars and the final renderer.

    Args:
        settings: Application settings containing log_level and debug flag.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(settings),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for logger_name in _QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(log_level)


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent log calls in this context.

    The auth middleware binds user_id, tenant_id and role for each request.

    Args:
        **kwargs: Key-value pairs to bind to the logging context.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables.

    Called at the end of each request so context does not leak between
    requests served by the same worker.
    """
    structlog.contextvars.clear_contextvars()
