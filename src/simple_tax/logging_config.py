"""Structured logging for Simple Tax.

Events go through structlog into stdlib logging: coloured key/value lines
while developing, one JSON object per line otherwise. A tax computation
binds the account and invoice identifiers with ``log_context`` so every
event of the run carries them.
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from simple_tax.config import Settings, get_settings


def _add_environment(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("environment", get_settings().environment.value)
    return event_dict


def _processors(log_format: str) -> list[Processor]:
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "json":
        return [
            *shared,
            _add_environment,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [*shared, structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(settings: Settings | None = None) -> None:
    """Route structlog through stdlib logging, once at startup."""
    if settings is None:
        settings = get_settings()
    level = getattr(logging, settings.log_level.value)

    structlog.configure(
        processors=_processors(settings.log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file))
    logging.basicConfig(format="%(message)s", level=level, handlers=handlers, force=True)

    # uvicorn access lines duplicate the request logs
    logging.getLogger("uvicorn.access").setLevel(max(level, logging.INFO))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)


def log_context(**values: Any) -> AbstractContextManager[None]:
    """Bind ``values`` to every event logged inside the ``with`` block.

    Example:
        with log_context(account_id=str(account.id), invoice_id=str(invoice.id)):
            logger.info("tax_computation_completed", proposed_items=2)
    """
    return structlog.contextvars.bound_contextvars(**values)
