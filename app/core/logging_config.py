"""Logging setup for the API process.

Records from plain ``logging.getLogger(__name__)`` loggers and from structlog
loggers go through the same ``ProcessorFormatter``, so both render as JSON
lines (``json``) or as console text (``simple``). Values bound with
``structlog.contextvars.bind_contextvars`` (the request id) are merged into
every record emitted while handling a request.
"""

import logging
import sys

import structlog

from app.core.config import LogFormatEnum, settings

NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "asyncio")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def build_formatter(fmt: str) -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering JSON for ``json`` and console text otherwise."""
    if fmt == LogFormatEnum.json.value:
        final = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer(ensure_ascii=False)]
    else:
        final = [structlog.dev.ConsoleRenderer(colors=False)]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
    )


def setup_logging(level: str | None = None, fmt: str | None = None) -> logging.Logger:
    """Configure the root logger and structlog once.

    Args:
        level: Override for ``settings.log_level``.
        fmt: Override for ``settings.log_format`` (``simple`` or ``json``).

    Returns:
        The root logger.
    """
    root = logging.getLogger()
    level = level or settings.log_level.value
    fmt = fmt or settings.log_format.value

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Avoid stacking handlers on reload
    for handler in list(root.handlers):
        if getattr(handler, "_aneti_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler._aneti_handler = True
    handler.setFormatter(build_formatter(fmt))

    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root
