"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

# Libraries that log every request at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(level: str = "INFO", fmt: str = "json", log_file: str = "") -> None:
    """Route stdlib and structlog output through one structlog formatter.

    Modules log with ``logging.getLogger(__name__)`` and %-style messages;
    ``foreign_pre_chain`` gives those records the same timestamp, level and
    bound context (e.g. the monitor tick number) as native structlog events.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: "json" for production, "console" for development.
        log_file: Optional file to log to in addition to stdout.
    """
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(fmt),
        ],
    )

    outputs: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        outputs.append(logging.FileHandler(log_file))
    for handler in outputs:
        handler.setFormatter(formatter)

    # The /api/logs buffer stores level and logger separately and keeps its
    # own plain-message formatter.
    from solar_monitor.dashboard.log_buffer import log_buffer

    root = logging.getLogger()
    root.handlers.clear()
    for handler in (*outputs, log_buffer):
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
