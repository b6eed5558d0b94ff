"""Log context enrichment for monitor ticks."""

from __future__ import annotations

import structlog


def bind_context(**kwargs: object) -> None:
    """Bind key-value pairs to the current task's logging context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    structlog.contextvars.unbind_contextvars(*keys)
