"""Request-scoped logging context.

Continuations bind ``novel_id`` and ``chapter_id`` here so every log line
emitted while a chapter streams carries them. Values are stored in
structlog's contextvars and merged by ``merge_contextvars`` in the
processor chain.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return dict(structlog.contextvars.get_contextvars())


def update_log_context(key: str, value: Any) -> None:
    """Update a single key in the logging context."""
    structlog.contextvars.bind_contextvars(**{key: value})


def clear_log_context() -> None:
    """Clear the current logging context."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def bind_log_context(**values: Any) -> Iterator[None]:
    """Bind values for the duration of a block, restoring the previous ones afterwards."""
    with structlog.contextvars.bound_contextvars(**values):
        yield
