"""Correlation ids for grouping log lines.

The publisher starts a new id for every refresh cycle and the subscriber for
every inbound message, so one fetch-and-publish or one command with its
refresh can be followed through the logs. Ids live in a ``ContextVar``: tasks
inherit the id of the code that created them, and changes made inside a task
stay inside it.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]

_current: contextvars.ContextVar[str | None] = contextvars.ContextVar("cocoro_correlation_id", default=None)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    return _current.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _ = _current.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: str | None = None, auto_generate: bool = True) -> Iterator[str | None]:
    """Run the block under ``correlation_id``, or a fresh one, then restore the previous id.

    With ``auto_generate=False`` and no id the block runs untagged.
    """
    if correlation_id is None and auto_generate:
        correlation_id = generate_correlation_id()
    token = _current.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _current.reset(token)


def ensure_correlation_id() -> str:
    """Return the current id, tagging the current context with a new one if it has none."""
    if (current := _current.get()) is not None:
        return current
    current = generate_correlation_id()
    set_correlation_id(current)
    return current
