"""Per-scrape correlation IDs.

The HTTP handler, the collector and each NRPE exchange log under the ID of the
scrape they serve. The ID lives in a context variable, so concurrent scrapes
running as separate tasks never see each other's ID.
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

_current_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("nrpe_bridge_correlation_id", default=None)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    return _current_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Replace the ID of the current context; None clears it."""
    _current_id.set(correlation_id)


@contextmanager
def correlation_context(
    correlation_id: str | None = None,
    auto_generate: bool = True,
) -> Iterator[str | None]:
    """Run a block under ``correlation_id`` and restore the outer ID afterwards.

    Without an explicit ID a fresh one is generated, unless ``auto_generate``
    is false, in which case the block runs with no ID at all.

    Example:
        with correlation_context() as scrape_id:
            logger.info("Scrape started")
    """
    if correlation_id is None and auto_generate:
        correlation_id = generate_correlation_id()

    token = _current_id.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _current_id.reset(token)


def ensure_correlation_id() -> str:
    """Current ID, creating and storing one first when the context has none."""
    current = _current_id.get()
    if current is None:
        current = generate_correlation_id()
        _current_id.set(current)
    return current
