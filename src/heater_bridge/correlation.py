"""
Correlation ids for the bridge's units of work.

There are three kinds of work: the process itself, one inbound MQTT message,
and one poll cycle. Each runs under an id prefixed with its kind (``proc-``,
``msg-``, ``poll-``), so grepping for a prefix separates the command side of
the bridge from the telemetry side, and grepping for a full id gives every log
line one message or cycle produced, across router, gateway and publisher.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

__all__ = [
    "WORK_MESSAGE",
    "WORK_POLL",
    "WORK_PROCESS",
    "correlation_context",
    "current_id",
    "new_id",
]

WORK_PROCESS = "proc"
WORK_MESSAGE = "msg"
WORK_POLL = "poll"

_current: ContextVar[str | None] = ContextVar("heater_correlation_id", default=None)


def new_id(kind: str) -> str:
    """``<kind>-<8 hex chars>``; short enough to read in a human log line."""
    return f"{kind}-{uuid.uuid4().hex[:8]}"


def current_id() -> str | None:
    return _current.get()


@contextmanager
def correlation_context(kind: str, correlation_id: str | None = None) -> Iterator[str]:
    """Run the enclosed block as one unit of ``kind`` work.

    Each asyncio task gets a copy of the context when it is created, so the
    poller task and the receiver task never see each other's ids.
    """
    token = _current.set(correlation_id or new_id(kind))
    try:
        yield _current.get() or ""
    finally:
        _current.reset(token)
