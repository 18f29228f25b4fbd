"""Trace id source — one correlation id per request or per execution."""

from __future__ import annotations

import uuid
from contextvars import ContextVar

_trace_id: ContextVar[str | None] = ContextVar("cronprobe_trace_id", default=None)


def new_trace_id() -> str:
    return uuid.uuid4().hex


def bind_trace_id(trace_id: str | None = None) -> str:
    """Set the trace id for the current context and return it."""
    value = trace_id or new_trace_id()
    _trace_id.set(value)
    return value


def current_trace_id() -> str:
    """Return the bound trace id, binding a fresh one if none is set."""
    value = _trace_id.get()
    if value is None:
        value = bind_trace_id()
    return value
