"""Share the active trace recorder with code deeper in the call stack."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator, Optional

from .timing import TraceRecorder

_ACTIVE: ContextVar[Optional[TraceRecorder]] = ContextVar("relay_trace_recorder", default=None)


def get_recorder() -> Optional[TraceRecorder]:
    return _ACTIVE.get()


@contextmanager
def scoped_recorder(recorder: Optional[TraceRecorder]) -> Iterator[Optional[TraceRecorder]]:
    """Make ``recorder`` the active recorder for the duration of the block."""

    token = _ACTIVE.set(recorder)
    try:
        yield recorder
    finally:
        _ACTIVE.reset(token)


@contextmanager
def trace_segment(name: str, *, metadata: Optional[Dict[str, object]] = None) -> Iterator[Dict[str, object]]:
    """Time the block against the active recorder, if any.

    The yielded dict is attached as segment metadata, so callers can fill in
    values (status codes, sizes) that are only known once the block ran.
    """

    details: Dict[str, object] = dict(metadata or {})
    recorder = _ACTIVE.get()
    if recorder is None:
        yield details
        return

    with recorder.span(name, metadata=details):
        yield details


__all__ = ["get_recorder", "scoped_recorder", "trace_segment"]
