"""Timing primitives used to trace relayed requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, List, Optional


@dataclass
class TraceSegment:
    """A single timed step of a request."""

    name: str
    duration: float
    metadata: Optional[Dict[str, Any]] = field(default=None)


class TraceRecorder:
    """Collects timing segments for one relayed request."""

    def __init__(self, label: str = "request") -> None:
        self.label = label
        self._segments: List[TraceSegment] = []

    def add(
        self,
        name: str,
        duration: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._segments.append(TraceSegment(name=name, duration=duration, metadata=metadata))

    def span(self, name: str, *, metadata: Optional[Dict[str, Any]] = None) -> "_Span":
        """Return a context manager that records the time spent inside it."""

        return _Span(self, name, metadata)

    def segments(self) -> List[TraceSegment]:
        return list(self._segments)

    def names(self) -> List[str]:
        return [segment.name for segment in self._segments]

    def total_duration(self) -> float:
        return sum(segment.duration for segment in self._segments)

    def report(self) -> str:
        """Render a one-line-per-segment summary suitable for log output."""

        if not self._segments:
            return f"{self.label}: no segments recorded."

        total = self.total_duration()
        lines = [f"{self.label} (total {total * 1000.0:.1f}ms):"]
        for segment in self._segments:
            share = (segment.duration / total * 100.0) if total else 0.0
            line = f"  {segment.name:<24} {segment.duration * 1000.0:>8.1f}ms {share:5.1f}%"
            meta = _format_metadata(segment.metadata)
            if meta:
                line += f"  {meta}"
            lines.append(line)
        return "\n".join(lines)


class _Span:
    def __init__(
        self,
        recorder: TraceRecorder,
        name: str,
        metadata: Optional[Dict[str, Any]],
    ) -> None:
        self._recorder = recorder
        self._name = name
        self.metadata = metadata
        self._start: Optional[float] = None

    def __enter__(self) -> "_Span":
        self._start = perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        stop = perf_counter()
        start = self._start if self._start is not None else stop
        self._recorder.add(self._name, stop - start, self.metadata)


def _format_metadata(metadata: Optional[Dict[str, Any]]) -> str:
    if not metadata:
        return ""
    return ", ".join(f"{key}={value}" for key, value in metadata.items() if value is not None)


__all__ = ["TraceRecorder", "TraceSegment"]
