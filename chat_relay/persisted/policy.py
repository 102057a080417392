"""How persisted state reacts when its storage misbehaves."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReadErrorAction = Literal["use_default", "raise"]
WriteErrorAction = Literal["ignore", "raise"]


@dataclass(frozen=True)
class FailurePolicy:
    """Read failures (including unparseable JSON) and write failures are
    handled independently. The default swallows both."""

    on_read_error: ReadErrorAction = "use_default"
    on_write_error: WriteErrorAction = "ignore"

    def __post_init__(self) -> None:
        if self.on_read_error not in ("use_default", "raise"):
            raise ValueError(f"unknown on_read_error action: {self.on_read_error!r}")
        if self.on_write_error not in ("ignore", "raise"):
            raise ValueError(f"unknown on_write_error action: {self.on_write_error!r}")


SILENT = FailurePolicy()
STRICT = FailurePolicy(on_read_error="raise", on_write_error="raise")

__all__ = ["FailurePolicy", "ReadErrorAction", "SILENT", "STRICT", "WriteErrorAction"]
