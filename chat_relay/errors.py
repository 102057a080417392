"""Error taxonomy shared by the relay and the persisted state containers."""

from __future__ import annotations

from typing import Dict


class RelayError(RuntimeError):
    """Raised when a request cannot be relayed; rendered as an HTTP response."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> Dict[str, str]:
        return {"error": self.message}


class MethodNotAllowed(RelayError):
    status_code = 405

    def __init__(self, message: str = "Method not allowed") -> None:
        super().__init__(message)


class Unauthenticated(RelayError):
    status_code = 401

    def __init__(self, message: str = "Missing API key") -> None:
        super().__init__(message)


class MalformedBody(RelayError):
    status_code = 400

    def __init__(self, message: str = "Invalid JSON body") -> None:
        super().__init__(message)


class PayloadRejected(RelayError):
    """Raised by request validators to stop a body from being forwarded."""

    status_code = 400


class PayloadTooLarge(RelayError):
    status_code = 413

    def __init__(self, message: str = "Payload too large") -> None:
        super().__init__(message)


class ProxyError(RelayError):
    """The upstream could not be reached or returned something unparseable."""

    status_code = 500

    def __init__(self, reason: str) -> None:
        super().__init__(f"Proxy error: {reason}")
        self.reason = reason


class StorageError(RuntimeError):
    """Raised by storage backends when a slot cannot be read or written."""


class StorageFullError(StorageError):
    """Raised when a write would exceed the storage quota."""


__all__ = [
    "MalformedBody",
    "MethodNotAllowed",
    "PayloadRejected",
    "PayloadTooLarge",
    "ProxyError",
    "RelayError",
    "StorageError",
    "StorageFullError",
    "Unauthenticated",
]
