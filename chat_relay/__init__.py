"""Relay browser chat requests to an upstream completion API."""

from .config import Settings, load_settings
from .errors import (
    MalformedBody,
    MethodNotAllowed,
    PayloadRejected,
    PayloadTooLarge,
    ProxyError,
    RelayError,
    StorageError,
    StorageFullError,
    Unauthenticated,
)
from .persisted import (
    FailurePolicy,
    JsonFileStorage,
    MemoryStorage,
    PersistedJSON,
    PersistedText,
    use_persisted_json,
    use_persisted_state,
)
from .relay import Relay, RelayResponse

__all__ = [
    "FailurePolicy",
    "JsonFileStorage",
    "MalformedBody",
    "MemoryStorage",
    "MethodNotAllowed",
    "PayloadRejected",
    "PayloadTooLarge",
    "PersistedJSON",
    "PersistedText",
    "ProxyError",
    "Relay",
    "RelayError",
    "RelayResponse",
    "Settings",
    "StorageError",
    "StorageFullError",
    "Unauthenticated",
    "load_settings",
    "use_persisted_json",
    "use_persisted_state",
]
