"""Values that survive restarts by living in a key-value storage slot."""

from .policy import SILENT, STRICT, FailurePolicy
from .state import (
    PersistedJSON,
    PersistedState,
    PersistedText,
    use_persisted_json,
    use_persisted_state,
)
from .storage import JsonFileStorage, MemoryStorage, Storage

__all__ = [
    "FailurePolicy",
    "JsonFileStorage",
    "MemoryStorage",
    "PersistedJSON",
    "PersistedState",
    "PersistedText",
    "SILENT",
    "STRICT",
    "Storage",
    "use_persisted_json",
    "use_persisted_state",
]
