"""Reactive values mirrored into a storage slot."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Generic, List, Tuple, TypeVar, Union

from .policy import SILENT, FailurePolicy
from .storage import Storage

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]
Updater = Callable[[T], T]


class PersistedState(Generic[T]):
    """A value kept in sync with one named storage slot.

    The slot is read once, on construction. Afterwards memory is the source
    of truth: every ``set`` updates the in-memory value first and then
    writes it through to storage. Whether that write succeeds is decided by
    the storage backend and handled by ``policy``; it never changes what
    ``value`` returns.
    """

    def __init__(
        self,
        storage: Storage,
        key: str,
        default: T,
        *,
        policy: FailurePolicy = SILENT,
    ) -> None:
        self._storage = storage
        self._key = key
        self._default = default
        self._policy = policy
        self._listeners: List[Listener] = []
        self._value: T = self._read()
        self._write(self._value)

    @property
    def key(self) -> str:
        return self._key

    @property
    def default(self) -> T:
        return self._default

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: Union[T, Updater]) -> T:
        """Replace the value; a callable receives the previous value and returns the next."""

        previous = self._value
        current = value(previous) if callable(value) else value
        self._value = current
        self._write(current)
        if current is not previous and current != previous:
            for listener in list(self._listeners):
                listener(current)
        return current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with each new value; returns an unsubscribe function."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Serialization hooks ---------------------------------------------------------

    def decode(self, raw: str) -> T:
        raise NotImplementedError

    def encode(self, value: T) -> str:
        raise NotImplementedError

    # Storage access --------------------------------------------------------------

    def _read(self) -> T:
        try:
            raw = self._storage.get(self._key)
            if raw is None:
                return self._default
            return self.decode(raw)
        except Exception as exc:
            if self._policy.on_read_error == "raise":
                raise
            logger.debug("Using default for %r after read failure: %s", self._key, exc)
            return self._default

    def _write(self, value: T) -> None:
        try:
            self._storage.set(self._key, self.encode(value))
        except Exception as exc:
            if self._policy.on_write_error == "raise":
                raise
            logger.debug("Dropped write of %r: %s", self._key, exc)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self._key!r}, value={self._value!r})"


class PersistedText(PersistedState[str]):
    """Stores the value verbatim.

    Non-string values are coerced the way browser storage does it:
    ``None`` becomes ``"null"`` and booleans ``"true"``/``"false"``.
    """

    def decode(self, raw: str) -> str:
        return raw

    def encode(self, value: Any) -> str:
        if isinstance(value, str):
            return value
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


class PersistedJSON(PersistedState[Any]):
    """Stores the value as compact JSON; unparseable slots fall back to the default.

    ``NaN`` and ``Infinity`` are refused in both directions.
    """

    def decode(self, raw: str) -> Any:
        return json.loads(raw, parse_constant=_reject_constant)

    def encode(self, value: Any) -> str:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def use_persisted_state(
    key: str,
    default: str,
    *,
    storage: Storage,
    policy: FailurePolicy = SILENT,
) -> Tuple[str, Callable[..., str]]:
    """Return ``(value, setter)`` for a raw-text slot."""

    state = PersistedText(storage, key, default, policy=policy)
    return state.value, state.set


def use_persisted_json(
    key: str,
    default: Any,
    *,
    storage: Storage,
    policy: FailurePolicy = SILENT,
) -> Tuple[Any, Callable[..., Any]]:
    """Return ``(value, setter)`` for a JSON slot."""

    state = PersistedJSON(storage, key, default, policy=policy)
    return state.value, state.set


__all__ = [
    "PersistedJSON",
    "PersistedState",
    "PersistedText",
    "use_persisted_json",
    "use_persisted_state",
]
