"""String-keyed, string-valued storage backends for persisted state."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterator, Optional, Protocol, runtime_checkable

from ..errors import StorageError, StorageFullError


@runtime_checkable
class Storage(Protocol):
    """Synchronous key-value slot store.

    ``get`` returns ``None`` for an absent key. Both methods may raise
    ``StorageError`` (or ``OSError``) when the backend is unavailable.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Dictionary-backed storage with an optional size quota."""

    def __init__(
        self,
        initial: Optional[Dict[str, str]] = None,
        *,
        quota_bytes: Optional[int] = None,
    ) -> None:
        self._slots: Dict[str, str] = dict(initial or {})
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        return self._slots.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"storage values must be strings, got {type(value).__name__}")
        if self.quota_bytes is not None:
            projected = self.used_bytes() - _slot_size(key, self._slots.get(key)) + _slot_size(key, value)
            if projected > self.quota_bytes:
                raise StorageFullError(
                    f"writing {key!r} would use {projected} bytes (quota {self.quota_bytes})"
                )
        self._slots[key] = value

    def used_bytes(self) -> int:
        return sum(_slot_size(key, value) for key, value in self._slots.items())

    def __contains__(self, key: object) -> bool:
        return key in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)


class JsonFileStorage:
    """Storage kept as one JSON object on disk.

    Every ``set`` rewrites the file through a temporary sibling so a crash
    never leaves a half-written store behind.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"storage values must be strings, got {type(value).__name__}")
        slots = self._load()
        slots[key] = value
        self._save(slots)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not hold a JSON object")
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _save(self, slots: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(slots, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            raise StorageError(f"cannot write {self.path}: {exc}") from exc


def _slot_size(key: str, value: Optional[str]) -> int:
    if value is None:
        return 0
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


__all__ = ["JsonFileStorage", "MemoryStorage", "Storage"]
