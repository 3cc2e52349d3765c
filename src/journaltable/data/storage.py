"""Key/value storage port.

The table keeps its settings (and, without a record store, its dataset) in a
host-provided key/value store. All access is async. Values are plain
JSON-like structures and are deep-copied on the way in and out so callers can
never alias stored state.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from ..errors import StorageAdapterError

# Methods every storage adapter must provide
REQUIRED_METHODS = ("get", "set", "delete")


class Storage(ABC):
    """Abstract base class for key/value storage adapters."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return a copy of the value stored under key, or None."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a copy of value under key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key (no-op if absent)."""

    async def list(self, prefix: str = "") -> list[tuple[str, Any]]:
        """Return (key, value) pairs whose key starts with prefix.

        Optional; adapters that cannot enumerate raise NotImplementedError.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support list()")


def assert_storage(storage: Any) -> None:
    """Fail at wiring time when storage lacks get/set/delete.

    Duck-typed: any object with callable get, set and delete is accepted.

    Raises:
        StorageAdapterError: Naming the first missing method.
    """
    for method in REQUIRED_METHODS:
        if not callable(getattr(storage, method, None)):
            raise StorageAdapterError(f"Storage adapter must implement {method}(...)")


class MemoryStorage(Storage):
    """In-memory storage adapter.

    Used by the demo app and tests. Optionally seeded with initial values.
    """

    def __init__(self, seed: Mapping[str, Any] | None = None):
        self._db: dict[str, Any] = {k: copy.deepcopy(v) for k, v in (seed or {}).items()}

    async def get(self, key: str) -> Any | None:
        if key not in self._db:
            return None
        return copy.deepcopy(self._db[key])

    async def set(self, key: str, value: Any) -> None:
        self._db[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._db.pop(key, None)

    async def list(self, prefix: str = "") -> list[tuple[str, Any]]:
        return [(k, copy.deepcopy(v)) for k, v in self._db.items() if k.startswith(prefix)]

    def __contains__(self, key: str) -> bool:
        return key in self._db

    def __len__(self) -> int:
        return len(self._db)
