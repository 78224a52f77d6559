"""Durable global variable storage contract and in-process implementations."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping


class VariableStorage(ABC):
    """Key/value store for variables that outlive a single document.

    Every operation is a coroutine, so network- or disk-backed stores and
    in-memory ones share one interface.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value for *key*, or ``None`` if it is not set."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def get_all(self) -> dict[str, str]:
        """Return a snapshot of every stored variable."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    @abstractmethod
    async def clear(self) -> None: ...


class InMemoryVariableStorage(VariableStorage):
    """Thread-safe dictionary-backed storage.

    Args:
        initial: Optional variables to seed the store with.
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    async def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    async def get_all(self) -> dict[str, str]:
        with self._lock:
            return dict(self._data)

    def snapshot(self) -> dict[str, str]:
        """Synchronous copy of every stored variable."""
        with self._lock:
            return dict(self._data)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    async def clear(self) -> None:
        with self._lock:
            self._data.clear()


class MappingVariableStorage(VariableStorage):
    """Adapt any synchronous mutable mapping, such as a :mod:`shelve` file.

    Values are coerced to ``str`` when read back.
    """

    def __init__(self, mapping: MutableMapping[str, str]) -> None:
        self._mapping = mapping

    async def get(self, key: str) -> str | None:
        value = self._mapping.get(key)
        return None if value is None else str(value)

    async def set(self, key: str, value: str) -> None:
        self._mapping[key] = value

    async def get_all(self) -> dict[str, str]:
        return {key: str(value) for key, value in self._mapping.items()}

    async def delete(self, key: str) -> None:
        self._mapping.pop(key, None)

    async def clear(self) -> None:
        self._mapping.clear()
