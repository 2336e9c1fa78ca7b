"""In-memory durable store.

Dict-backed implementation of :class:`IDurableStore` for tests and
throwaway runs (``DURABLE_STORE_BACKEND=memory``).  Nothing survives the
process, but the serialization path is exactly the one the SQLite store
sees, so restore logic can be exercised by handing the same instance to a
second cache.
"""

from __future__ import annotations

from sigil_oracle.interfaces.durable_store import IDurableStore


class MemoryDurableStore(IDurableStore):
    """Durable store backed by a plain ``dict``."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def get_provider_name(self) -> str:
        return "memory_durable_store"
