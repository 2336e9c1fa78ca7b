"""Abstract base class for durable key-value stores.

Defines the persistence surface that survives process restarts.  The
insight cache, the feedback audit log and the per-record vote markers are
all stored as opaque serialized strings under namespaced keys.  The adapter
pattern allows the backend (SQLite file, in-memory dict, ...) to be swapped
without touching the services.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: SQLiteDurableStore, MemoryDurableStore
# Located in: sigil_oracle/providers/store/
class IDurableStore(ABC):
    """Contract for string key-value persistence.

    Unlike most provider interfaces, these methods are synchronous.  The
    request coordinator's dedup check is a read-then-write with no await in
    between, and every cache write happens inside that window, so a store
    call must never yield to the event loop.  Values are small JSON blobs,
    so blocking is negligible.

    Implementations raise :class:`~sigil_oracle.utils.errors.PersistenceError`
    (or let an ``OSError``/``sqlite3.Error`` escape); callers catch and log.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None`` if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """Return all stored keys starting with *prefix*."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
