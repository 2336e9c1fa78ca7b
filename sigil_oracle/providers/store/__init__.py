"""Durable store providers.

SQLiteDurableStore is the default: one key-value table in ``data/oracle.db``
holding the oracle cache map, the feedback audit log and vote markers.
MemoryDurableStore keeps the same data in a dict for tests and ephemeral
runs.
"""

from sigil_oracle.providers.store.memory_store import MemoryDurableStore
from sigil_oracle.providers.store.sqlite_store import SQLiteDurableStore

__all__ = ["MemoryDurableStore", "SQLiteDurableStore"]
