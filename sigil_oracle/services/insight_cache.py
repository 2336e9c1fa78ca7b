"""Insight cache -- record ID -> InsightEntry, written through to durable storage.

The cache is the single source of truth consumers read from.  Every
mutation rewrites the whole map under one durable key; the map is small
(one entry per explained record) so a full rewrite keeps restore logic
trivial.

Persistence is best-effort.  A failing store is logged and swallowed, and
the in-memory map stays authoritative for the rest of the session.

Entries are never expired here.  Staleness is decided at read time by the
request coordinator.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

import structlog
from pydantic import ValidationError

from sigil_oracle.interfaces.durable_store import IDurableStore
from sigil_oracle.models.insight import IdleState, InsightEntry
from sigil_oracle.services.storage_keys import DEFAULT_NAMESPACE, cache_key
from sigil_oracle.utils.logging import get_logger


class InsightCache:
    """In-memory insight map mirrored to an :class:`IDurableStore`.

    Parameters
    ----------
    store:
        Durable store the map is restored from and written to.
    namespace:
        Key prefix, see :mod:`sigil_oracle.services.storage_keys`.
    """

    def __init__(self, store: IDurableStore, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._store = store
        self._key = cache_key(namespace)
        self._entries: dict[str, InsightEntry] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)
        self._restore()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> InsightEntry | None:
        return self._entries.get(record_id)

    def put(self, record_id: str, entry: InsightEntry) -> None:
        """Replace the entry for *record_id* and persist the whole map."""
        self._entries[record_id] = entry
        self._persist()

    def clear(self) -> None:
        """Drop every entry and persist the empty map.

        Feedback audit records and vote markers live under other keys and
        are left alone.
        """
        dropped = len(self._entries)
        self._entries.clear()
        self._persist()
        self._logger.info("insight_cache_cleared", dropped=dropped)

    def entries(self) -> dict[str, InsightEntry]:
        """Return a snapshot copy of the whole map."""
        return dict(self._entries)

    def unexplained(self, record_ids: Iterable[str]) -> list[str]:
        """Return the IDs among *record_ids* without a ready explanation."""
        return [
            rid for rid in record_ids
            if (entry := self._entries.get(rid)) is None or entry.text is None
        ]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._entries

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        payload = {rid: entry.model_dump(mode="json") for rid, entry in self._entries.items()}
        try:
            self._store.set(self._key, json.dumps(payload))
        except Exception as exc:
            self._logger.warning(
                "insight_cache_persist_failed",
                store=self._store.get_provider_name(),
                entries=len(payload),
                error=str(exc)[:200],
            )

    def _restore(self) -> None:
        """Load the persisted map.

        A ``Loading`` entry has no provider call behind it after a restart,
        so it comes back as ``Idle`` with its vote kept.  Unparseable
        entries are dropped.
        """
        try:
            raw = self._store.get(self._key)
            data = json.loads(raw) if raw else {}
        except Exception as exc:
            self._logger.warning(
                "insight_cache_restore_failed",
                store=self._store.get_provider_name(),
                error=str(exc)[:200],
            )
            return

        if not isinstance(data, dict):
            self._logger.warning("insight_cache_restore_invalid", kind=type(data).__name__)
            return

        skipped = demoted = 0
        for record_id, value in data.items():
            try:
                entry = InsightEntry.model_validate(value)
            except ValidationError as exc:
                skipped += 1
                self._logger.warning(
                    "insight_entry_restore_skipped",
                    record_id=record_id,
                    error=str(exc)[:200],
                )
                continue
            if entry.is_loading:
                entry = entry.with_state(IdleState())
                demoted += 1
            self._entries[record_id] = entry

        if data:
            self._logger.info(
                "insight_cache_restored",
                entries=len(self._entries),
                skipped=skipped,
                demoted_loading=demoted,
            )
