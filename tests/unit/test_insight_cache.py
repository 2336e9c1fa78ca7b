"""Unit tests for InsightCache -- write-through persistence and restore."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sigil_oracle.models.insight import (
    FailedState,
    InsightEntry,
    LoadingState,
    ReadyState,
    Vote,
)
from sigil_oracle.providers.store.memory_store import MemoryDurableStore
from sigil_oracle.services.insight_cache import InsightCache
from tests.conftest import FailingDurableStore

_T = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)  # noqa: UP017


def _ready(text: str = "Impact: ...") -> InsightEntry:
    return InsightEntry(state=ReadyState(text=text, fetched_at=_T, model="fake-model"))


class TestInsightCacheBasics:
    def test_empty_on_fresh_store(self, cache: InsightCache) -> None:
        assert len(cache) == 0
        assert cache.get("T-1") is None
        assert "T-1" not in cache

    def test_put_replaces_wholesale(self, cache: InsightCache) -> None:
        cache.put("T-1", InsightEntry(state=LoadingState(), feedback=Vote.UP))
        cache.put("T-1", _ready())
        entry = cache.get("T-1")
        assert entry is not None
        assert entry.text == "Impact: ..."
        assert entry.feedback is None

    def test_entries_is_a_snapshot(self, cache: InsightCache) -> None:
        cache.put("T-1", _ready())
        snapshot = cache.entries()
        snapshot.pop("T-1")
        assert "T-1" in cache

    def test_unexplained_filters_ready_entries(self, cache: InsightCache) -> None:
        cache.put("T-1", _ready())
        cache.put("T-2", InsightEntry(state=FailedState(error="timeout", fetched_at=_T)))
        cache.put("T-3", InsightEntry(state=LoadingState()))
        assert cache.unexplained(["T-1", "T-2", "T-3", "T-4"]) == ["T-2", "T-3", "T-4"]


class TestInsightCachePersistence:
    def test_every_put_writes_the_whole_map(
        self, cache: InsightCache, store: MemoryDurableStore
    ) -> None:
        cache.put("T-1", _ready())
        cache.put("R-7", InsightEntry(state=FailedState(error="boom", fetched_at=_T)))

        persisted = json.loads(store.get("sigil-oracle-cache"))
        assert set(persisted) == {"T-1", "R-7"}
        assert persisted["T-1"]["state"]["status"] == "ready"
        assert persisted["R-7"]["state"]["error"] == "boom"

    def test_restore_from_same_store(self, cache: InsightCache, store: MemoryDurableStore) -> None:
        cache.put("T-1", _ready().with_feedback(Vote.DOWN))

        restored = InsightCache(store=store)
        entry = restored.get("T-1")
        assert entry is not None
        assert entry.text == "Impact: ..."
        assert entry.feedback is Vote.DOWN
        assert entry.fetched_at == _T

    def test_restore_demotes_loading_to_idle(
        self, cache: InsightCache, store: MemoryDurableStore
    ) -> None:
        cache.put("T-1", InsightEntry(state=LoadingState(), feedback=Vote.UP))

        restored = InsightCache(store=store)
        entry = restored.get("T-1")
        assert entry is not None
        assert entry.status == "idle"
        assert entry.feedback is Vote.UP

    def test_restore_skips_invalid_entries(self) -> None:
        store = MemoryDurableStore(
            {
                "sigil-oracle-cache": json.dumps(
                    {
                        "T-1": _ready().model_dump(mode="json"),
                        "T-2": {"state": {"status": "exploded"}},
                        "T-3": "not an entry",
                    }
                )
            }
        )
        restored = InsightCache(store=store)
        assert list(restored.entries()) == ["T-1"]

    def test_restore_tolerates_corrupt_json(self) -> None:
        store = MemoryDurableStore({"sigil-oracle-cache": "{not json"})
        assert len(InsightCache(store=store)) == 0

    def test_restore_tolerates_wrong_shape(self) -> None:
        store = MemoryDurableStore({"sigil-oracle-cache": "[1, 2, 3]"})
        assert len(InsightCache(store=store)) == 0

    def test_clear_persists_empty_map_and_keeps_other_keys(
        self, cache: InsightCache, store: MemoryDurableStore
    ) -> None:
        store.set("sigil-feedback-pref:T-1", "up")
        store.set("sigil-oracle-feedback", "[]")
        cache.put("T-1", _ready())

        cache.clear()

        assert len(cache) == 0
        assert json.loads(store.get("sigil-oracle-cache")) == {}
        assert store.get("sigil-feedback-pref:T-1") == "up"
        assert store.get("sigil-oracle-feedback") == "[]"

    def test_namespaces_do_not_collide(self, store: MemoryDurableStore) -> None:
        InsightCache(store=store, namespace="alpha").put("T-1", _ready())
        assert len(InsightCache(store=store, namespace="beta")) == 0
        assert len(InsightCache(store=store, namespace="alpha")) == 1


class TestInsightCacheStoreFailures:
    def test_failing_store_on_restore(self, failing_store: FailingDurableStore) -> None:
        cache = InsightCache(store=failing_store)
        assert len(cache) == 0

    def test_failing_store_on_write_keeps_memory_authoritative(
        self, failing_store: FailingDurableStore
    ) -> None:
        cache = InsightCache(store=failing_store)
        cache.put("T-1", _ready())
        cache.clear()
        cache.put("T-2", _ready("second"))

        entry = cache.get("T-2")
        assert entry is not None
        assert entry.text == "second"
        # One read on restore plus three writes, all attempted.
        assert failing_store.attempts == 4
