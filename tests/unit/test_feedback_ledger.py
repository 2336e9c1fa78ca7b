"""Unit tests for FeedbackLedger -- write-once votes, audit log, vote markers."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from sigil_oracle.models.insight import (
    FailedState,
    InsightEntry,
    LoadingState,
    ReadyState,
    Vote,
)
from sigil_oracle.providers.store.memory_store import MemoryDurableStore
from sigil_oracle.services.feedback_ledger import FeedbackLedger
from sigil_oracle.services.insight_cache import InsightCache
from tests.conftest import FailingDurableStore, ManualClock

_T = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)  # noqa: UP017


def _ready(text: str = "Impact: ...") -> InsightEntry:
    return InsightEntry(state=ReadyState(text=text, fetched_at=_T))


class TestRecordFeedback:
    def test_vote_on_ready_entry(
        self, cache: InsightCache, ledger: FeedbackLedger, store: MemoryDurableStore
    ) -> None:
        cache.put("T-1", _ready("Impact: lateral movement"))

        assert ledger.record_feedback("T-1", Vote.UP) is True

        assert cache.get("T-1").feedback is Vote.UP
        assert store.get("sigil-feedback-pref:T-1") == "up"
        records = ledger.audit_log()
        assert len(records) == 1
        assert records[0].record_id == "T-1"
        assert records[0].vote is Vote.UP
        assert records[0].explanation_text == "Impact: lateral movement"

    def test_accepts_plain_string_vote(self, cache: InsightCache, ledger: FeedbackLedger) -> None:
        cache.put("T-1", _ready())
        assert ledger.record_feedback("T-1", "down") is True
        assert cache.get("T-1").feedback is Vote.DOWN

    def test_invalid_vote_raises(self, cache: InsightCache, ledger: FeedbackLedger) -> None:
        cache.put("T-1", _ready())
        with pytest.raises(ValueError):
            ledger.record_feedback("T-1", "sideways")

    def test_vote_is_write_once(self, cache: InsightCache, ledger: FeedbackLedger) -> None:
        cache.put("T-1", _ready())

        assert ledger.record_feedback("T-1", Vote.UP) is True
        assert ledger.record_feedback("T-1", Vote.DOWN) is False

        assert cache.get("T-1").feedback is Vote.UP
        assert len(ledger.audit_log()) == 1

    def test_absent_entry_is_ignored(self, cache: InsightCache, ledger: FeedbackLedger) -> None:
        assert ledger.record_feedback("T-404", Vote.UP) is False
        assert cache.get("T-404") is None
        assert ledger.audit_log() == []

    def test_loading_entry_is_ignored(self, cache: InsightCache, ledger: FeedbackLedger) -> None:
        cache.put("T-1", InsightEntry(state=LoadingState()))
        assert ledger.record_feedback("T-1", Vote.UP) is False
        assert cache.get("T-1").feedback is None

    def test_failed_entry_is_ignored(
        self, cache: InsightCache, ledger: FeedbackLedger, store: MemoryDurableStore
    ) -> None:
        cache.put("T-1", InsightEntry(state=FailedState(error="timeout", fetched_at=_T)))
        assert ledger.record_feedback("T-1", Vote.DOWN) is False
        assert store.get("sigil-feedback-pref:T-1") is None

    def test_audit_timestamp_comes_from_clock(
        self, cache: InsightCache, ledger: FeedbackLedger, clock: ManualClock
    ) -> None:
        clock.advance(minutes=5)
        cache.put("T-1", _ready())
        ledger.record_feedback("T-1", Vote.UP)
        assert ledger.audit_log()[0].timestamp == clock.now


class TestAuditLog:
    def test_retention_keeps_most_recent(
        self, cache: InsightCache, store: MemoryDurableStore
    ) -> None:
        ledger = FeedbackLedger(cache=cache, store=store, max_log_entries=3)
        for i in range(5):
            cache.put(f"T-{i}", _ready())
            assert ledger.record_feedback(f"T-{i}", Vote.UP) is True

        records = ledger.audit_log()
        assert [r.record_id for r in records] == ["T-2", "T-3", "T-4"]
        assert len(json.loads(store.get("sigil-oracle-feedback"))) == 3

    def test_default_retention_is_one_hundred(
        self, cache: InsightCache, store: MemoryDurableStore
    ) -> None:
        ledger = FeedbackLedger(cache=cache, store=store)
        for i in range(105):
            cache.put(f"T-{i}", _ready())
            ledger.record_feedback(f"T-{i}", Vote.DOWN)

        records = ledger.audit_log()
        assert len(records) == 100
        assert records[0].record_id == "T-5"
        assert records[-1].record_id == "T-104"

    def test_rejects_non_positive_retention(
        self, cache: InsightCache, store: MemoryDurableStore
    ) -> None:
        with pytest.raises(ValueError):
            FeedbackLedger(cache=cache, store=store, max_log_entries=0)

    def test_corrupt_log_is_not_overwritten(
        self, cache: InsightCache, ledger: FeedbackLedger, store: MemoryDurableStore
    ) -> None:
        store.set("sigil-oracle-feedback", "{corrupt")
        cache.put("T-1", _ready())

        assert ledger.record_feedback("T-1", Vote.UP) is True

        assert store.get("sigil-oracle-feedback") == "{corrupt"
        assert store.get("sigil-feedback-pref:T-1") == "up"
        assert cache.get("T-1").feedback is Vote.UP
        assert ledger.audit_log() == []

    def test_invalid_records_skipped_on_read(
        self, ledger: FeedbackLedger, store: MemoryDurableStore
    ) -> None:
        store.set(
            "sigil-oracle-feedback",
            json.dumps(
                [
                    {"timestamp": "2026-03-01T12:00:00Z", "record_id": "T-1", "vote": "up", "explanation_text": "x"},
                    {"record_id": "T-2"},
                ]
            ),
        )
        assert [r.record_id for r in ledger.audit_log()] == ["T-1"]

    def test_summary_counts(
        self, cache: InsightCache, ledger: FeedbackLedger, clock: ManualClock
    ) -> None:
        for rid, vote in [("T-1", Vote.UP), ("T-2", Vote.DOWN), ("R-1", Vote.UP)]:
            cache.put(rid, _ready())
            clock.advance(seconds=1)
            ledger.record_feedback(rid, vote)

        summary = ledger.summary()
        assert (summary.total, summary.up, summary.down) == (3, 2, 1)
        assert summary.last_vote_at == clock.now

    def test_summary_of_empty_log(self, ledger: FeedbackLedger) -> None:
        summary = ledger.summary()
        assert summary.total == 0
        assert summary.last_vote_at is None


class TestVoteMarkers:
    def test_remembered_vote_survives_cache_clear(
        self, cache: InsightCache, ledger: FeedbackLedger
    ) -> None:
        cache.put("T-1", _ready())
        ledger.record_feedback("T-1", Vote.DOWN)
        cache.clear()
        assert ledger.remembered_vote("T-1") is Vote.DOWN

    def test_no_marker(self, ledger: FeedbackLedger) -> None:
        assert ledger.remembered_vote("T-1") is None

    def test_invalid_marker_is_ignored(
        self, ledger: FeedbackLedger, store: MemoryDurableStore
    ) -> None:
        store.set("sigil-feedback-pref:T-1", "meh")
        assert ledger.remembered_vote("T-1") is None

    def test_marker_blocks_second_vote_on_entry_without_feedback(
        self, cache: InsightCache, ledger: FeedbackLedger, store: MemoryDurableStore
    ) -> None:
        # An earlier vote whose entry write never made it to the store.
        store.set("sigil-feedback-pref:T-1", "down")
        cache.put("T-1", _ready())

        assert ledger.record_feedback("T-1", Vote.UP) is False

        assert store.get("sigil-feedback-pref:T-1") == "down"
        assert cache.get("T-1").feedback is Vote.DOWN
        assert ledger.audit_log() == []

    def test_remembered_votes_lists_markers(
        self, cache: InsightCache, ledger: FeedbackLedger, store: MemoryDurableStore
    ) -> None:
        for record_id, vote in (("T-1", Vote.UP), ("R-7", Vote.DOWN)):
            cache.put(record_id, _ready())
            ledger.record_feedback(record_id, vote)
        cache.clear()
        store.set("sigil-feedback-pref:T-9", "meh")
        store.set("ops-feedback-pref:T-2", "up")

        assert ledger.remembered_votes() == {"T-1": Vote.UP, "R-7": Vote.DOWN}

    def test_remembered_votes_empty(self, ledger: FeedbackLedger) -> None:
        assert ledger.remembered_votes() == {}

    def test_namespace_applies_to_markers(self, store: MemoryDurableStore) -> None:
        cache = InsightCache(store=store, namespace="ops")
        ledger = FeedbackLedger(cache=cache, store=store, namespace="ops")
        cache.put("T-1", _ready())
        ledger.record_feedback("T-1", Vote.UP)
        assert store.get("ops-feedback-pref:T-1") == "up"
        assert store.get("ops-oracle-feedback") is not None


class TestLedgerStoreFailures:
    def test_vote_still_lands_on_entry(self, failing_store: FailingDurableStore) -> None:
        cache = InsightCache(store=failing_store)
        ledger = FeedbackLedger(cache=cache, store=failing_store)
        cache.put("T-1", _ready())

        assert ledger.record_feedback("T-1", Vote.UP) is True
        assert cache.get("T-1").feedback is Vote.UP
        assert ledger.remembered_vote("T-1") is None
        assert ledger.audit_log() == []
        assert ledger.remembered_votes() == {}
