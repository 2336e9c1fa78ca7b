"""Feedback ledger -- one immutable thumbs up/down per explanation.

A vote is recorded three ways:

1. on the insight entry itself (``feedback``), so the panel can render it;
2. as an append to the bounded feedback audit log;
3. as a standalone per-record vote marker, so the vote outlives a cache
   clear.  When the same record is explained again, the request
   coordinator restores the marker onto the new entry and the user cannot
   vote a second time.

Rejected votes (unknown record, no completed explanation, already voted)
are silent no-ops.  There is no retraction or vote change.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from pydantic import ValidationError

from sigil_oracle.interfaces.durable_store import IDurableStore
from sigil_oracle.models.feedback import FeedbackRecord, FeedbackSummary
from sigil_oracle.models.insight import Vote
from sigil_oracle.services.insight_cache import InsightCache
from sigil_oracle.services.storage_keys import (
    DEFAULT_NAMESPACE,
    feedback_log_key,
    vote_marker_key,
    vote_marker_prefix,
)
from sigil_oracle.utils.clock import Clock, utc_now
from sigil_oracle.utils.logging import get_logger

DEFAULT_MAX_LOG_ENTRIES = 100


class FeedbackLedger:
    """Records votes on ready explanations.

    Parameters
    ----------
    cache:
        The insight cache holding the entries being voted on.
    store:
        Durable store for the audit log and vote markers.
    namespace:
        Key prefix, see :mod:`sigil_oracle.services.storage_keys`.
    max_log_entries:
        Audit log retention: only the most recent records are kept.
    clock:
        Source of "now" for audit timestamps.
    """

    def __init__(
        self,
        cache: InsightCache,
        store: IDurableStore,
        namespace: str = DEFAULT_NAMESPACE,
        max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES,
        clock: Clock | None = None,
    ) -> None:
        if max_log_entries < 1:
            msg = f"max_log_entries must be positive, got {max_log_entries}"
            raise ValueError(msg)
        self._cache = cache
        self._store = store
        self._namespace = namespace
        self._log_key = feedback_log_key(namespace)
        self._max_log_entries = max_log_entries
        self._clock = clock or utc_now
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    def record_feedback(self, record_id: str, vote: Vote | str) -> bool:
        """Attach *vote* to the entry for *record_id*.

        Returns ``True`` when the vote was recorded and ``False`` when it
        was ignored.  A durable vote marker for *record_id* counts as an
        earlier vote even when the entry itself carries none.  Raises
        ``ValueError`` only for a vote that is neither ``"up"`` nor ``"down"``.
        """
        vote = Vote(vote)
        entry = self._cache.get(record_id)

        if entry is None:
            self._ignored(record_id, vote, "no_entry")
            return False
        if entry.text is None:
            self._ignored(record_id, vote, "not_ready")
            return False
        if entry.feedback is not None:
            self._ignored(record_id, vote, "already_voted")
            return False
        remembered = self.remembered_vote(record_id)
        if remembered is not None:
            # The marker outlived the entry's vote; restore it onto the entry.
            self._cache.put(record_id, entry.with_feedback(remembered))
            self._ignored(record_id, vote, "already_voted")
            return False

        record = FeedbackRecord(
            timestamp=self._clock(),
            record_id=record_id,
            vote=vote,
            explanation_text=entry.text,
        )
        self._append_to_log(record)
        self._write_marker(record_id, vote)
        self._cache.put(record_id, entry.with_feedback(vote))

        self._logger.info("feedback_recorded", record_id=record_id, vote=vote.value)
        return True

    def remembered_vote(self, record_id: str) -> Vote | None:
        """Return the durable vote marker for *record_id*, if any."""
        try:
            raw = self._store.get(vote_marker_key(record_id, self._namespace))
        except Exception as exc:
            self._logger.warning(
                "vote_marker_read_failed",
                record_id=record_id,
                error=str(exc)[:200],
            )
            return None
        if raw is None:
            return None
        try:
            return Vote(raw)
        except ValueError:
            self._logger.warning("vote_marker_invalid", record_id=record_id, value=raw[:20])
            return None

    def remembered_votes(self) -> dict[str, Vote]:
        """Return every durable vote marker, keyed by record ID.

        Covers records whose entries were cleared from the cache.  Markers
        that do not hold a valid vote are skipped.
        """
        prefix = vote_marker_prefix(self._namespace)
        try:
            keys = self._store.keys(prefix)
        except Exception as exc:
            self._logger.warning("vote_markers_list_failed", error=str(exc)[:200])
            return {}

        votes: dict[str, Vote] = {}
        for key in keys:
            record_id = key[len(prefix):]
            vote = self.remembered_vote(record_id)
            if vote is not None:
                votes[record_id] = vote
        return votes

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def audit_log(self) -> list[FeedbackRecord]:
        """Return the retained audit records, oldest first."""
        try:
            raw_records = self._read_raw_log()
        except Exception as exc:
            self._logger.warning("feedback_log_read_failed", error=str(exc)[:200])
            return []

        records: list[FeedbackRecord] = []
        for item in raw_records:
            try:
                records.append(FeedbackRecord.model_validate(item))
            except ValidationError:
                self._logger.debug("feedback_log_record_skipped")
        return records

    def summary(self) -> FeedbackSummary:
        """Count votes over the retained audit log."""
        records = self.audit_log()
        up = sum(1 for r in records if r.vote is Vote.UP)
        return FeedbackSummary(
            total=len(records),
            up=up,
            down=len(records) - up,
            last_vote_at=records[-1].timestamp if records else None,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_raw_log(self) -> list[Any]:
        raw = self._store.get(self._log_key)
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            msg = f"feedback log is a {type(data).__name__}, expected a list"
            raise ValueError(msg)
        return data

    def _append_to_log(self, record: FeedbackRecord) -> None:
        # Existing records are carried over untouched; if the log cannot
        # be read it is not rewritten, so a bad read never truncates it.
        try:
            raw_records = self._read_raw_log()
            raw_records.append(record.model_dump(mode="json"))
            retained = raw_records[-self._max_log_entries:]
            self._store.set(self._log_key, json.dumps(retained))
        except Exception as exc:
            self._logger.warning(
                "feedback_log_append_failed",
                record_id=record.record_id,
                error=str(exc)[:200],
            )

    def _write_marker(self, record_id: str, vote: Vote) -> None:
        try:
            self._store.set(vote_marker_key(record_id, self._namespace), vote.value)
        except Exception as exc:
            self._logger.warning(
                "vote_marker_write_failed",
                record_id=record_id,
                error=str(exc)[:200],
            )

    def _ignored(self, record_id: str, vote: Vote, reason: str) -> None:
        self._logger.debug(
            "feedback_ignored",
            record_id=record_id,
            vote=vote.value,
            reason=reason,
        )
