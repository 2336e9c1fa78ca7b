"""Request coordinator -- dedup, freshness and retry policy for explanations.

Consumers (the threat list, the recommendation list, the CLI) never call an
explanation provider directly.  They ask the coordinator, which decides from
the insight cache alone whether a provider call is needed:

    entry Loading                  -> return it, a call is already in flight
    entry Ready and fresh          -> return it, cache hit
    absent / Idle / Failed / stale -> write Loading, call the provider,
                                      write Ready or Failed

The decision and the ``Loading`` write happen in :meth:`start_insight`, a
plain (non-async) method, so there is no await between the read and the
write and two consumers can never both start a call for the same record.
The provider call itself runs in an ``asyncio.Task`` tracked per record ID.
Consumers going away never cancel a task: once issued, a call always
writes a terminal entry, even if every consumer stopped waiting.  The only
cancellation is the optional timeout, which abandons an overlong call and
writes a Failed entry in its place.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any

import structlog

from sigil_oracle.interfaces.explanation_provider import IExplanationProvider
from sigil_oracle.models.insight import (
    FailedState,
    InsightEntry,
    LoadingState,
    ReadyState,
    Vote,
)
from sigil_oracle.services.feedback_ledger import FeedbackLedger
from sigil_oracle.services.insight_cache import InsightCache
from sigil_oracle.utils.clock import Clock, utc_now
from sigil_oracle.utils.errors import SigilOracleError
from sigil_oracle.utils.logging import get_logger

DEFAULT_TTL = timedelta(hours=24)

_TIMEOUT_MESSAGE = "timeout"
_EMPTY_RESPONSE_MESSAGE = "Received an empty response from the Oracle."
_SILENT_FAILURE_MESSAGE = "The Oracle is silent. The connection was disturbed."


def _failure_message(exc: BaseException) -> str:
    """Human-readable text stored on a Failed entry."""
    if isinstance(exc, SigilOracleError):
        return exc.message
    return str(exc) or _SILENT_FAILURE_MESSAGE


class RequestCoordinator:
    """Mediates between insight consumers and one explanation provider.

    Parameters
    ----------
    cache:
        The insight cache; the only state the coordinator reads.
    provider:
        The explanation provider to call on a miss.
    ledger:
        Optional feedback ledger.  When given, a record with no entry picks
        up its durable vote marker on refetch.
    ttl:
        Freshness window for Ready entries.
    clock:
        Source of "now" for ``fetched_at`` and freshness checks.
    timeout_seconds:
        Optional upper bound on a provider call.  A call running longer is
        cancelled and its entry becomes Failed with error ``"timeout"``.
        ``None`` (the default) lets a slow call keep its entry Loading until
        it resolves.
    """

    def __init__(
        self,
        cache: InsightCache,
        provider: IExplanationProvider,
        ledger: FeedbackLedger | None = None,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._cache = cache
        self._provider = provider
        self._ledger = ledger
        self._ttl = ttl
        self._clock = clock or utc_now
        self._timeout_seconds = timeout_seconds
        self._inflight: dict[str, asyncio.Task[InsightEntry]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    # ------------------------------------------------------------------
    # Consumer-facing operations
    # ------------------------------------------------------------------

    def get_insight(self, record_id: str) -> InsightEntry | None:
        """Return the current entry for *record_id* without side effects."""
        return self._cache.get(record_id)

    def start_insight(
        self,
        record_id: str,
        context: dict[str, Any] | None = None,
    ) -> InsightEntry:
        """Apply the request policy and return the entry immediately.

        Schedules a provider call when one is needed.  Must be called from
        a running event loop.
        """
        entry, _ = self._start(record_id, context)
        return entry

    async def request_insight(
        self,
        record_id: str,
        context: dict[str, Any] | None = None,
    ) -> InsightEntry:
        """Apply the request policy and return the resulting entry.

        If this call started a provider call, waits for it and returns the
        terminal (Ready or Failed) entry.  Duplicate requests and cache hits
        return at once.  Cancelling the caller does not cancel the
        provider call.
        """
        entry, task = self._start(record_id, context)
        if task is None:
            return entry
        return await asyncio.shield(task)

    async def wait_for(self, record_id: str) -> InsightEntry | None:
        """Wait for the in-flight call for *record_id*, if there is one."""
        task = self._inflight.get(record_id)
        if task is not None:
            return await asyncio.shield(task)
        return self._cache.get(record_id)

    def in_flight(self) -> set[str]:
        """Return the record IDs with an outstanding provider call."""
        return set(self._inflight)

    def clear_all(self) -> None:
        """Empty the insight cache.

        Calls already in flight still complete and write their result, and
        a request for such a record while its call runs is deduplicated
        against that call.  Vote markers survive, so a refetched record
        gets its vote back.
        """
        self._cache.clear()

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    def _start(
        self,
        record_id: str,
        context: dict[str, Any] | None,
    ) -> tuple[InsightEntry, asyncio.Task[InsightEntry] | None]:
        # Fail before touching the cache when there is no loop to run on.
        loop = asyncio.get_running_loop()

        entry = self._cache.get(record_id)
        running = self._inflight.get(record_id)
        if entry is None and running is not None and not running.done():
            # Cleared while its call is still running: put the Loading
            # entry back instead of starting a second call.
            entry = InsightEntry(state=LoadingState(), feedback=self._remembered_vote(record_id))
            self._cache.put(record_id, entry)
            self._logger.debug("insight_loading_restored", record_id=record_id)

        if entry is not None:
            if entry.is_loading:
                self._logger.debug("insight_request_deduplicated", record_id=record_id)
                return entry, None
            if entry.is_fresh(self._clock(), self._ttl):
                self._logger.debug("insight_cache_hit", record_id=record_id)
                return entry, None

        feedback = entry.feedback if entry is not None else None
        if feedback is None:
            feedback = self._remembered_vote(record_id)

        loading = InsightEntry(state=LoadingState(), feedback=feedback)
        self._cache.put(record_id, loading)

        task = loop.create_task(
            self._fetch(record_id, dict(context or {})),
            name=f"insight:{record_id}",
        )
        self._inflight[record_id] = task
        task.add_done_callback(lambda t: self._forget(record_id, t))

        self._logger.info(
            "insight_fetch_started",
            record_id=record_id,
            previous=entry.status if entry is not None else None,
            provider=self._provider.get_provider_name(),
        )
        return loading, task

    async def _fetch(self, record_id: str, context: dict[str, Any]) -> InsightEntry:
        try:
            call = self._provider.explain(record_id, context)
            if self._timeout_seconds is not None:
                explanation = await asyncio.wait_for(call, timeout=self._timeout_seconds)
            else:
                explanation = await call
            if not explanation.text.strip():
                raise ValueError(_EMPTY_RESPONSE_MESSAGE)
        except asyncio.TimeoutError:
            state: ReadyState | FailedState = FailedState(
                error=_TIMEOUT_MESSAGE, fetched_at=self._clock()
            )
            self._logger.warning(
                "insight_fetch_timed_out",
                record_id=record_id,
                timeout_seconds=self._timeout_seconds,
            )
        except Exception as exc:
            state = FailedState(error=_failure_message(exc), fetched_at=self._clock())
            self._logger.warning(
                "insight_fetch_failed",
                record_id=record_id,
                error_type=type(exc).__name__,
                error=state.error[:200],
            )
        else:
            state = ReadyState(
                text=explanation.text,
                fetched_at=self._clock(),
                provenance=explanation.provenance,
                model=explanation.model,
            )
            self._logger.info(
                "insight_fetch_succeeded",
                record_id=record_id,
                chars=len(explanation.text),
                model=explanation.model,
            )

        # The cache may have been cleared (or voted on) while we waited.
        current = self._cache.get(record_id)
        feedback = current.feedback if current is not None else self._remembered_vote(record_id)
        terminal = InsightEntry(state=state, feedback=feedback)
        self._cache.put(record_id, terminal)
        return terminal

    def _remembered_vote(self, record_id: str) -> Vote | None:
        if self._ledger is None:
            return None
        return self._ledger.remembered_vote(record_id)

    def _forget(self, record_id: str, task: asyncio.Task[InsightEntry]) -> None:
        if self._inflight.get(record_id) is task:
            del self._inflight[record_id]
        if task.cancelled():
            self._logger.warning("insight_fetch_cancelled", record_id=record_id)
