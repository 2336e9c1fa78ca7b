"""Shared pytest fixtures for the Sigil Oracle test suite."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from sigil_oracle.interfaces.durable_store import IDurableStore
from sigil_oracle.interfaces.explanation_provider import IExplanationProvider
from sigil_oracle.models.insight import Explanation
from sigil_oracle.providers.store.memory_store import MemoryDurableStore
from sigil_oracle.services.feedback_ledger import FeedbackLedger
from sigil_oracle.services.insight_cache import InsightCache
from sigil_oracle.services.request_coordinator import RequestCoordinator
from sigil_oracle.utils.errors import PersistenceError

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FailingDurableStore(IDurableStore):
    """A durable store whose every operation fails."""

    def __init__(self) -> None:
        self.attempts = 0

    def _fail(self) -> None:
        self.attempts += 1
        raise PersistenceError(message="disk on fire", provider_name="failing_store")

    def get(self, key: str) -> str | None:
        self._fail()

    def set(self, key: str, value: str) -> None:
        self._fail()

    def keys(self, prefix: str = "") -> list[str]:
        self._fail()

    def get_provider_name(self) -> str:
        return "failing_store"


class ControlledProvider(IExplanationProvider):
    """Explanation provider whose calls resolve when the test says so.

    Every call is recorded.  ``hold(record_id)`` makes calls for that ID
    block until ``release(record_id)``; held calls that get cancelled are
    listed in ``cancelled``.  ``outcomes`` maps record IDs to the text to
    return or the exception to raise.
    """

    def __init__(self, default_text: str = "Impact: ...") -> None:
        self.default_text = default_text
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.outcomes: dict[str, str | Exception] = {}
        self.cancelled: list[str] = []
        self._gates: dict[str, asyncio.Event] = {}

    def hold(self, record_id: str) -> None:
        self._gates[record_id] = asyncio.Event()

    def release(self, record_id: str) -> None:
        self._gates.pop(record_id).set()

    def calls_for(self, record_id: str) -> int:
        return sum(1 for rid, _ in self.calls if rid == record_id)

    async def explain(self, record_id: str, context: dict[str, Any]) -> Explanation:
        self.calls.append((record_id, dict(context)))
        gate = self._gates.get(record_id)
        if gate is not None:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                self.cancelled.append(record_id)
                raise
        outcome = self.outcomes.get(record_id, self.default_text)
        if isinstance(outcome, Exception):
            raise outcome
        return Explanation(text=outcome, provenance="test", model="fake-model")

    def get_provider_name(self) -> str:
        return "controlled"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def store() -> MemoryDurableStore:
    return MemoryDurableStore()


@pytest.fixture()
def failing_store() -> FailingDurableStore:
    return FailingDurableStore()


@pytest.fixture()
def provider() -> ControlledProvider:
    return ControlledProvider()


@pytest.fixture()
def cache(store: MemoryDurableStore) -> InsightCache:
    return InsightCache(store=store)


@pytest.fixture()
def ledger(cache: InsightCache, store: MemoryDurableStore, clock: ManualClock) -> FeedbackLedger:
    return FeedbackLedger(cache=cache, store=store, clock=clock)


@pytest.fixture()
def coordinator(
    cache: InsightCache,
    provider: ControlledProvider,
    ledger: FeedbackLedger,
    clock: ManualClock,
) -> RequestCoordinator:
    return RequestCoordinator(cache=cache, provider=provider, ledger=ledger, clock=clock)
