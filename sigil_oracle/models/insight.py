"""Insight entry models -- the per-record explanation state machine.

Every record the dashboard can explain (a threat, a recommended fix) owns at
most one :class:`InsightEntry`.  The entry's ``state`` is an explicit tagged
variant so "text and error are never both present" holds by construction:

    Idle -> Loading -> Ready{text, fetched_at}
                    -> Failed{error, fetched_at}

``Ready`` and ``Failed`` can both go back to ``Loading`` (``Failed``
always, ``Ready`` only once its freshness window has elapsed -- see
:meth:`InsightEntry.is_fresh`).

All models are frozen; transitions produce new entries via
``model_copy(update={...})``, the same way the request coordinator and the
feedback ledger write them into the insight cache.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


class Vote(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """A user's verdict on an explanation ("was this helpful?")."""

    UP = "up"
    DOWN = "down"


def _assume_utc(value: datetime) -> datetime:
    # Naive timestamps in old persisted records are taken as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)  # noqa: UP017
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


# ---------------------------------------------------------------------------
# State variants
# ---------------------------------------------------------------------------
class IdleState(BaseModel):
    """No explanation has been requested (or a restored entry lost its call)."""

    model_config = ConfigDict(frozen=True)

    status: Literal["idle"] = "idle"


class LoadingState(BaseModel):
    """A provider call for this record is outstanding."""

    model_config = ConfigDict(frozen=True)

    status: Literal["loading"] = "loading"


class ReadyState(BaseModel):
    """The provider returned an explanation."""

    model_config = ConfigDict(frozen=True)

    status: Literal["ready"] = "ready"
    text: str
    fetched_at: UtcDatetime
    # Where the explanation came from, when the provider reports it.
    provenance: str | None = None
    model: str | None = None


class FailedState(BaseModel):
    """The last provider call failed; ``error`` is shown in place of the text."""

    model_config = ConfigDict(frozen=True)

    status: Literal["failed"] = "failed"
    error: str
    fetched_at: UtcDatetime


InsightState = Annotated[
    Union[IdleState, LoadingState, ReadyState, FailedState],  # noqa: UP007
    Field(discriminator="status"),
]


# ---------------------------------------------------------------------------
# InsightEntry
# ---------------------------------------------------------------------------
class InsightEntry(BaseModel):
    """Cached explanation state for a single record.

    ``feedback`` is write-once: the feedback ledger refuses to overwrite a
    non-``None`` vote, and the coordinator carries it across refetches.
    """

    model_config = ConfigDict(frozen=True)

    state: InsightState = Field(default_factory=IdleState)
    feedback: Vote | None = None

    @property
    def status(self) -> str:
        return self.state.status

    @property
    def is_loading(self) -> bool:
        return self.state.status == "loading"

    @property
    def text(self) -> str | None:
        return self.state.text if isinstance(self.state, ReadyState) else None

    @property
    def error(self) -> str | None:
        return self.state.error if isinstance(self.state, FailedState) else None

    @property
    def fetched_at(self) -> datetime | None:
        if isinstance(self.state, (ReadyState, FailedState)):
            return self.state.fetched_at
        return None

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        """Return ``True`` for a ``Ready`` entry younger than *ttl*.

        Failed entries are never fresh, so a failure is always retried on
        the next request.
        """
        if not isinstance(self.state, ReadyState):
            return False
        return now - self.state.fetched_at < ttl

    def with_state(self, state: IdleState | LoadingState | ReadyState | FailedState) -> InsightEntry:
        """Return a copy in *state*, keeping the feedback vote."""
        return self.model_copy(update={"state": state})

    def with_feedback(self, vote: Vote) -> InsightEntry:
        return self.model_copy(update={"feedback": vote})


class Explanation(BaseModel):
    """What an explanation provider hands back on success."""

    model_config = ConfigDict(frozen=True)

    text: str
    provenance: str | None = None
    model: str | None = None
