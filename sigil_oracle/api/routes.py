"""FastAPI routes for the insight subsystem.

Route map (all prefixed with ``/api/v1``):

    Endpoint                          Method  Description
    ----------------------------------------------------------------------
    /insights                         GET     All cached insight entries
    /insights                         DELETE  Clear the insight cache
    /insights/unexplained             POST    IDs without a ready explanation
    /insights/{record_id}             GET     One entry (absent -> "idle")
    /insights/{record_id}/explain     POST    Request an explanation
    /insights/{record_id}/feedback    POST    Thumbs up/down on an explanation
    /feedback                         GET     Feedback audit log
    /feedback/summary                 GET     Vote counts
    /health                           GET     Health check + provider status

Services are resolved from ``app.state`` (populated at startup in
main.py's ``_build_all``) via ``Annotated[T, Depends(fn)]`` aliases.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, Request

from sigil_oracle.api.schemas import (
    ClearResponse,
    ExplainRequest,
    FeedbackLogResponse,
    FeedbackRequest,
    FeedbackResponse,
    HealthResponse,
    InsightListResponse,
    InsightResponse,
    UnexplainedRequest,
    UnexplainedResponse,
)
from sigil_oracle.models.feedback import FeedbackSummary
from sigil_oracle.services.feedback_ledger import FeedbackLedger
from sigil_oracle.services.insight_cache import InsightCache
from sigil_oracle.services.request_coordinator import RequestCoordinator
from sigil_oracle.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_coordinator(request: Request) -> RequestCoordinator:
    """Return the request coordinator from application state."""
    return request.app.state.coordinator


def _get_ledger(request: Request) -> FeedbackLedger:
    """Return the feedback ledger from application state."""
    return request.app.state.ledger


def _get_cache(request: Request) -> InsightCache:
    """Return the insight cache from application state."""
    return request.app.state.cache


CoordinatorDep = Annotated[RequestCoordinator, Depends(_get_coordinator)]
LedgerDep = Annotated[FeedbackLedger, Depends(_get_ledger)]
CacheDep = Annotated[InsightCache, Depends(_get_cache)]


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


@router.get(
    "/insights",
    response_model=InsightListResponse,
    summary="List cached insight entries",
)
async def list_insights(cache: CacheDep) -> InsightListResponse:
    entries = cache.entries()
    return InsightListResponse(
        total=len(entries),
        insights=[InsightResponse.from_entry(rid, entry) for rid, entry in entries.items()],
    )


@router.delete(
    "/insights",
    response_model=ClearResponse,
    summary="Clear the insight cache",
)
async def clear_insights(coordinator: CoordinatorDep, cache: CacheDep) -> ClearResponse:
    """Drop every cached explanation.  Votes are kept and come back on refetch."""
    cleared = len(cache)
    coordinator.clear_all()
    return ClearResponse(cleared=cleared)


@router.post(
    "/insights/unexplained",
    response_model=UnexplainedResponse,
    summary="Filter record IDs down to those without a ready explanation",
)
async def unexplained_insights(
    body: UnexplainedRequest,
    cache: CacheDep,
) -> UnexplainedResponse:
    return UnexplainedResponse(record_ids=cache.unexplained(body.record_ids))


@router.get(
    "/insights/{record_id}",
    response_model=InsightResponse,
    summary="Get one record's insight entry",
)
async def get_insight(record_id: str, coordinator: CoordinatorDep) -> InsightResponse:
    return InsightResponse.from_entry(record_id, coordinator.get_insight(record_id))


@router.post(
    "/insights/{record_id}/explain",
    response_model=InsightResponse,
    summary="Request an explanation for a record",
)
async def explain_insight(
    record_id: str,
    coordinator: CoordinatorDep,
    body: ExplainRequest | None = None,
    wait: Annotated[bool, Query(description="Wait for the provider call to finish")] = True,
) -> InsightResponse:
    """Apply the request policy for *record_id*.

    With ``wait=false`` the call returns right after scheduling, usually
    with a ``loading`` entry the client then polls.  A duplicate request
    while a call is in flight returns the ``loading`` entry either way.
    """
    context = body.context if body is not None else {}
    _logger.debug("explain_requested", record_id=record_id, wait=wait, context_keys=len(context))
    if wait:
        entry = await coordinator.request_insight(record_id, context)
    else:
        entry = coordinator.start_insight(record_id, context)
    return InsightResponse.from_entry(record_id, entry)


@router.post(
    "/insights/{record_id}/feedback",
    response_model=FeedbackResponse,
    summary="Vote on a ready explanation",
)
async def submit_feedback(
    record_id: str,
    body: FeedbackRequest,
    ledger: LedgerDep,
    coordinator: CoordinatorDep,
) -> FeedbackResponse:
    """Record a vote.  Votes are write-once; ignored votes return ``recorded=false``."""
    recorded = ledger.record_feedback(record_id, body.vote)
    entry = coordinator.get_insight(record_id)
    return FeedbackResponse(
        record_id=record_id,
        recorded=recorded,
        feedback=entry.feedback if entry is not None else None,
    )


# ---------------------------------------------------------------------------
# Feedback log
# ---------------------------------------------------------------------------


@router.get(
    "/feedback",
    response_model=FeedbackLogResponse,
    summary="Feedback audit log",
)
async def feedback_log(ledger: LedgerDep) -> FeedbackLogResponse:
    records = ledger.audit_log()
    return FeedbackLogResponse(total=len(records), records=records)


@router.get(
    "/feedback/summary",
    response_model=FeedbackSummary,
    summary="Vote counts over the retained audit log",
)
async def feedback_summary(ledger: LedgerDep) -> FeedbackSummary:
    return ledger.summary()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers = dict(getattr(request.app.state, "provider_registry", {}))
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is not None:
        providers["in_flight"] = len(coordinator.in_flight())
    return HealthResponse(status="healthy", version=_VERSION, providers=providers)
