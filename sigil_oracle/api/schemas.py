"""Pydantic request/response schemas for the Sigil Oracle API.

These models define the shape of every HTTP request and response body.
FastAPI uses them to validate incoming JSON (invalid bodies get a 422),
serialize responses via ``response_model=...``, and generate the OpenAPI
docs at ``/docs``.

Convention: request schemas end with "Request", response schemas end with
"Response".
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from sigil_oracle.models.feedback import FeedbackRecord
from sigil_oracle.models.insight import InsightEntry, Vote


class InsightResponse(BaseModel):
    """One record's explanation state, flattened for the dashboard."""

    record_id: str
    status: str
    text: str | None = None
    error: str | None = None
    fetched_at: datetime | None = None
    provenance: str | None = None
    model: str | None = None
    feedback: Vote | None = None

    @classmethod
    def from_entry(cls, record_id: str, entry: InsightEntry | None) -> InsightResponse:
        """Build a response; a record with no entry renders as ``idle``."""
        entry = entry or InsightEntry()
        return cls(
            record_id=record_id,
            status=entry.status,
            text=entry.text,
            error=entry.error,
            fetched_at=entry.fetched_at,
            provenance=getattr(entry.state, "provenance", None),
            model=getattr(entry.state, "model", None),
            feedback=entry.feedback,
        )


class InsightListResponse(BaseModel):
    """Every cached insight entry."""

    total: int
    insights: list[InsightResponse] = Field(default_factory=list)


class ExplainRequest(BaseModel):
    """Structured description of the record to explain."""

    context: dict[str, Any] = Field(default_factory=dict)


class FeedbackRequest(BaseModel):
    """A thumbs up/down vote on a ready explanation."""

    vote: Vote


class FeedbackResponse(BaseModel):
    """Result of a vote; ``recorded`` is false when the vote was ignored."""

    record_id: str
    recorded: bool
    feedback: Vote | None = None


class UnexplainedRequest(BaseModel):
    """Record IDs currently shown to the user."""

    record_ids: list[str] = Field(default_factory=list, max_length=1000)


class UnexplainedResponse(BaseModel):
    """The subset of requested IDs without a ready explanation."""

    record_ids: list[str] = Field(default_factory=list)


class FeedbackLogResponse(BaseModel):
    """Retained feedback audit records, oldest first."""

    total: int
    records: list[FeedbackRecord] = Field(default_factory=list)


class ClearResponse(BaseModel):
    """Result of clearing the insight cache."""

    cleared: int


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
