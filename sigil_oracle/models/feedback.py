"""Feedback audit models.

Every accepted vote appends one :class:`FeedbackRecord` to the audit log.
The log is append-only and keeps only the most recent records (retention
is applied by :class:`~sigil_oracle.services.feedback_ledger.FeedbackLedger`).
The explanation text is copied into the record so the log stays meaningful
after the insight cache has been cleared or the explanation refetched.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from sigil_oracle.models.insight import UtcDatetime, Vote


class FeedbackRecord(BaseModel):
    """One vote, as it was cast."""

    model_config = ConfigDict(frozen=True)

    timestamp: UtcDatetime
    record_id: str
    vote: Vote
    explanation_text: str


class FeedbackSummary(BaseModel):
    """Vote counts over the retained audit log."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    up: int = Field(default=0, ge=0)
    down: int = Field(default=0, ge=0)
    last_vote_at: datetime | None = None
