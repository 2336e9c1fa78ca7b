"""Sigil Oracle domain models -- re-exports all public model classes.

    - insight.py   -- Insight entry state machine (Idle/Loading/Ready/Failed),
                      votes, and the provider's Explanation payload
    - feedback.py  -- Feedback audit log records and vote summary
"""

from __future__ import annotations

from sigil_oracle.models.feedback import FeedbackRecord, FeedbackSummary
from sigil_oracle.models.insight import (
    Explanation,
    FailedState,
    IdleState,
    InsightEntry,
    InsightState,
    LoadingState,
    ReadyState,
    Vote,
)

__all__ = [
    "Explanation",
    "FailedState",
    "FeedbackRecord",
    "FeedbackSummary",
    "IdleState",
    "InsightEntry",
    "InsightState",
    "LoadingState",
    "ReadyState",
    "Vote",
]
