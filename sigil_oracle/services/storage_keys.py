"""Durable store key layout.

All keys share a namespace prefix (``sigil`` by default) so several
dashboards can share one store:

    {ns}-oracle-cache              JSON object  record_id -> InsightEntry
    {ns}-oracle-feedback           JSON array   FeedbackRecord, oldest first
    {ns}-feedback-pref:{record_id} vote marker  "up" | "down"
"""

from __future__ import annotations

DEFAULT_NAMESPACE = "sigil"


def cache_key(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}-oracle-cache"


def feedback_log_key(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}-oracle-feedback"


def vote_marker_prefix(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}-feedback-pref:"


def vote_marker_key(record_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{vote_marker_prefix(namespace)}{record_id}"
