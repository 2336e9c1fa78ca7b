"""Wall-clock helpers.

Freshness checks compare timezone-aware UTC datetimes.  Services accept a
``Clock`` callable so tests can pin "now" to exact instants.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)  # noqa: UP017
