"""Core insight services.

    - insight_cache.py        -- record ID -> InsightEntry, written through
                                 to the durable store
    - feedback_ledger.py      -- write-once votes, audit log, vote markers
    - request_coordinator.py  -- dedup, TTL and retry policy in front of an
                                 explanation provider
    - storage_keys.py         -- durable key layout shared by the above
"""

from sigil_oracle.services.feedback_ledger import FeedbackLedger
from sigil_oracle.services.insight_cache import InsightCache
from sigil_oracle.services.request_coordinator import RequestCoordinator

__all__ = ["FeedbackLedger", "InsightCache", "RequestCoordinator"]
