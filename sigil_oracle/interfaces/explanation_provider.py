"""Abstract base class for explanation providers.

An explanation provider turns a record ID plus a structured context (the
threat's fields, the current security signals, ...) into natural-language
text.  It is the one expensive, failable, asynchronous call the request
coordinator mediates.  Latency and failure are unpredictable and calls for
different records complete in no particular order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sigil_oracle.models.insight import Explanation


# Concrete implementations: LLMExplanationProvider, HTTPExplanationProvider
# Located in: sigil_oracle/providers/explanation/
class IExplanationProvider(ABC):
    """Contract for services that explain a dashboard record."""

    @abstractmethod
    async def explain(self, record_id: str, context: dict[str, Any]) -> Explanation:
        """Produce an explanation for *record_id*.

        Parameters
        ----------
        record_id:
            ID of the threat or recommendation being explained.
        context:
            Structured key/value description of the record.

        Returns
        -------
        Explanation
            The explanation text and, when known, its provenance and model.

        Raises
        ------
        sigil_oracle.utils.errors.ExplanationError
            With a human-readable message when no explanation could be
            produced.  The coordinator stores that message on the entry.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured well enough to try."""
