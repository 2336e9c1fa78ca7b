"""Utility modules for Sigil Oracle.

- **errors** -- Domain-specific exception hierarchy rooted at SigilOracleError;
  providers wrap SDK failures in ExplanationError subclasses so the request
  coordinator can turn them into ``Failed`` insight entries.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **clock** -- UTC "now" and the ``Clock`` callable type injected into the
  coordinator and ledger.
"""

from sigil_oracle.utils.clock import Clock, utc_now
from sigil_oracle.utils.errors import (
    ConfigurationError,
    ExplanationError,
    LLMError,
    PersistenceError,
    ProviderUnavailableError,
    SigilOracleError,
)
from sigil_oracle.utils.logging import configure_logging, get_logger

__all__ = [
    "Clock",
    "utc_now",
    "ConfigurationError",
    "ExplanationError",
    "LLMError",
    "PersistenceError",
    "ProviderUnavailableError",
    "SigilOracleError",
    "configure_logging",
    "get_logger",
]
