"""Custom exception hierarchy for Sigil Oracle.

All application exceptions inherit from :class:`SigilOracleError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "anthropic", "http-explain") caused the
failure.

The hierarchy is organized by subsystem boundary:

    SigilOracleError  (base -- catch-all for any Sigil Oracle error)
    +-- ExplanationError         (an explanation could not be produced)
    |   +-- LLMError             (any LLM API call failure)
    |   +-- ProviderUnavailableError (external service down / unreachable)
    +-- PersistenceError         (durable store read/write failure)
    +-- ConfigurationError       (startup / missing config)

The request coordinator turns any :class:`ExplanationError` into a
``Failed`` insight entry; persistence errors are logged and swallowed by
the insight cache and feedback ledger.  Only configuration errors are
expected to reach the top of the process.
"""


class SigilOracleError(Exception):
    """Base exception for all Sigil Oracle errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Explanation provider errors
# ---------------------------------------------------------------------------

class ExplanationError(SigilOracleError):
    """Raised when an explanation provider cannot produce an explanation.

    The ``message`` is what the dashboard shows inline in place of the
    explanation, so keep it human-readable.
    """

    def __init__(
        self,
        message: str = "Explanation request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(ExplanationError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(ExplanationError):
    """Raised when an external explanation service is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence / configuration errors
# ---------------------------------------------------------------------------

class PersistenceError(SigilOracleError):
    """Raised by a durable store when a read or write cannot complete."""

    def __init__(
        self,
        message: str = "Durable store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(SigilOracleError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
