"""Explanation provider that delegates to a remote explain endpoint.

POSTs ``{"recId": ..., "context": {...}}`` and takes the response body as
the explanation text.  The endpoint reports where the text came from in
the ``X-Explain-Provenance`` and ``X-Explain-Model`` headers.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from sigil_oracle.interfaces.explanation_provider import IExplanationProvider
from sigil_oracle.models.insight import Explanation
from sigil_oracle.utils.errors import ExplanationError, ProviderUnavailableError

PROVENANCE_HEADER = "X-Explain-Provenance"
MODEL_HEADER = "X-Explain-Model"


class HTTPExplanationProvider(IExplanationProvider):
    """Explains records via an HTTP explain endpoint.

    The ``httpx.AsyncClient`` is injected for testability and connection
    pooling; main.py owns it and closes it on shutdown.
    """

    def __init__(
        self,
        endpoint_url: str,
        http_client: httpx.AsyncClient,
        max_chars: int = 4000,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._client = http_client
        self._max_chars = max_chars
        self._logger: structlog.BoundLogger = structlog.get_logger(logger_name=__name__)

    async def explain(self, record_id: str, context: dict[str, Any]) -> Explanation:
        try:
            response = await self._client.post(
                self._endpoint_url,
                json={"recId": record_id, "context": context},
            )
        except httpx.HTTPError as exc:
            self._logger.warning(
                "explain_endpoint_unreachable",
                url=self._endpoint_url,
                error=str(exc)[:200],
            )
            raise ProviderUnavailableError(
                message=f"Explain endpoint unreachable: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not response.is_success:
            self._logger.warning(
                "explain_endpoint_error",
                url=self._endpoint_url,
                status=response.status_code,
            )
            raise ExplanationError(
                message=f"Upstream error: {response.status_code} {response.text}".rstrip(),
                provider_name=self.get_provider_name(),
            )

        return Explanation(
            text=response.text[: self._max_chars],
            provenance=response.headers.get(PROVENANCE_HEADER),
            model=response.headers.get(MODEL_HEADER),
        )

    def get_provider_name(self) -> str:
        return "http-explain"

    def is_available(self) -> bool:
        return bool(self._endpoint_url)
