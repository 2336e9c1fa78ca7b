"""Unit tests for the LLM and HTTP explanation providers."""

from __future__ import annotations

import json
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from sigil_oracle.interfaces.llm_provider import ILLMProvider
from sigil_oracle.providers.explanation.http_explanation_provider import (
    HTTPExplanationProvider,
)
from sigil_oracle.providers.explanation.llm_explanation_provider import (
    DEFAULT_SYSTEM_PROMPT,
    LLMExplanationProvider,
    build_user_prompt,
)
from sigil_oracle.utils.errors import ExplanationError, LLMError, ProviderUnavailableError

_ENDPOINT = "https://oracle.example.test/api/gemini/explain"


def _mock_llm(
    response: str = "Impact: data exfiltration\nRecommended Actions: rotate keys"
) -> MagicMock:
    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(return_value=response)
    llm.get_provider_name.return_value = "anthropic"
    llm.get_model_name.return_value = "claude-test"
    llm.is_available.return_value = True
    return llm


# ======================================================================
# LLMExplanationProvider
# ======================================================================


class TestLLMExplanationProvider:
    def test_user_prompt_renders_context_as_indented_json(self) -> None:
        prompt = build_user_prompt("T-1", {"severity": "high", "port": 445})
        assert prompt.startswith("Threat Details:\n")
        details = json.loads(prompt.split("\n", 1)[1])
        assert details == {"id": "T-1", "severity": "high", "port": 445}
        assert '\n  "severity": "high"' in prompt

    @pytest.mark.asyncio
    async def test_explain_uses_analyst_prompt(self) -> None:
        llm = _mock_llm()
        provider = LLMExplanationProvider(llm=llm, temperature=0.2, max_tokens=800)

        explanation = await provider.explain("T-1", {"severity": "high"})

        assert explanation.text.startswith("Impact:")
        assert explanation.provenance == "llm:anthropic"
        assert explanation.model == "claude-test"
        kwargs = llm.complete.call_args.kwargs
        assert kwargs["system_prompt"] == DEFAULT_SYSTEM_PROMPT
        assert "The Oracle" in kwargs["system_prompt"]
        assert "Recommended Actions" in kwargs["system_prompt"]
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 800

    @pytest.mark.asyncio
    async def test_custom_system_prompt(self) -> None:
        llm = _mock_llm()
        provider = LLMExplanationProvider(llm=llm, system_prompt="Be brief.")
        await provider.explain("T-1", {})
        assert llm.complete.call_args.kwargs["system_prompt"] == "Be brief."

    @pytest.mark.asyncio
    async def test_empty_response_raises(self) -> None:
        provider = LLMExplanationProvider(llm=_mock_llm("  \n "))
        with pytest.raises(ExplanationError, match="empty response from the Oracle"):
            await provider.explain("T-1", {})

    @pytest.mark.asyncio
    async def test_long_response_truncated(self) -> None:
        provider = LLMExplanationProvider(llm=_mock_llm("x" * 50), max_chars=10)
        explanation = await provider.explain("T-1", {})
        assert explanation.text == "x" * 10

    @pytest.mark.asyncio
    async def test_llm_error_propagates(self) -> None:
        llm = _mock_llm()
        llm.complete = AsyncMock(side_effect=LLMError(message="Anthropic API error: overloaded"))
        provider = LLMExplanationProvider(llm=llm)
        with pytest.raises(LLMError):
            await provider.explain("T-1", {})

    def test_availability_follows_llm(self) -> None:
        llm = _mock_llm()
        llm.is_available.return_value = False
        provider = LLMExplanationProvider(llm=llm)
        assert provider.is_available() is False
        assert provider.get_provider_name() == "llm:anthropic"


# ======================================================================
# HTTPExplanationProvider
# ======================================================================


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHTTPExplanationProvider:
    @pytest.mark.asyncio
    async def test_posts_record_and_context(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                text="Impact: ...",
                headers={"X-Explain-Provenance": "gemini", "X-Explain-Model": "gemini-2.5-flash"},
            )

        async with _client(handler) as client:
            provider = HTTPExplanationProvider(endpoint_url=_ENDPOINT, http_client=client)
            explanation = await provider.explain("T-1", {"severity": "high"})

        assert seen["method"] == "POST"
        assert seen["url"] == _ENDPOINT
        assert seen["body"] == {"recId": "T-1", "context": {"severity": "high"}}
        assert explanation.text == "Impact: ..."
        assert explanation.provenance == "gemini"
        assert explanation.model == "gemini-2.5-flash"

    @pytest.mark.asyncio
    async def test_missing_headers_leave_metadata_empty(self) -> None:
        async with _client(lambda request: httpx.Response(200, text="ok")) as client:
            provider = HTTPExplanationProvider(endpoint_url=_ENDPOINT, http_client=client)
            explanation = await provider.explain("T-1", {})
        assert explanation.provenance is None
        assert explanation.model is None

    @pytest.mark.asyncio
    async def test_body_truncated_to_max_chars(self) -> None:
        async with _client(lambda request: httpx.Response(200, text="y" * 5000)) as client:
            provider = HTTPExplanationProvider(endpoint_url=_ENDPOINT, http_client=client)
            explanation = await provider.explain("T-1", {})
        assert len(explanation.text) == 4000

    @pytest.mark.asyncio
    async def test_non_2xx_raises_upstream_error(self) -> None:
        async with _client(lambda request: httpx.Response(502, text="Bad Gateway")) as client:
            provider = HTTPExplanationProvider(endpoint_url=_ENDPOINT, http_client=client)
            with pytest.raises(ExplanationError) as exc_info:
                await provider.explain("T-1", {})
        assert exc_info.value.message == "Upstream error: 502 Bad Gateway"
        assert exc_info.value.provider_name == "http-explain"

    @pytest.mark.asyncio
    async def test_connection_failure_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            provider = HTTPExplanationProvider(endpoint_url=_ENDPOINT, http_client=client)
            with pytest.raises(ProviderUnavailableError, match="unreachable"):
                await provider.explain("T-1", {})

    def test_availability_needs_endpoint(self) -> None:
        client = MagicMock(spec=httpx.AsyncClient)
        assert HTTPExplanationProvider(endpoint_url="", http_client=client).is_available() is False
        assert HTTPExplanationProvider(endpoint_url=_ENDPOINT, http_client=client).is_available() is True
