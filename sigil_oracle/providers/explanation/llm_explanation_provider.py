"""Explanation provider that asks an LLM to act as a security analyst.

The record's context (threat fields, active signals, ...) is rendered as
indented JSON under a "Threat Details" heading; the system prompt asks for
plain text with "Impact" and "Recommended Actions" headings.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from sigil_oracle.interfaces.explanation_provider import IExplanationProvider
from sigil_oracle.interfaces.llm_provider import ILLMProvider
from sigil_oracle.models.insight import Explanation
from sigil_oracle.utils.errors import ExplanationError

DEFAULT_SYSTEM_PROMPT = (
    "You are a senior cybersecurity analyst called The Oracle. "
    "A security threat has been detected. Your role is to provide a concise "
    "and clear explanation of the potential impact and recommend specific "
    "actions for remediation. Do not use markdown formatting. Structure your response "
    'with clear headings for "Impact" and "Recommended Actions".'
)

EMPTY_RESPONSE_MESSAGE = "Received an empty response from the Oracle."


def build_user_prompt(record_id: str, context: dict[str, Any]) -> str:
    """Render *context* as the analyst's threat brief."""
    details = {"id": record_id, **context}
    return "Threat Details:\n" + json.dumps(details, indent=2, default=str)


class LLMExplanationProvider(IExplanationProvider):
    """Explains records by prompting an :class:`ILLMProvider`.

    Parameters
    ----------
    llm:
        The LLM backend (OpenAI-compatible, Anthropic or Ollama).
    max_chars:
        Longer responses are truncated to this many characters.
    temperature, max_tokens:
        Passed through to :meth:`ILLMProvider.complete`.
    system_prompt:
        Overrides :data:`DEFAULT_SYSTEM_PROMPT` when non-empty.
    """

    def __init__(
        self,
        llm: ILLMProvider,
        max_chars: int = 4000,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        system_prompt: str = "",
    ) -> None:
        self._llm = llm
        self._max_chars = max_chars
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self._logger: structlog.BoundLogger = structlog.get_logger(logger_name=__name__)

    async def explain(self, record_id: str, context: dict[str, Any]) -> Explanation:
        # LLMError from the backend is already an ExplanationError.
        text = await self._llm.complete(
            system_prompt=self._system_prompt,
            user_prompt=build_user_prompt(record_id, context),
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        text = text.strip()
        if not text:
            raise ExplanationError(
                message=EMPTY_RESPONSE_MESSAGE,
                provider_name=self.get_provider_name(),
            )

        if len(text) > self._max_chars:
            self._logger.debug(
                "explanation_truncated",
                record_id=record_id,
                chars=len(text),
                max_chars=self._max_chars,
            )
            text = text[: self._max_chars]

        return Explanation(
            text=text,
            provenance=f"llm:{self._llm.get_provider_name()}",
            model=self._llm.get_model_name(),
        )

    def get_provider_name(self) -> str:
        return f"llm:{self._llm.get_provider_name()}"

    def is_available(self) -> bool:
        return self._llm.is_available()
