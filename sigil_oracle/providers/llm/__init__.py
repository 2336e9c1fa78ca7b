"""LLM provider adapters.

Three concrete implementations of ILLMProvider:
    - OpenAILLMProvider    -- gpt-4o-mini (also any OpenAI-compatible API)
    - AnthropicLLMProvider -- Claude Sonnet
    - OllamaLLMProvider    -- local models via an Ollama server

main.py builds the first one with credentials configured and hands it to
the LLMExplanationProvider.
"""

from sigil_oracle.providers.llm.anthropic_provider import AnthropicLLMProvider
from sigil_oracle.providers.llm.ollama_provider import OllamaLLMProvider
from sigil_oracle.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider", "AnthropicLLMProvider", "OllamaLLMProvider"]
