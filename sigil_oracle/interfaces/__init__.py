"""Public interface definitions for all external service providers.

Every external surface of the insight subsystem is accessed through the
abstract base classes defined in this package.  Concrete adapters live in
``sigil_oracle/providers/`` and are injected at startup in
``sigil_oracle/main.py``; tests inject fakes instead.

CONCRETE PROVIDER MAP:
    Interface               ->  Concrete implementations
    ------------------------------------------------------------------
    IDurableStore           ->  SQLiteDurableStore, MemoryDurableStore
    IExplanationProvider    ->  LLMExplanationProvider, HTTPExplanationProvider
    ILLMProvider            ->  OpenAILLMProvider, AnthropicLLMProvider,
                                OllamaLLMProvider
"""

from sigil_oracle.interfaces.durable_store import IDurableStore
from sigil_oracle.interfaces.explanation_provider import IExplanationProvider
from sigil_oracle.interfaces.llm_provider import ILLMProvider

__all__ = ["IDurableStore", "IExplanationProvider", "ILLMProvider"]
