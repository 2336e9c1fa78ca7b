"""Explanation providers.

    - LLMExplanationProvider  -- prompts an ILLMProvider as "The Oracle"
    - HTTPExplanationProvider -- posts to a remote explain endpoint
"""

from sigil_oracle.providers.explanation.http_explanation_provider import (
    HTTPExplanationProvider,
)
from sigil_oracle.providers.explanation.llm_explanation_provider import (
    LLMExplanationProvider,
)

__all__ = ["HTTPExplanationProvider", "LLMExplanationProvider"]
