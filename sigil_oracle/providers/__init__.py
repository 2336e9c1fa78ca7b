"""Concrete adapters for the interfaces in :mod:`sigil_oracle.interfaces`.

    - store/        -- IDurableStore (SQLite file, in-memory dict)
    - llm/          -- ILLMProvider (OpenAI-compatible, Anthropic, Ollama)
    - explanation/  -- IExplanationProvider (LLM prompt, HTTP explain endpoint)
"""
