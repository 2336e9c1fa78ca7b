"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources, in priority order:

  1. **Environment variables** -- e.g. ``OPENAI_API_KEY=sk-abc123``
  2. **.env file** -- ``key=value`` lines in the project root ``.env``

Field names map to upper-cased env vars (``durable_store_path`` ->
``DURABLE_STORE_PATH``).  Defaults apply when neither source sets a value.
Tunables that are not secrets or deployment choices (TTL, audit log size,
prompt) live in ``config/config.yaml`` instead; see :mod:`.loader`.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Sigil Oracle application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === LLM Providers ===
    # Empty string = "not configured"; provider selection in main.py skips
    # providers with empty keys and falls through to the next.
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_text_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = ""
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = ""

    # === Explanation Provider ===
    # "llm" asks an LLM directly, "http" posts to an explain endpoint.
    # Empty = "http" when explain_endpoint_url is set, else "llm".
    explanation_provider: str = ""
    explain_endpoint_url: str = ""
    # Upper bound on one provider call; unset means no timeout.
    explain_timeout_seconds: float | None = None

    # === Durable Store ===
    durable_store_backend: str = "sqlite"  # "sqlite" or "memory"
    durable_store_path: str = "data/oracle.db"
    oracle_namespace: str = "sigil"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def resolved_explanation_provider(self) -> str:
        """Return the explanation backend to build: ``"llm"`` or ``"http"``."""
        if self.explanation_provider:
            return self.explanation_provider.lower()
        return "http" if self.explain_endpoint_url else "llm"
