"""Sigil Oracle FastAPI application entry point.

Wires together the durable store, the explanation provider and the insight
services via dependency injection.  Loads configuration from ``.env`` and
``config/config.yaml`` and configures structured logging.

``build_oracle`` assembles the same services without the web server; the
CLI uses it directly.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from sigil_oracle.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from sigil_oracle.api.routes import router as api_router
from sigil_oracle.config.loader import load_config
from sigil_oracle.config.settings import Settings
from sigil_oracle.interfaces.durable_store import IDurableStore
from sigil_oracle.interfaces.explanation_provider import IExplanationProvider
from sigil_oracle.interfaces.llm_provider import ILLMProvider
from sigil_oracle.providers.explanation.http_explanation_provider import (
    HTTPExplanationProvider,
)
from sigil_oracle.providers.explanation.llm_explanation_provider import (
    LLMExplanationProvider,
)
from sigil_oracle.providers.llm.anthropic_provider import AnthropicLLMProvider
from sigil_oracle.providers.llm.ollama_provider import OllamaLLMProvider
from sigil_oracle.providers.llm.openai_provider import OpenAILLMProvider
from sigil_oracle.providers.store.memory_store import MemoryDurableStore
from sigil_oracle.providers.store.sqlite_store import SQLiteDurableStore
from sigil_oracle.services.feedback_ledger import FeedbackLedger
from sigil_oracle.services.insight_cache import InsightCache
from sigil_oracle.services.request_coordinator import RequestCoordinator
from sigil_oracle.utils.clock import Clock
from sigil_oracle.utils.errors import ConfigurationError
from sigil_oracle.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first available LLM provider based on configured API keys.

    Priority order: OpenAI -> Anthropic -> Ollama (always available).
    """
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


def _build_durable_store(app_settings: Settings) -> IDurableStore:
    """Build and initialise the configured durable store."""
    backend = app_settings.durable_store_backend.lower()
    if backend == "memory":
        return MemoryDurableStore()
    if backend == "sqlite":
        store = SQLiteDurableStore(db_path=app_settings.durable_store_path)
        store.initialize()
        return store
    raise ConfigurationError(
        message=f"Unknown durable store backend: {app_settings.durable_store_backend!r}",
    )


def _build_explanation_provider(
    app_settings: Settings,
    app_config: dict[str, Any],
    http_client: httpx.AsyncClient | None,
) -> IExplanationProvider:
    """Build the explanation provider selected by ``EXPLANATION_PROVIDER``.

    ``"http"`` needs ``EXPLAIN_ENDPOINT_URL`` and an HTTP client; ``"llm"``
    wraps the first available LLM provider.
    """
    explanation_cfg = app_config.get("explanation", {})
    max_chars = int(explanation_cfg.get("max_chars", 4000))
    kind = app_settings.resolved_explanation_provider()

    if kind == "http":
        if not app_settings.explain_endpoint_url:
            raise ConfigurationError(
                message="EXPLANATION_PROVIDER=http requires EXPLAIN_ENDPOINT_URL",
                provider_name="http-explain",
            )
        if http_client is None:
            raise ConfigurationError(
                message="HTTP explanation provider requires an HTTP client",
                provider_name="http-explain",
            )
        return HTTPExplanationProvider(
            endpoint_url=app_settings.explain_endpoint_url,
            http_client=http_client,
            max_chars=max_chars,
        )
    if kind == "llm":
        return LLMExplanationProvider(
            llm=_build_llm_provider(app_settings),
            max_chars=max_chars,
            temperature=float(explanation_cfg.get("temperature", 0.3)),
            max_tokens=int(explanation_cfg.get("max_tokens", 1500)),
            system_prompt=explanation_cfg.get("system_prompt") or "",
        )
    raise ConfigurationError(message=f"Unknown explanation provider: {kind!r}")


# ---------------------------------------------------------------------------
# Service assembly
# ---------------------------------------------------------------------------


def build_oracle(
    custom_settings: Settings | None = None,
    custom_config: dict[str, Any] | None = None,
    *,
    store: IDurableStore | None = None,
    provider: IExplanationProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
    clock: Clock | None = None,
) -> dict[str, Any]:
    """Construct the insight services with injected dependencies.

    Parameters
    ----------
    custom_settings, custom_config:
        Settings and resolved YAML config.  Module-level values are used
        when not provided.
    store, provider:
        Pre-built durable store / explanation provider, mainly for tests.
    http_client:
        Shared client for the HTTP explanation provider.  The caller owns
        and closes it.
    clock:
        Source of "now" for the coordinator and ledger.

    Returns
    -------
    dict
        Components keyed by role: ``store``, ``cache``, ``ledger``,
        ``coordinator``, ``explanation_provider``, ``settings``.
    """
    s = custom_settings or settings
    c = custom_config if custom_config is not None else config
    oracle_cfg = c.get("oracle", {})

    durable_store = store or _build_durable_store(s)
    explanation_provider = provider or _build_explanation_provider(s, c, http_client)

    cache = InsightCache(store=durable_store, namespace=s.oracle_namespace)
    ledger = FeedbackLedger(
        cache=cache,
        store=durable_store,
        namespace=s.oracle_namespace,
        max_log_entries=int(oracle_cfg.get("audit_log_limit", 100)),
        clock=clock,
    )
    coordinator = RequestCoordinator(
        cache=cache,
        provider=explanation_provider,
        ledger=ledger,
        ttl=timedelta(hours=float(oracle_cfg.get("ttl_hours", 24))),
        clock=clock,
        timeout_seconds=s.explain_timeout_seconds,
    )

    return {
        "store": durable_store,
        "cache": cache,
        "ledger": ledger,
        "coordinator": coordinator,
        "explanation_provider": explanation_provider,
        "settings": s,
    }


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every component for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    http_client = httpx.AsyncClient(timeout=30.0)
    components = build_oracle(app_settings, http_client=http_client)

    explanation_provider: IExplanationProvider = components["explanation_provider"]
    durable_store: IDurableStore = components["store"]
    provider_registry = {
        "explanation": explanation_provider.get_provider_name(),
        "explanation_available": explanation_provider.is_available(),
        "durable_store": durable_store.get_provider_name(),
    }

    return {
        **components,
        "http_client": http_client,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version="0.1.0",
        environment=settings.app_env,
        explanation_provider=components["provider_registry"]["explanation"],
        durable_store=components["provider_registry"]["durable_store"],
        restored_entries=len(components["cache"]),
    )

    yield

    coordinator: RequestCoordinator = components["coordinator"]
    pending = coordinator.in_flight()
    if pending:
        _logger.warning("app_shutdown_with_inflight", record_ids=sorted(pending))

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Sigil Oracle API",
        version="0.1.0",
        description=(
            "On-demand natural-language explanations for security threats and "
            "recommendations, cached per record with write-once user feedback."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "sigil_oracle.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
