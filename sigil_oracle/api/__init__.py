"""Sigil Oracle API layer -- routes, schemas, and middleware."""

from sigil_oracle.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from sigil_oracle.api.routes import router
from sigil_oracle.api.schemas import (
    ErrorResponse,
    ExplainRequest,
    FeedbackRequest,
    FeedbackResponse,
    HealthResponse,
    InsightResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ErrorResponse",
    "ExplainRequest",
    "FeedbackRequest",
    "FeedbackResponse",
    "HealthResponse",
    "InsightResponse",
]
