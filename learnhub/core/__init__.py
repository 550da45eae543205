# Core infrastructure
from learnhub.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_correlation_id,
    get_learner_id,
    get_request_id,
    get_trace_id,
    set_correlation_id,
    set_learner_id,
    set_request_id,
    set_trace_id,
)
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_correlation_id",
    "get_learner_id",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "set_correlation_id",
    "set_learner_id",
    "set_request_id",
    "set_trace_id",
]
