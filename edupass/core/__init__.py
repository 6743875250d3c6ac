# Core infrastructure
from edupass.core.context import (
    clear_context,
    get_context,
    get_request_id,
    set_principal,
    set_request_id,
)
from edupass.core.logging import configure_structlog, get_logger
from edupass.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "set_principal",
    "set_request_id",
]
