"""Request-scoped logging context stored in contextvars.

Only values that belong in log lines live here (request id, caller id,
trace id). Authorization never reads from this module: the authenticated
principal is passed explicitly into every service call.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
principal_id_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
principal_role_var: ContextVar[str | None] = ContextVar("principal_role", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context, generating one if missing."""
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def set_principal(principal_id: str | UUID | None, role: str | None = None) -> None:
    """Record the authenticated caller for log enrichment."""
    principal_id_var.set(str(principal_id) if principal_id is not None else None)
    principal_role_var.set(role)


def get_principal_id() -> str | None:
    return principal_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_trace_id() -> str | None:
    return trace_id_var.get()


def get_context() -> dict[str, Any]:
    """Get the non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    principal_id = get_principal_id()
    if principal_id:
        context["principal_id"] = principal_id
        role = principal_role_var.get()
        if role:
            context["principal_role"] = role

    trace_id = get_trace_id()
    if trace_id:
        context["trace_id"] = trace_id

    return context


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    principal_id_var.set(None)
    principal_role_var.set(None)
    trace_id_var.set(None)
