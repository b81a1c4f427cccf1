"""Correlation IDs for tracing one request through logs."""

import uuid
from contextvars import ContextVar, Token

# Set per request by the HTTP middleware; read by JsonFormatter
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def new_correlation_id() -> str:
    return uuid.uuid4().hex


def get_correlation_id() -> str:
    """Correlation ID of the current request, or "" outside one."""
    return correlation_id_var.get()


def bind_correlation_id(cid: str) -> Token[str]:
    return correlation_id_var.set(cid)


def unbind_correlation_id(token: Token[str]) -> None:
    correlation_id_var.reset(token)
