"""Request metadata for audit records, carried in a context variable.

Set by ``RequestContextMiddleware`` and read by ``AuditService``.
"""

from contextvars import ContextVar
from dataclasses import dataclass

_audit_context: ContextVar["AuditContext | None"] = ContextVar("audit_context", default=None)

MAX_USER_AGENT_LENGTH = 500


@dataclass(frozen=True)
class AuditContext:
    """Immutable audit context for the current request."""

    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


def set_audit_context(
    ip_address: str | None = None,
    user_agent: str | None = None,
    request_id: str | None = None,
) -> None:
    _audit_context.set(
        AuditContext(
            ip_address=ip_address,
            user_agent=user_agent[:MAX_USER_AGENT_LENGTH] if user_agent else None,
            request_id=request_id,
        )
    )


def get_audit_context() -> AuditContext | None:
    return _audit_context.get()


def clear_audit_context() -> None:
    _audit_context.set(None)


def get_client_ip(forwarded_for: str | None, client_host: str | None) -> str | None:
    """First address of X-Forwarded-For, else the direct peer."""
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return client_host
