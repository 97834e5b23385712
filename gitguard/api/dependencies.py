"""FastAPI dependency injection: service container, caller identity, client context."""

from fastapi import Request

from gitguard.container import ServiceContainer
from gitguard.governance.audit_models import ClientContext


def get_container(request: Request) -> ServiceContainer:
    """Return the container built at startup (or injected by the app factory)."""
    return request.app.state.container


def get_actor_id(request: Request) -> str:
    """Extract actor_id from request.state (set by middleware)."""
    return request.state.actor_id


def get_correlation_id(request: Request) -> str:
    """Extract correlation_id from request.state (set by middleware)."""
    return getattr(request.state, "correlation_id", "") or ""


def get_client_context(request: Request) -> ClientContext:
    return ClientContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
