# gitguard/main.py

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gitguard.api.middleware import (
    ActorContextMiddleware,
    AuditTriggerMiddleware,
    CorrelationIdMiddleware,
)
from gitguard.api.routers import access_requests, audit_logs, health
from gitguard.config.logging import configure_logging
from gitguard.config.settings import AppSettings, get_settings
from gitguard.container import ServiceContainer, build_container
from gitguard.core.exceptions import GitGuardError
from gitguard.governance.audit_models import SYSTEM_ACTOR, AuditAction, EntityType

logger = logging.getLogger(__name__)


async def _audit_server_error(request: Request, message: str) -> None:
    container: Optional[ServiceContainer] = getattr(request.app.state, "container", None)
    if container is None:
        return
    await container.audit_logger.append(
        action=AuditAction.ERROR,
        entity_type=EntityType.SYSTEM,
        entity_id="error",
        actor_id=getattr(request.state, "actor_id", None) or SYSTEM_ACTOR,
        description=message,
        metadata={"path": request.url.path, "method": request.method},
    )


async def gitguard_error_handler(request: Request, exc: GitGuardError):
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            extra={"kind": exc.kind, "error": exc.message, "path": request.url.path},
        )
        await _audit_server_error(request, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", extra={"path": request.url.path})
    await _audit_server_error(request, "Internal server error")
    return JSONResponse(
        status_code=500,
        content={"error": {"kind": "internal", "message": "Internal server error", "status": 500}},
    )


def create_app(
    container: Optional[ServiceContainer] = None,
    settings: Optional[AppSettings] = None,
) -> FastAPI:
    """
    Build the API. With an injected container the app uses it as-is; otherwise
    the lifespan builds one from settings, starts it and disposes it on shutdown.
    """
    settings = settings or (container.settings if container else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "container", None) is None:
            owned = build_container(settings)
            await owned.start()
            app.state.container = owned
        try:
            yield
        finally:
            if owned is not None:
                await owned.aclose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.container = container

    # Middleware order: last added runs first (outermost). Request flow: CorrelationId -> ActorContext -> AuditTrigger.
    app.add_middleware(AuditTriggerMiddleware)
    app.add_middleware(ActorContextMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(GitGuardError, gitguard_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # Routers: /health, /access-requests, /audit-logs
    app.include_router(health.router)
    app.include_router(access_requests.router, prefix="/access-requests", tags=["access-requests"])
    app.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])
    return app


def get_app() -> FastAPI:
    """ASGI factory: `uvicorn gitguard.main:get_app --factory`."""
    settings = get_settings()
    configure_logging(settings.log_level)
    return create_app(settings=settings)
