"""API middleware: correlation ID, actor context, request audit log."""

import json
import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from gitguard.core.context import actor_id_ctx, correlation_id_ctx

logger = logging.getLogger(__name__)

ACTOR_HEADER = "X-User-ID"
CORRELATION_HEADER = "X-Correlation-ID"

# Paths served without a caller identity
PUBLIC_PATHS = frozenset({"/health", "/metrics", "/docs", "/openapi.json", "/redoc"})


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Generate or preserve correlation ID; attach to request.state, response header, and logging context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        correlation_id_ctx.set(correlation_id)

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class ActorContextMiddleware(BaseHTTPMiddleware):
    """
    Extract X-User-ID (set by the authenticating gateway); 401 if missing.
    Attach to request.state and the request-scoped logging context.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        actor_id = (request.headers.get(ACTOR_HEADER) or "").strip()
        request.state.actor_id = actor_id or None
        if not actor_id and request.url.path not in PUBLIC_PATHS:
            return JSONResponse(
                status_code=401,
                content={
                    "error": {
                        "kind": "authentication",
                        "message": f"{ACTOR_HEADER} header is required",
                        "status": 401,
                    }
                },
            )
        actor_id_ctx.set(request.state.actor_id)
        return await call_next(request)


class AuditTriggerMiddleware(BaseHTTPMiddleware):
    """After response: log structured request event (correlation_id, actor_id, path, method, status_code)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        audit_event = {
            "event": "request_audit",
            "correlation_id": getattr(request.state, "correlation_id", None),
            "actor_id": getattr(request.state, "actor_id", None),
            "path": request.url.path,
            "method": request.method,
            "status_code": response.status_code,
        }
        logger.info(json.dumps(audit_event))
        return response
