# gitguard/api/routers/health.py

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from gitguard.api.dependencies import get_container
from gitguard.container import ServiceContainer

router = APIRouter()


@router.get("/health")
async def health(
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
):
    """Liveness plus the configured backends. Needs no caller identity."""
    settings = container.settings
    return {
        "status": "ok",
        "correlation_id": request.state.correlation_id,
        "environment": settings.environment,
        "version": settings.version,
        "database": "memory" if container.database is None else "sql",
        "oracle": settings.oracle_backend,
    }


@router.get("/metrics")
async def metrics(container: Annotated[ServiceContainer, Depends(get_container)]):
    """Side-effect failure and workflow progress counters."""
    return container.metrics.export_metrics()
