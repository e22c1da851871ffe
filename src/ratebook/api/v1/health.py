"""Liveness endpoint."""

from fastapi import APIRouter, Request

from ...core.config import get_settings
from ...models.base import BaseModelConfig

router = APIRouter()


class HealthResponse(BaseModelConfig):
    status: str
    app_name: str
    environment: str
    offload_mode: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Report that the API is up and which offload mode it runs."""
    settings = get_settings()
    channel = getattr(request.app.state, "channel", None)
    return HealthResponse(
        status="healthy" if channel is not None and not channel.closed else "degraded",
        app_name=settings.app_name,
        environment=settings.api_env,
        offload_mode=channel.mode if channel is not None else None,
    )
