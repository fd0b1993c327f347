from __future__ import annotations

from typing import Dict, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from dropship_api.services.dropshipping import CircuitState, DropshippingService

from .dropshipping import get_service


router = APIRouter()


class ComponentStatus(BaseModel):
    status: Literal["ready", "disabled", "degraded"]
    detail: str | None = Field(default=None, description="Human readable status detail")


class ReadinessPayload(BaseModel):
    status: Literal["ready", "degraded", "error"]
    components: Dict[str, ComponentStatus]


@router.get("/healthz", summary="Service health check")
async def service_health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Service readiness", response_model=ReadinessPayload)
async def service_readiness(
    service: DropshippingService = Depends(get_service),
) -> ReadinessPayload:
    """Readiness derived from local breaker state; no vendor calls are made."""

    components: Dict[str, ComponentStatus] = {}
    for name, provider in service.providers.items():
        if not provider.is_enabled:
            components[name] = ComponentStatus(status="disabled", detail="API key not configured")
            continue
        state = provider.client.breaker.state
        if state is CircuitState.CLOSED:
            components[name] = ComponentStatus(status="ready")
        else:
            components[name] = ComponentStatus(status="degraded", detail=f"circuit {state.value}")

    active = [component for component in components.values() if component.status != "disabled"]
    if not active:
        status: Literal["ready", "degraded", "error"] = "error"
    elif all(component.status == "ready" for component in active):
        status = "ready"
    else:
        status = "degraded"
    return ReadinessPayload(status=status, components=components)
