from fastapi import APIRouter, Depends, Response, status

from schoolhub.api.dependencies import get_registry, get_store
from schoolhub.api.schemas import HealthResponse, ReadinessResponse
from schoolhub.core.ports.storage import ResourceStore
from schoolhub.core.registry import ResourceRegistry

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/healthz/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    return HealthResponse()


@router.get("/healthz/ready", response_model=ReadinessResponse)
async def readiness(
    response: Response,
    store: ResourceStore = Depends(get_store),
    registry: ResourceRegistry = Depends(get_registry),
) -> ReadinessResponse:
    """Ready once the store answers a ping; an empty registry still counts as ready."""
    if not await store.ping():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="degraded", database="down", resources=len(registry))
    return ReadinessResponse(status="ok", database="up", resources=len(registry))
