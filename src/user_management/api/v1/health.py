from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from user_management.core.dependencies import get_health_service
from user_management.schemas.health import HealthStatus
from user_management.services.health_service import HealthService

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthStatus,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": HealthStatus}},
)
async def health(service: HealthService = Depends(get_health_service)):
    """200 when the record store answers, 503 (same body) otherwise."""
    result = await service.status()
    code = status.HTTP_200_OK if result.db_status == "OK" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=result.model_dump(by_alias=True))
